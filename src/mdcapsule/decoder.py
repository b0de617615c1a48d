from __future__ import annotations

from .registry import find_placeholder


class ResidualDecoder:
    """Restores placeholders that surface inside ordinary text.

    Each filter decodes only placeholders of its own type; unknown ids and
    placeholders from other passes are left as they are.
    """

    def __init__(self, filters, registry):
        self.filters = list(filters)
        self.registry = registry

    def decode_once(self, text: str) -> str:
        for capsule_filter in self.filters:
            text = capsule_filter.handle_text(text, self.registry)
        return text

    def decode(self, text: str) -> str:
        if not text or self.registry is None or find_placeholder(text) is None:
            return text
        # Repeat until stable so a capsule holding another capsule decodes fully.
        for _ in range(len(self.registry) + 1):
            decoded = self.decode_once(text)
            if decoded == text:
                break
            text = decoded
        return text

    __call__ = decode
