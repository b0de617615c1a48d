from __future__ import annotations

from dataclasses import replace

from .filters import single_text_run
from .scanner import restore_source


def is_candidate_token(token) -> bool:
    return single_text_run(token) is not None


class TokenInterceptor:
    """Claims placeholder paragraphs during the token walk and writes dedicated nodes."""

    def __init__(self, filters, registry):
        self.filters = list(filters)
        self.registry = registry
        self.claimed = 0

    def intercept(self, token, writer) -> bool:
        if self.registry is None or not is_candidate_token(token):
            return False
        for capsule_filter in self.filters:
            placeholder = capsule_filter.handle_token(token)
            if placeholder is None:
                continue
            # First claim wins; a failed lookup does not pass the token on.
            record = self.registry.resolve(placeholder)
            if record is None or record.type != capsule_filter.type:
                return False
            # Capsules encoded by an earlier filter may sit inside this one's source.
            source = restore_source(record.source, self.registry)
            if source != record.source:
                record = replace(record, source=source)
            capsule_filter.write_node(writer, record)
            self.claimed += 1
            return True
        return False
