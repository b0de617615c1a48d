from __future__ import annotations

import itertools
import re
import secrets
from dataclasses import asdict, dataclass

CAPSULE_SENTINEL = "31B8E172-B470-440E-83D8-E6B185028602".lower()
TYPE_TAG_RE = re.compile(r"^[0-9a-f]+(?:-[0-9a-f]+)*$")
# Fields are joined with "." so no part can read as a ":name:" emoji shortcode.
PLACEHOLDER_RE = re.compile(
    re.escape(CAPSULE_SENTINEL)
    + r"\.(?P<nonce>[0-9a-f]+)\.(?P<type>[0-9a-f]+(?:-[0-9a-f]+)*)\.(?P<id>[0-9]+)\."
    + re.escape(CAPSULE_SENTINEL)
)


@dataclass(frozen=True)
class CapsuleRecord:
    id: int
    type: str
    prefix: str
    source: str
    suffix: str
    enclosed_text: str

    def to_dict(self) -> dict:
        return asdict(self)


def format_placeholder(nonce: str, type_tag: str, capsule_id: int) -> str:
    return f"{CAPSULE_SENTINEL}.{nonce}.{type_tag}.{capsule_id}.{CAPSULE_SENTINEL}"


def find_placeholder(text: str, pos: int = 0):
    """Return the first placeholder match in ``text`` at or after ``pos``.

    Callers continue from ``match.end()``; nothing is remembered between calls.
    """
    if not text or pos >= len(text):
        return None
    return PLACEHOLDER_RE.search(text, pos)


def iter_placeholders(text: str):
    pos = 0
    while True:
        match = find_placeholder(text, pos)
        if match is None:
            return
        yield match
        pos = match.end()


class CapsuleRegistry:
    """Per-pass store of capsule records, keyed by ``(type, id)``."""

    def __init__(self, nonce: str | None = None):
        self.nonce = nonce or secrets.token_hex(4)
        self._ids = itertools.count(1)
        self._records: dict[tuple[str, int], CapsuleRecord] = {}

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records.values())

    def add(self, type_tag: str, prefix: str, source: str, suffix: str, enclosed_text: str) -> CapsuleRecord:
        if not TYPE_TAG_RE.match(type_tag or ""):
            raise ValueError(f"capsule type tag must be lowercase hex groups, got {type_tag!r}")
        record = CapsuleRecord(
            id=next(self._ids),
            type=type_tag,
            prefix=prefix,
            source=source,
            suffix=suffix,
            enclosed_text=enclosed_text,
        )
        self._records[(record.type, record.id)] = record
        return record

    def placeholder(self, record: CapsuleRecord) -> str:
        return format_placeholder(self.nonce, record.type, record.id)

    def lookup(self, type_tag: str, capsule_id: int):
        return self._records.get((type_tag, capsule_id))

    def resolve(self, placeholder) -> CapsuleRecord | None:
        """Resolve placeholder text (or a placeholder match) to its record.

        Returns None for foreign nonces and unknown ids.
        """
        match = placeholder
        if isinstance(placeholder, str):
            match = PLACEHOLDER_RE.fullmatch(placeholder)
        if match is None or match.group("nonce") != self.nonce:
            return None
        return self.lookup(match.group("type"), int(match.group("id")))

    def to_dict(self) -> dict:
        return {
            "nonce": self.nonce,
            "records": [record.to_dict() for record in self._records.values()],
        }
