from __future__ import annotations

from .registry import CapsuleRegistry, find_placeholder


def scan_filter(text: str, capsule_filter, registry: CapsuleRegistry):
    """Encode every match of one filter in ``text``; returns (text, count)."""
    parts = []
    cursor = 0
    count = 0
    while True:
        match = capsule_filter.find(text, cursor)
        if match is None:
            break
        prefix, body, suffix = capsule_filter.extract(match)
        record = registry.add(
            capsule_filter.type,
            prefix=prefix,
            source=body,
            suffix=suffix,
            enclosed_text=capsule_filter.enclose(body),
        )
        parts.append(text[cursor : match.start()])
        parts.append(prefix + registry.placeholder(record) + "\n")
        cursor = match.end()
        count += 1
    if not count:
        return text, 0
    parts.append(text[cursor:])
    return "".join(parts), count


def scan(source_text: str, filters, registry: CapsuleRegistry | None = None):
    """Replace raw blocks with placeholders, one filter at a time in order.

    Later filters see the text already encoded by earlier ones. Blocks that do
    not match (for example a missing closing fence) stay as ordinary text.
    """
    registry = registry if registry is not None else CapsuleRegistry()
    text = source_text or ""
    for capsule_filter in filters:
        text, _ = scan_filter(text, capsule_filter, registry)
    return text, registry


def restore_source(encoded_text: str, registry: CapsuleRegistry) -> str:
    """Invert ``scan`` exactly, including captured trailing whitespace."""
    text = encoded_text
    # A record's source may itself hold a placeholder from an earlier filter.
    for _ in range(len(registry) + 1):
        parts = []
        cursor = 0
        pos = 0
        while True:
            match = find_placeholder(text, pos)
            if match is None:
                break
            pos = match.end()
            record = registry.resolve(match)
            if record is None:
                continue
            end = match.end()
            if text.startswith("\n", end):
                end += 1
            parts.append(text[cursor : match.start()])
            parts.append(record.source + record.suffix)
            cursor = end
            pos = end
        if not parts:
            break
        parts.append(text[cursor:])
        text = "".join(parts)
    return text
