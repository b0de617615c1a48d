from __future__ import annotations

import re

from mdcapsule.serializer import text_to_pandoc_inlines

API_VERSION = [1, 23, 1]
BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")
QUOTE_PREFIX_RE = re.compile(r"^>[ ]?")


def fake_blocks(text: str):
    """Blocks the way pandoc splits simple markdown: paragraphs and block quotes only."""
    blocks = []
    for chunk in BLANK_LINE_RE.split(text or ""):
        lines = [line.strip() for line in chunk.split("\n") if line.strip()]
        if not lines:
            continue
        if all(line.startswith(">") for line in lines):
            inner = "\n".join(QUOTE_PREFIX_RE.sub("", line) for line in lines)
            blocks.append({"t": "BlockQuote", "c": fake_blocks(inner)})
            continue
        blocks.append({"t": "Para", "c": text_to_pandoc_inlines("\n".join(lines))})
    return blocks


def fake_markdown_to_ast(text: str):
    return {"pandoc-api-version": list(API_VERSION), "meta": {}, "blocks": fake_blocks(text)}


def para(*inlines):
    return {"t": "Para", "c": list(inlines)}


def plain(*inlines):
    return {"t": "Plain", "c": list(inlines)}


def string(text: str):
    return {"t": "Str", "c": text}


def document(*blocks):
    return {"pandoc-api-version": list(API_VERSION), "meta": {}, "blocks": list(blocks)}
