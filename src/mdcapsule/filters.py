from __future__ import annotations

import re
import uuid

from .document import CapsuleOrigin
from .registry import PLACEHOLDER_RE, find_placeholder

# Block tokens that may carry a placeholder as their only text run.
CAPSULE_TOKEN_TYPES = {"Para", "Plain"}

YAML_METADATA_RE = re.compile(
    r"^(?P<prefix>[\t >]*)(?P<body>---[ \t]*\n(?![\t >]*\n)(?:[\s\S]*?\n)??(?P=prefix)(?:---|\.\.\.))(?P<suffix>[ \t]*)$",
    re.MULTILINE,
)
RMD_CHUNK_RE = re.compile(
    r"^(?P<prefix>[\t >]*)"
    r"(?P<body>(?P<fence>`{3,})[ \t]*\{(?P<lang>[A-Za-z][A-Za-z0-9_]*)[^}\n]*\}[ \t]*\n"
    r"(?:[\s\S]*?\n)??(?P=prefix)(?P=fence))"
    r"(?P<suffix>[ \t]*)$",
    re.MULTILINE,
)
FENCED_DIV_RE = re.compile(
    r"^(?P<prefix>[\t >]*)"
    r"(?P<body>:{3,}[ \t]*(?:\{[^}\n]*\}|[^\s{}:][^\n]*?)[ \t]*:*[ \t]*\n"
    r"(?:[\s\S]*?\n)??(?P=prefix):{3,})"
    r"(?P<suffix>[ \t]*)$",
    re.MULTILINE,
)
RMD_HEADER_RE = re.compile(r"^`{3,}[ \t]*\{(?P<lang>[A-Za-z][A-Za-z0-9_]*)")
DIV_CLASS_RE = re.compile(r"(?:^|\s)\.(?P<cls>[A-Za-z][-A-Za-z0-9_]*)")
DIV_BARE_CLASS_RE = re.compile(r"^:{3,}[ \t]*(?P<cls>[A-Za-z][-A-Za-z0-9_]*)")


def single_text_run(token):
    """Return the text of a block token made of exactly one ``Str`` inline."""
    if not isinstance(token, dict) or token.get("t") not in CAPSULE_TOKEN_TYPES:
        return None
    content = token.get("c")
    if not isinstance(content, list) or len(content) != 1:
        return None
    inline = content[0]
    if not isinstance(inline, dict) or inline.get("t") != "Str":
        return None
    return inline.get("c") or ""


def split_delimited(source: str):
    """Split raw block text into (first line, inner lines, last line).

    The newline after the first line belongs to ``leading`` and the newline
    before the last line belongs to ``trailing``.
    """
    first_nl = source.find("\n")
    if first_nl < 0:
        return source, "", ""
    leading = source[: first_nl + 1]
    rest = source[first_nl + 1 :]
    last_nl = rest.rfind("\n")
    if last_nl < 0:
        return leading, "", rest
    return leading, rest[:last_nl], rest[last_nl:]


def strip_prefix(source: str, prefix: str) -> str:
    """Drop a container prefix (such as ``> ``) from the continuation lines of a block.

    Pandoc removes the prefix from a quoted block and adds it back on output,
    so text that lives inside the container must not carry it.
    """
    if not prefix:
        return source
    lines = source.split("\n")
    bare = prefix.rstrip()
    out = [lines[0]]
    for line in lines[1:]:
        if line.startswith(prefix):
            line = line[len(prefix) :]
        elif line == bare:
            line = ""
        out.append(line)
    return "\n".join(out)


class CapsuleFilter:
    """Detects, encodes and decodes one kind of raw markdown block."""

    type = ""
    name = ""
    node_type = ""
    pattern: re.Pattern | None = None
    default_leading = ""
    default_trailing = ""

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"

    def find(self, text: str, pos: int = 0):
        if pos > len(text):
            return None
        return self.pattern.search(text, pos)

    def extract(self, match: re.Match):
        return match.group("prefix") or "", match.group("body"), match.group("suffix") or ""

    def enclose(self, body: str) -> str:
        return body if body.endswith("\n") else body + "\n"

    def residual_text(self, record) -> str:
        return strip_prefix(record.source, record.prefix) + record.suffix

    def handle_text(self, text: str, registry) -> str:
        if not text or registry is None:
            return text
        parts = []
        cursor = 0
        pos = 0
        while True:
            match = find_placeholder(text, pos)
            if match is None:
                break
            pos = match.end()
            if match.group("type") != self.type:
                continue
            record = registry.resolve(match)
            if record is None:
                continue
            parts.append(text[cursor : match.start()])
            parts.append(self.residual_text(record))
            cursor = match.end()
            # The newline the scanner added after the placeholder goes with it.
            if text.startswith("\n", cursor):
                cursor += 1
            pos = cursor
        if not parts:
            return text
        parts.append(text[cursor:])
        return "".join(parts)

    def handle_token(self, token):
        text = single_text_run(token)
        if text is None:
            return None
        match = PLACEHOLDER_RE.fullmatch(text)
        if match is None or match.group("type") != self.type:
            return None
        return match.group(0)

    def split(self, source: str):
        return split_delimited(source)

    def wrap(self, content: str, leading: str | None = None, trailing: str | None = None) -> str:
        leading = self.default_leading if leading is None else leading
        trailing = self.default_trailing if trailing is None else trailing
        if content and not trailing.startswith("\n"):
            trailing = "\n" + trailing
        elif not content and trailing.startswith("\n"):
            trailing = trailing[1:]
        return leading + content + trailing

    def node_attrs(self, record) -> dict:
        return {}

    def write_node(self, writer, record) -> None:
        source = strip_prefix(record.source, record.prefix)
        leading, content, trailing = self.split(source)
        origin = CapsuleOrigin(
            type=self.type,
            source=source,
            leading=leading,
            content=content,
            trailing=trailing,
            suffix=record.suffix,
        )
        writer.open_node(self.node_type, self.node_attrs(record), capsule=origin)
        writer.write_text(content)
        writer.close_node()


class YamlMetadataFilter(CapsuleFilter):
    type = "E1819605-0ACD-4FAE-8B99-9C1B7BD7C0F1".lower()
    name = "yaml"
    node_type = "yaml_metadata"
    pattern = YAML_METADATA_RE
    default_leading = "---\n"
    default_trailing = "\n---"

    def find(self, text: str, pos: int = 0):
        # Metadata blocks open the document or follow a blank line.
        while True:
            match = super().find(text, pos)
            if match is None:
                return None
            start = match.start()
            if start == 0:
                return match
            line_start = text.rfind("\n", 0, start - 1) + 1
            previous_line = text[line_start : start - 1]
            if not previous_line.replace(">", "").strip():
                return match
            pos = start + 1

    def node_attrs(self, record) -> dict:
        return {"navigation_id": uuid.uuid4().hex}


class RmdChunkFilter(CapsuleFilter):
    type = "f9e3f3a4-6c1d-4d2b-9a57-2f1b3c0c7e21"
    name = "rmd"
    node_type = "rmd_chunk"
    pattern = RMD_CHUNK_RE
    default_leading = "```{r}\n"
    default_trailing = "\n```"

    def node_attrs(self, record) -> dict:
        match = RMD_HEADER_RE.match(record.source)
        return {"lang": match.group("lang") if match else ""}


class FencedDivFilter(CapsuleFilter):
    type = "8c0f4e1d-2b7a-4f6e-a3d9-5e2c7b1f0a94"
    name = "div"
    node_type = "fenced_div"
    pattern = FENCED_DIV_RE
    default_leading = "::: {}\n"
    default_trailing = "\n:::"

    def node_attrs(self, record) -> dict:
        first_line = record.source.split("\n", 1)[0]
        classes = [m.group("cls") for m in DIV_CLASS_RE.finditer(first_line)]
        if not classes:
            bare = DIV_BARE_CLASS_RE.match(first_line)
            if bare:
                classes = [bare.group("cls")]
        return {"classes": classes}


FILTER_CLASSES = {
    RmdChunkFilter.name: RmdChunkFilter,
    YamlMetadataFilter.name: YamlMetadataFilter,
    FencedDivFilter.name: FencedDivFilter,
}


def default_filters():
    return [cls() for cls in FILTER_CLASSES.values()]


def validate_filters(filters):
    seen = set()
    for capsule_filter in filters:
        if capsule_filter.type in seen:
            raise ValueError(f"duplicate capsule filter type: {capsule_filter.type}")
        seen.add(capsule_filter.type)
    return list(filters)


def resolve_filters(names):
    """Build filters from names (a comma-separated string or a list), keeping default order."""
    if names is None:
        return default_filters()
    if isinstance(names, str):
        names = [part for part in names.split(",")]
    wanted = [str(name).strip().lower() for name in names if str(name).strip()]
    unknown = [name for name in wanted if name not in FILTER_CLASSES]
    if unknown:
        known = ", ".join(FILTER_CLASSES)
        raise ValueError(f"unknown capsule filter(s): {', '.join(unknown)} (known: {known})")
    return [cls() for name, cls in FILTER_CLASSES.items() if name in wanted]


def filters_by_node_type(filters):
    return {capsule_filter.node_type: capsule_filter for capsule_filter in filters}


def filters_by_type(filters):
    return {capsule_filter.type: capsule_filter for capsule_filter in filters}
