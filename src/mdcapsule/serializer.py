from __future__ import annotations

import json

from .document import Node, mark_type
from .filters import default_filters, filters_by_node_type, filters_by_type
from .reader import INLINE_MARKS

DEFAULT_PANDOC_API_VERSION = (1, 23, 1)
EMPTY_ATTR = ["", [], []]
MARK_TOKENS = {name: token for token, name in INLINE_MARKS.items()}


def text_to_pandoc_inlines(text: str):
    if not text:
        return []
    out = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\n":
            out.append({"t": "SoftBreak"})
            i += 1
            continue
        if ch in " \t":
            while i < n and text[i] in " \t":
                i += 1
            out.append({"t": "Space"})
            continue
        j = i
        while j < n and text[j] not in " \t\n":
            j += 1
        out.append({"t": "Str", "c": text[i:j]})
        i = j
    return out


class PandocTreeWriter:
    """Serializes a ``Node`` tree to a pandoc JSON AST.

    Nodes built from a capsule skip the generic writer for their kind and
    become a raw block holding their markdown text, so pandoc copies them
    into the output unchanged.
    """

    def __init__(self, filters=None, raw_format: str = "markdown"):
        self.filters = list(filters) if filters is not None else default_filters()
        self.raw_format = raw_format
        self.bypassed = 0
        self._filters_by_type = filters_by_type(self.filters)
        self._filters_by_node_type = filters_by_node_type(self.filters)
        self._block_writers = {
            "paragraph": lambda node: {"t": "Para", "c": self.write_inlines(node.children)},
            "plain": lambda node: {"t": "Plain", "c": self.write_inlines(node.children)},
            "heading": self.write_heading,
            "code_block": lambda node: {"t": "CodeBlock", "c": [node.attrs.get("attr") or EMPTY_ATTR, node.text_content()]},
            "raw_block": lambda node: {"t": "RawBlock", "c": [node.attrs.get("format") or "", node.text_content()]},
            "blockquote": lambda node: {"t": "BlockQuote", "c": self.write_blocks(node.children)},
            "bullet_list": lambda node: {"t": "BulletList", "c": self.write_list_items(node)},
            "ordered_list": self.write_ordered_list,
            "definition_list": self.write_definition_list,
            "line_block": lambda node: {"t": "LineBlock", "c": [self.write_inlines(line.children) for line in node.children]},
            "horizontal_rule": lambda node: {"t": "HorizontalRule"},
            "div": lambda node: {"t": "Div", "c": [node.attrs.get("attr") or EMPTY_ATTR, self.write_blocks(node.children)]},
            "figure": self.write_figure,
            "table": self.write_table,
            "unknown_block": lambda node: node.attrs["pandoc"],
        }

    def write(self, doc: Node, api_version=None) -> dict:
        version = doc.attrs.get("api_version") or api_version or DEFAULT_PANDOC_API_VERSION
        return {
            "pandoc-api-version": list(version),
            "meta": doc.attrs.get("meta") or {},
            "blocks": self.write_blocks(doc.children),
        }

    def capsule_text(self, node: Node) -> str:
        """Markdown text for a capsule node: original bytes unless the content was edited."""
        origin = node.capsule
        content = node.text_content()
        if content == origin.content:
            return origin.source + origin.suffix
        capsule_filter = self._filters_by_type.get(origin.type)
        if capsule_filter is None:
            return origin.leading + content + origin.trailing + origin.suffix
        return capsule_filter.wrap(content, origin.leading, origin.trailing) + origin.suffix

    def raw_block(self, text: str, capsule_filter=None) -> dict:
        """Raw block payloads end with a newline so pandoc keeps the blank line after them."""
        self.bypassed += 1
        if capsule_filter is not None:
            text = capsule_filter.enclose(text)
        elif not text.endswith("\n"):
            text += "\n"
        return {"t": "RawBlock", "c": [self.raw_format, text]}

    def write_block(self, node: Node) -> dict:
        if node.capsule is not None:
            capsule_filter = self._filters_by_type.get(node.capsule.type)
            return self.raw_block(self.capsule_text(node), capsule_filter)
        capsule_filter = self._filters_by_node_type.get(node.type)
        if capsule_filter is not None:
            return self.raw_block(capsule_filter.wrap(node.text_content()), capsule_filter)
        writer = self._block_writers.get(node.type)
        if writer is None:
            raise ValueError(f"no pandoc writer for block node type {node.type!r}")
        return writer(node)

    def write_blocks(self, nodes) -> list:
        return [self.write_block(node) for node in nodes]

    def write_heading(self, node: Node) -> dict:
        return {
            "t": "Header",
            "c": [node.attrs.get("level", 1), node.attrs.get("attr") or EMPTY_ATTR, self.write_inlines(node.children)],
        }

    def write_list_items(self, node: Node) -> list:
        return [self.write_blocks(item.children) for item in node.children]

    def write_ordered_list(self, node: Node) -> dict:
        list_attrs = [
            node.attrs.get("start", 1),
            {"t": node.attrs.get("style") or "DefaultStyle"},
            {"t": node.attrs.get("delim") or "DefaultDelim"},
        ]
        return {"t": "OrderedList", "c": [list_attrs, self.write_list_items(node)]}

    def write_definition_list(self, node: Node) -> dict:
        items = []
        for item in node.children:
            term = []
            definitions = []
            for part in item.children:
                if part.type == "definition_term":
                    term = self.write_inlines(part.children)
                else:
                    definitions.append(self.write_blocks(part.children))
            items.append([term, definitions])
        return {"t": "DefinitionList", "c": items}

    def write_caption(self, caption: Node | None) -> list:
        if caption is None:
            return [None, []]
        return [caption.attrs.get("short"), self.write_blocks(caption.children)]

    def write_figure(self, node: Node) -> dict:
        caption = next((child for child in node.children if child.type == "caption"), None)
        blocks = [child for child in node.children if child.type != "caption"]
        return {
            "t": "Figure",
            "c": [node.attrs.get("attr") or EMPTY_ATTR, self.write_caption(caption), self.write_blocks(blocks)],
        }

    def write_rows(self, rows) -> list:
        out = []
        for row in rows:
            cells = []
            for cell in row.children:
                cells.append(
                    [
                        cell.attrs.get("attr") or EMPTY_ATTR,
                        {"t": cell.attrs.get("align") or "AlignDefault"},
                        cell.attrs.get("rowspan", 1),
                        cell.attrs.get("colspan", 1),
                        self.write_blocks(cell.children),
                    ]
                )
            out.append([row.attrs.get("attr") or EMPTY_ATTR, cells])
        return out

    def write_table(self, node: Node) -> dict:
        caption = None
        head = [EMPTY_ATTR, []]
        bodies = []
        foot = [EMPTY_ATTR, []]
        for child in node.children:
            attr = child.attrs.get("attr") or EMPTY_ATTR
            if child.type == "caption":
                caption = child
            elif child.type == "table_head":
                head = [attr, self.write_rows(child.children)]
            elif child.type == "table_body":
                head_rows = [row for row in child.children if row.attrs.get("section") == "head"]
                body_rows = [row for row in child.children if row.attrs.get("section") != "head"]
                bodies.append(
                    [attr, child.attrs.get("row_head_columns", 0), self.write_rows(head_rows), self.write_rows(body_rows)]
                )
            elif child.type == "table_foot":
                foot = [attr, self.write_rows(child.children)]
        return {
            "t": "Table",
            "c": [
                node.attrs.get("attr") or EMPTY_ATTR,
                self.write_caption(caption),
                node.attrs.get("colspecs") or [],
                head,
                bodies,
                foot,
            ],
        }

    def wrap_mark(self, mark, inlines) -> dict:
        attrs = dict(mark)
        kind = attrs.get("type")
        if kind in MARK_TOKENS:
            return {"t": MARK_TOKENS[kind], "c": inlines}
        if kind == "quoted":
            return {"t": "Quoted", "c": [{"t": attrs.get("quote") or "DoubleQuote"}, inlines]}
        if kind == "cite":
            return {"t": "Cite", "c": [json.loads(attrs.get("citations") or "[]"), inlines]}
        if kind == "span":
            return {"t": "Span", "c": [json.loads(attrs["attr"]), inlines]}
        if kind == "link":
            return {
                "t": "Link",
                "c": [json.loads(attrs["attr"]), inlines, [attrs.get("href") or "", attrs.get("title") or ""]],
            }
        raise ValueError(f"no pandoc writer for mark {kind!r}")

    def write_inline(self, node: Node) -> list:
        if node.is_text:
            return text_to_pandoc_inlines(node.text or "")
        if node.type == "hard_break":
            return [{"t": "LineBreak"}]
        if node.type == "math":
            math_type = "DisplayMath" if node.attrs.get("display") else "InlineMath"
            return [{"t": "Math", "c": [{"t": math_type}, node.text_content()]}]
        if node.type == "raw_inline":
            return [{"t": "RawInline", "c": [node.attrs.get("format") or "", node.text_content()]}]
        if node.type == "image":
            target = [node.attrs.get("src") or "", node.attrs.get("title") or ""]
            return [{"t": "Image", "c": [node.attrs.get("attr") or EMPTY_ATTR, self.write_inlines(node.children), target]}]
        if node.type == "footnote":
            return [{"t": "Note", "c": self.write_blocks(node.children)}]
        if node.type == "unknown_inline":
            return [node.attrs["pandoc"]]
        raise ValueError(f"no pandoc writer for inline node type {node.type!r}")

    def write_inlines(self, nodes, depth: int = 0) -> list:
        """Write inline nodes, nesting runs that share a mark at ``depth`` under one wrapper."""
        out = []
        i = 0
        while i < len(nodes):
            node = nodes[i]
            if len(node.marks) <= depth:
                out.extend(self.write_inline(node))
                i += 1
                continue
            mark = node.marks[depth]
            if mark_type(mark) == "code":
                out.append({"t": "Code", "c": [json.loads(dict(mark)["attr"]), node.text_content()]})
                i += 1
                continue
            j = i + 1
            while j < len(nodes) and len(nodes[j].marks) > depth and nodes[j].marks[depth] == mark:
                j += 1
            out.append(self.wrap_mark(mark, self.write_inlines(nodes[i:j], depth + 1)))
            i = j
        return out
