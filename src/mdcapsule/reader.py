from __future__ import annotations

import json

from .document import DocumentWriter, Node, make_mark

INLINE_MARKS = {
    "Emph": "em",
    "Strong": "strong",
    "Strikeout": "strikeout",
    "Superscript": "superscript",
    "Subscript": "subscript",
    "SmallCaps": "smallcaps",
    "Underline": "underline",
}


def attr_json(attr) -> str:
    return json.dumps(attr, ensure_ascii=False)


class PandocTreeReader:
    """Translates a pandoc JSON AST into a ``Node`` tree.

    Every block token is offered to the interceptor before generic
    translation; every piece of text goes through the residual decoder.
    """

    def __init__(self, interceptor=None, decoder=None):
        self.interceptor = interceptor
        self.decoder = decoder

    def read(self, doc) -> Node:
        writer = DocumentWriter(
            {
                "api_version": doc.get("pandoc-api-version"),
                "meta": doc.get("meta") or {},
            }
        )
        self.write_blocks(doc.get("blocks") or [], writer)
        return writer.finish()

    def text(self, value) -> str:
        value = value or ""
        if self.decoder is None:
            return value
        return self.decoder.decode(value)

    def read_attr(self, attr):
        if not isinstance(attr, list) or len(attr) != 3:
            return ["", [], []]
        identifier, classes, kvs = attr
        return [
            self.text(identifier),
            [self.text(cls) for cls in classes or []],
            [[self.text(key), self.text(value)] for key, value in kvs or []],
        ]

    def write_blocks(self, blocks, writer):
        for block in blocks or []:
            if not isinstance(block, dict):
                continue
            if self.interceptor is not None and self.interceptor.intercept(block, writer):
                continue
            self.write_block(block, writer)

    def write_block(self, block, writer):
        t = block.get("t")
        c = block.get("c")
        if t in {"Para", "Plain"}:
            writer.open_node("paragraph" if t == "Para" else "plain")
            self.write_inlines(c, writer)
            writer.close_node()
        elif t == "Header":
            level, attr, inlines = c
            writer.open_node("heading", {"level": level, "attr": self.read_attr(attr)})
            self.write_inlines(inlines, writer)
            writer.close_node()
        elif t == "CodeBlock":
            attr, code = c
            writer.add_node("code_block", {"attr": self.read_attr(attr)}, text=self.text(code))
        elif t == "RawBlock":
            fmt, raw = c
            writer.add_node("raw_block", {"format": fmt}, text=self.text(raw))
        elif t == "BlockQuote":
            writer.open_node("blockquote")
            self.write_blocks(c, writer)
            writer.close_node()
        elif t == "BulletList":
            writer.open_node("bullet_list")
            self.write_list_items(c, writer)
            writer.close_node()
        elif t == "OrderedList":
            (start, style, delim), items = c
            writer.open_node(
                "ordered_list",
                {"start": start, "style": style.get("t"), "delim": delim.get("t")},
            )
            self.write_list_items(items, writer)
            writer.close_node()
        elif t == "DefinitionList":
            writer.open_node("definition_list")
            for term, definitions in c:
                writer.open_node("definition_item")
                writer.open_node("definition_term")
                self.write_inlines(term, writer)
                writer.close_node()
                for definition in definitions:
                    writer.open_node("definition_description")
                    self.write_blocks(definition, writer)
                    writer.close_node()
                writer.close_node()
            writer.close_node()
        elif t == "LineBlock":
            writer.open_node("line_block")
            for line in c:
                writer.open_node("line")
                self.write_inlines(line, writer)
                writer.close_node()
            writer.close_node()
        elif t == "HorizontalRule":
            writer.add_node("horizontal_rule")
        elif t == "Div":
            attr, blocks = c
            writer.open_node("div", {"attr": self.read_attr(attr)})
            self.write_blocks(blocks, writer)
            writer.close_node()
        elif t == "Figure":
            attr, caption, blocks = c
            writer.open_node("figure", {"attr": self.read_attr(attr)})
            self.write_caption(caption, writer)
            self.write_blocks(blocks, writer)
            writer.close_node()
        elif t == "Table":
            self.write_table(c, writer)
        elif t == "Null":
            return
        else:
            writer.add_node("unknown_block", {"pandoc": block})

    def write_list_items(self, items, writer):
        for item in items or []:
            writer.open_node("list_item")
            self.write_blocks(item, writer)
            writer.close_node()

    def write_caption(self, caption, writer):
        short, blocks = caption
        writer.open_node("caption", {"short": short})
        self.write_blocks(blocks, writer)
        writer.close_node()

    def write_rows(self, rows, writer, section):
        for attr, cells in rows or []:
            writer.open_node("table_row", {"attr": self.read_attr(attr), "section": section})
            for cell_attr, align, rowspan, colspan, blocks in cells:
                writer.open_node(
                    "table_cell",
                    {
                        "attr": self.read_attr(cell_attr),
                        "align": align.get("t"),
                        "rowspan": rowspan,
                        "colspan": colspan,
                    },
                )
                self.write_blocks(blocks, writer)
                writer.close_node()
            writer.close_node()

    def write_table(self, c, writer):
        attr, caption, colspecs, head, bodies, foot = c
        writer.open_node("table", {"attr": self.read_attr(attr), "colspecs": colspecs})
        self.write_caption(caption, writer)
        head_attr, head_rows = head
        writer.open_node("table_head", {"attr": self.read_attr(head_attr)})
        self.write_rows(head_rows, writer, "head")
        writer.close_node()
        for body_attr, row_head_columns, intermediate_rows, body_rows in bodies:
            writer.open_node(
                "table_body",
                {"attr": self.read_attr(body_attr), "row_head_columns": row_head_columns},
            )
            self.write_rows(intermediate_rows, writer, "head")
            self.write_rows(body_rows, writer, "body")
            writer.close_node()
        foot_attr, foot_rows = foot
        writer.open_node("table_foot", {"attr": self.read_attr(foot_attr)})
        self.write_rows(foot_rows, writer, "foot")
        writer.close_node()
        writer.close_node()

    def open_inline(self, writer, node_type, attrs, marks):
        node = writer.open_node(node_type, attrs)
        node.marks = tuple(marks)
        return node

    def write_inlines(self, inlines, writer, marks=()):
        for node in inlines or []:
            if not isinstance(node, dict):
                continue
            t = node.get("t")
            c = node.get("c")
            if t == "Str":
                writer.write_text(self.text(c), marks)
            elif t == "Space":
                writer.write_text(" ", marks)
            elif t == "SoftBreak":
                writer.write_text("\n", marks)
            elif t in INLINE_MARKS:
                self.write_inlines(c, writer, marks + (make_mark(INLINE_MARKS[t]),))
            elif t == "Quoted":
                quote_type, nested = c
                self.write_inlines(nested, writer, marks + (make_mark("quoted", quote=quote_type.get("t")),))
            elif t == "Cite":
                citations, nested = c
                cite = make_mark("cite", citations=json.dumps(citations, ensure_ascii=False))
                self.write_inlines(nested, writer, marks + (cite,))
            elif t == "Span":
                attr, nested = c
                span = make_mark("span", attr=attr_json(self.read_attr(attr)))
                self.write_inlines(nested, writer, marks + (span,))
            elif t == "Link":
                attr, nested, (url, title) = c
                link = make_mark(
                    "link",
                    attr=attr_json(self.read_attr(attr)),
                    href=self.text(url),
                    title=self.text(title),
                )
                self.write_inlines(nested, writer, marks + (link,))
            elif t == "Code":
                attr, code = c
                writer.write_text(
                    self.text(code),
                    marks + (make_mark("code", attr=attr_json(self.read_attr(attr))),),
                )
            elif t == "LineBreak":
                self.open_inline(writer, "hard_break", None, marks)
                writer.close_node()
            elif t == "Math":
                math_type, formula = c
                self.open_inline(writer, "math", {"display": math_type.get("t") == "DisplayMath"}, marks)
                writer.write_text(self.text(formula))
                writer.close_node()
            elif t == "RawInline":
                fmt, raw = c
                self.open_inline(writer, "raw_inline", {"format": fmt}, marks)
                writer.write_text(self.text(raw))
                writer.close_node()
            elif t == "Image":
                attr, nested, (url, title) = c
                self.open_inline(
                    writer,
                    "image",
                    {"attr": self.read_attr(attr), "src": self.text(url), "title": self.text(title)},
                    marks,
                )
                self.write_inlines(nested, writer)
                writer.close_node()
            elif t == "Note":
                self.open_inline(writer, "footnote", None, marks)
                self.write_blocks(c, writer)
                writer.close_node()
            else:
                self.open_inline(writer, "unknown_inline", {"pandoc": node}, marks)
                writer.close_node()
