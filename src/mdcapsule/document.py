from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CapsuleOrigin:
    """Copy of the capsule a dedicated node was built from.

    ``leading + content + trailing == source``; ``suffix`` is the whitespace
    that followed the closing delimiter. The node keeps this after the pass
    registry is gone.
    """

    type: str
    source: str
    leading: str
    content: str
    trailing: str
    suffix: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "source": self.source,
            "leading": self.leading,
            "content": self.content,
            "trailing": self.trailing,
            "suffix": self.suffix,
        }


@dataclass
class Node:
    type: str
    attrs: dict = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)
    text: str | None = None
    marks: tuple = ()
    capsule: CapsuleOrigin | None = None

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    def text_content(self) -> str:
        if self.is_text:
            return self.text or ""
        return "".join(child.text_content() for child in self.children)

    def set_text_content(self, text: str) -> None:
        """Replace all children with a single text run (empty text clears them)."""
        self.children = [Node("text", text=text)] if text else []

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    def find_all(self, node_type: str) -> list[Node]:
        return [node for node in self.walk() if node.type == node_type]

    def to_dict(self) -> dict:
        out = {"type": self.type}
        if self.attrs:
            out["attrs"] = self.attrs
        if self.marks:
            out["marks"] = [dict(mark) for mark in self.marks]
        if self.is_text:
            out["text"] = self.text or ""
            return out
        if self.capsule is not None:
            out["capsule"] = self.capsule.to_dict()
        if self.children:
            out["children"] = [child.to_dict() for child in self.children]
        return out


def make_mark(mark_type: str, **attrs):
    """Marks are hashable so runs of text can be compared and grouped."""
    return (("type", mark_type),) + tuple(sorted(attrs.items()))


def mark_type(mark) -> str:
    return dict(mark).get("type", "")


class DocumentWriter:
    """Builds a ``Node`` tree from open/close/write calls made during a token walk."""

    def __init__(self, doc_attrs=None):
        self.root = Node("doc", attrs=dict(doc_attrs or {}))
        self._stack = [self.root]

    @property
    def current(self) -> Node:
        return self._stack[-1]

    def open_node(self, node_type: str, attrs=None, capsule: CapsuleOrigin | None = None) -> Node:
        node = Node(node_type, attrs=dict(attrs or {}), capsule=capsule)
        self.current.children.append(node)
        self._stack.append(node)
        return node

    def close_node(self) -> Node:
        if len(self._stack) == 1:
            raise ValueError("close_node called with no open node")
        return self._stack.pop()

    def add_node(self, node_type: str, attrs=None, text: str | None = None) -> Node:
        node = Node(node_type, attrs=dict(attrs or {}))
        if text:
            node.set_text_content(text)
        self.current.children.append(node)
        return node

    def write_text(self, text: str, marks=()) -> None:
        if not text:
            return
        siblings = self.current.children
        marks = tuple(marks)
        if siblings and siblings[-1].is_text and siblings[-1].marks == marks:
            siblings[-1].text += text
            return
        siblings.append(Node("text", text=text, marks=marks))

    def finish(self) -> Node:
        if len(self._stack) != 1:
            open_types = ", ".join(node.type for node in self._stack[1:])
            raise ValueError(f"document finished with unclosed nodes: {open_types}")
        return self.root
