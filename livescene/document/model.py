"""
livescene/document/model.py
The input document: a tree of elements, each a tag with ordered attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

# (attribute name, raw value or None when written bare)
Attribute = Tuple[str, Optional[str]]


@dataclass
class ElementNode:
    tag: str
    attributes: List[Attribute] = field(default_factory=list)
    id: Optional[str] = None
    children: List["ElementNode"] = field(default_factory=list)
    # Literal text content; only kept when the element has no child elements
    text: Optional[str] = None

    def attribute(self, name: str) -> Optional[str]:
        for key, value in self.attributes:
            if key == name:
                return value
        return None

    def has_attribute(self, name: str) -> bool:
        return any(key == name for key, _ in self.attributes)

    def walk(self) -> Iterator["ElementNode"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_markup(self, indent: int = 0) -> str:
        pad = "  " * indent
        parts = [self.tag]
        if self.id is not None:
            parts.append(f'id="{_escape(self.id)}"')
        for key, value in self.attributes:
            parts.append(key if value is None else f'{key}="{_escape_raw(value)}"')
        opening = f"{pad}<{' '.join(parts)}>"
        if not self.children:
            return f"{opening}{_escape_text(self.text or '')}</{self.tag}>"
        inner = "\n".join(child.to_markup(indent + 1) for child in self.children)
        return f"{opening}\n{inner}\n{pad}</{self.tag}>"


@dataclass
class SceneDocument:
    """A parsed document; `source` is where it came from (a path or memory:// key)."""
    root: ElementNode
    source: str = "memory://"

    def to_markup(self) -> str:
        return self.root.to_markup()

    def element_count(self) -> int:
        return sum(1 for _ in self.root.walk())


def _escape(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;")


def _escape_raw(value: str) -> str:
    # Raw attribute values are still entity-encoded; only the delimiter needs care.
    return value.replace('"', "&quot;")


def _escape_text(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
