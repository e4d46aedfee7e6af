"""
livescene/document/parser.py

Parses document markup into an ElementNode tree.

Built on the standard library HTMLParser for tokenization. HTMLParser folds
tag and attribute names to lower case and decodes attribute values, while
tag and attribute names here are type names and values are decoded later by
the deserializer, so the original spelling is recovered from the raw start
tag text.
"""

import html
import logging
import re
from html.parser import HTMLParser
from typing import List, Optional, Tuple

from livescene.document.model import Attribute, ElementNode, SceneDocument
from livescene.errors import DocumentParseError

logger = logging.getLogger(__name__)

_TAG_NAME = re.compile(r"<\s*([^\s/>]+)")
_ATTRIBUTE = re.compile(
    r"""([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+)))?"""
)


def split_start_tag(text: str) -> Tuple[str, List[Attribute]]:
    """Tag name and (name, raw value) pairs of a start tag, spelling preserved."""
    match = _TAG_NAME.match(text)
    if match is None:
        raise DocumentParseError(f"Malformed start tag {text!r}")
    tag = match.group(1)
    body = text[match.end():]
    if body.endswith(">"):
        body = body[:-1]
    body = body.rstrip()
    if body.endswith("/"):
        body = body[:-1]
    attributes: List[Attribute] = []
    for attr in _ATTRIBUTE.finditer(body):
        name = attr.group(1)
        if attr.group(2) is not None:
            value: Optional[str] = attr.group(2)
        elif attr.group(3) is not None:
            value = attr.group(3)
        else:
            value = attr.group(4)
        attributes.append((name, value))
    return tag, attributes


class _TreeBuilder(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.roots: List[ElementNode] = []
        self.stack: List[ElementNode] = []
        self.text_parts: List[List[str]] = []

    def _open(self) -> ElementNode:
        tag, attributes = split_start_tag(self.get_starttag_text() or "")
        element = ElementNode(tag=tag)
        for name, value in attributes:
            if name == "id":
                element.id = html.unescape(value or "")
            else:
                element.attributes.append((name, value))
        if self.stack:
            self.stack[-1].children.append(element)
        else:
            self.roots.append(element)
        return element

    def handle_starttag(self, tag, attrs):
        self.stack.append(self._open())
        self.text_parts.append([])

    def handle_startendtag(self, tag, attrs):
        self._open()

    def handle_endtag(self, tag):
        if not self.stack:
            raise DocumentParseError(f"Closing tag </{tag}> without an open element")
        element = self.stack[-1]
        if element.tag.lower() != tag:
            raise DocumentParseError(f"Closing tag </{tag}> does not match <{element.tag}>")
        self.stack.pop()
        text = " ".join(" ".join(self.text_parts.pop()).split())
        element.text = text or None

    def handle_data(self, data):
        if self.stack:
            self.text_parts[-1].append(data)
        elif data.strip():
            raise DocumentParseError(f"Text outside of the root element: {data.strip()!r}")


def parse_document(markup: str, source: str = "memory://") -> SceneDocument:
    """
    Parse markup holding exactly one root element.

    Raises:
        DocumentParseError: malformed markup, unclosed elements or not exactly one root
    """
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    if builder.stack:
        raise DocumentParseError(f"Unclosed element <{builder.stack[-1].tag}> in {source}")
    if len(builder.roots) != 1:
        raise DocumentParseError(f"Expected exactly one root element in {source}, found {len(builder.roots)}")
    logger.debug(f"[DocumentParser] Parsed {source}")
    return SceneDocument(root=builder.roots[0], source=source)
