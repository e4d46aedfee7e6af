"""
livescene/notation/parser.py

Parses attribute values written in the compact nested-literal notation:

    3                       -> Literal(3)
    "#222"                  -> Literal("#222")
    Center                  -> Ident("Center")
    (1, 2)  [1, 2]          -> Seq
    (size: 30)  {size: 30}  -> FieldMap
    Px(10)  All(Px(10))     -> Tagged
    Rect{w: 1, h: 2}        -> Tagged with a FieldMap payload

The syntax tree is shape-agnostic; the deserializer decides what each node
means for the type it is constructing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from livescene.errors import ValueSyntaxError
from livescene.notation.lexer import Token, TokenKind, tokenize, unquote


@dataclass(frozen=True)
class Literal:
    value: Any

    def to_python(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Ident:
    name: str

    def to_python(self) -> Any:
        return self.name


@dataclass(frozen=True)
class Seq:
    items: Tuple["ValueNode", ...]
    bracketed: bool = False

    def to_python(self) -> Any:
        values = [item.to_python() for item in self.items]
        return values if self.bracketed else tuple(values)


@dataclass(frozen=True)
class FieldMap:
    entries: Tuple[Tuple[str, "ValueNode"], ...] = field(default_factory=tuple)

    def to_python(self) -> Any:
        return {key: value.to_python() for key, value in self.entries}


@dataclass(frozen=True)
class Tagged:
    name: str
    payload: Union[Seq, FieldMap]

    def to_python(self) -> Any:
        return {self.name: self.payload.to_python()}


ValueNode = Union[Literal, Ident, Seq, FieldMap, Tagged]


class ValueParser:
    def __init__(self, source: str):
        self.source = source
        self.tokens: List[Token] = tokenize(source)
        self.pos = 0

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self) -> Token:
        if self.pos + 1 < len(self.tokens):
            return self.tokens[self.pos + 1]
        return self.tokens[-1]

    def advance(self) -> Token:
        tok = self.current()
        self.pos += 1
        return tok

    def expect(self, kind: TokenKind) -> Token:
        tok = self.current()
        if tok.kind != kind:
            raise ValueSyntaxError(self.source, tok.start, f"Expected '{kind.value}', got '{tok.value or 'end of input'}'")
        return self.advance()

    def parse(self) -> ValueNode:
        node = self.parse_value()
        if self.current().kind != TokenKind.EOF:
            tok = self.current()
            raise ValueSyntaxError(self.source, tok.start, f"Unexpected trailing '{tok.value}'")
        return node

    def parse_value(self) -> ValueNode:
        tok = self.current()
        if tok.kind == TokenKind.INT:
            self.advance()
            return Literal(self._number(tok, int))
        if tok.kind == TokenKind.FLOAT:
            self.advance()
            return Literal(self._number(tok, float))
        if tok.kind == TokenKind.STRING:
            self.advance()
            return Literal(unquote(tok, self.source))
        if tok.kind == TokenKind.TRUE:
            self.advance()
            return Literal(True)
        if tok.kind == TokenKind.FALSE:
            self.advance()
            return Literal(False)
        if tok.kind == TokenKind.IDENT:
            self.advance()
            if self.current().kind == TokenKind.LPAREN:
                return Tagged(tok.value, self.parse_group())
            if self.current().kind == TokenKind.LBRACE:
                return Tagged(tok.value, self.parse_braced())
            return Ident(tok.value)
        if tok.kind == TokenKind.LPAREN:
            return self.parse_group()
        if tok.kind == TokenKind.LBRACKET:
            return self.parse_list()
        if tok.kind == TokenKind.LBRACE:
            return self.parse_braced()
        raise ValueSyntaxError(self.source, tok.start, f"Expected a value, got '{tok.value or 'end of input'}'")

    def _number(self, tok: Token, convert) -> Any:
        try:
            return convert(tok.value)
        except (ValueError, OverflowError) as e:
            raise ValueSyntaxError(self.source, tok.start, f"Invalid number: {e}") from e

    def _starts_field(self) -> bool:
        return (
            self.current().kind in (TokenKind.IDENT, TokenKind.STRING)
            and self.peek().kind == TokenKind.COLON
        )

    def parse_group(self) -> Union[Seq, FieldMap]:
        """Parenthesized group: a field map when it opens with `key:`, else a tuple."""
        self.expect(TokenKind.LPAREN)
        if self._starts_field():
            entries = self._parse_entries(TokenKind.RPAREN)
            self.expect(TokenKind.RPAREN)
            return FieldMap(entries)
        items = self._parse_items(TokenKind.RPAREN)
        self.expect(TokenKind.RPAREN)
        return Seq(items)

    def parse_list(self) -> Seq:
        self.expect(TokenKind.LBRACKET)
        items = self._parse_items(TokenKind.RBRACKET)
        self.expect(TokenKind.RBRACKET)
        return Seq(items, bracketed=True)

    def parse_braced(self) -> FieldMap:
        self.expect(TokenKind.LBRACE)
        entries = self._parse_entries(TokenKind.RBRACE)
        self.expect(TokenKind.RBRACE)
        return FieldMap(entries)

    def _parse_items(self, closer: TokenKind) -> Tuple[ValueNode, ...]:
        items = []
        while self.current().kind != closer:
            items.append(self.parse_value())
            if self.current().kind != TokenKind.COMMA:
                break
            self.advance()
        return tuple(items)

    def _parse_entries(self, closer: TokenKind) -> Tuple[Tuple[str, ValueNode], ...]:
        entries = []
        while self.current().kind != closer:
            key_tok = self.current()
            if key_tok.kind == TokenKind.IDENT:
                key = key_tok.value
            elif key_tok.kind == TokenKind.STRING:
                key = unquote(key_tok, self.source)
            else:
                raise ValueSyntaxError(self.source, key_tok.start, f"Expected a field name, got '{key_tok.value or 'end of input'}'")
            self.advance()
            self.expect(TokenKind.COLON)
            entries.append((key, self.parse_value()))
            if self.current().kind != TokenKind.COMMA:
                break
            self.advance()
        return tuple(entries)


def parse_value(text: str) -> ValueNode:
    """Parse one value; raises ValueSyntaxError on malformed input."""
    return ValueParser(text).parse()


def function_pair(node: ValueNode) -> Optional[Tuple[str, ValueNode]]:
    """Read `("function_name", argument)`; None when the node has another form."""
    if isinstance(node, Seq) and not node.bracketed and len(node.items) == 2:
        head = node.items[0]
        if isinstance(head, Literal) and isinstance(head.value, str):
            return head.value, node.items[1]
    return None
