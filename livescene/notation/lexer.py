"""Tokenizer for the compact attribute value notation."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List

from livescene.errors import ValueSyntaxError


class TokenKind(Enum):
    INT = "INT"
    FLOAT = "FLOAT"
    STRING = "STRING"
    TRUE = "true"
    FALSE = "false"
    IDENT = "IDENT"
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    COLON = ":"
    COMMA = ","
    EOF = "EOF"


@dataclass
class Token:
    kind: TokenKind
    value: str
    start: int


# Order matters: floats before ints, keywords before identifiers
_PATTERNS = [
    (re.compile(r'[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?|[+-]?\d+[eE][+-]?\d+'), TokenKind.FLOAT),
    (re.compile(r'[+-]?\d+'), TokenKind.INT),
    (re.compile(r'"(?:[^"\\]|\\.)*"'), TokenKind.STRING),
    (re.compile(r'true\b'), TokenKind.TRUE),
    (re.compile(r'false\b'), TokenKind.FALSE),
    (re.compile(r'[A-Za-z_][A-Za-z0-9_]*'), TokenKind.IDENT),
    (re.compile(r'\('), TokenKind.LPAREN),
    (re.compile(r'\)'), TokenKind.RPAREN),
    (re.compile(r'\{'), TokenKind.LBRACE),
    (re.compile(r'\}'), TokenKind.RBRACE),
    (re.compile(r'\['), TokenKind.LBRACKET),
    (re.compile(r'\]'), TokenKind.RBRACKET),
    (re.compile(r':'), TokenKind.COLON),
    (re.compile(r','), TokenKind.COMMA),
]

_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
}


def tokenize(source: str) -> List[Token]:
    tokens = []
    pos = 0
    while pos < len(source):
        if source[pos].isspace():
            pos += 1
            continue
        for regex, kind in _PATTERNS:
            match = regex.match(source, pos)
            if match:
                tokens.append(Token(kind=kind, value=match.group(0), start=pos))
                pos = match.end()
                break
        else:
            if source[pos] == '"':
                raise ValueSyntaxError(source, pos, "Unterminated string")
            raise ValueSyntaxError(source, pos, f"Unexpected character '{source[pos]}'")
    tokens.append(Token(TokenKind.EOF, "", pos))
    return tokens


def unquote(token: Token, source: str) -> str:
    """Decode a STRING token's body, resolving backslash escapes."""
    body = token.value[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
        elif nxt == "u" and body[i + 2:i + 3] == "{":
            close = body.find("}", i + 3)
            if close < 0:
                raise ValueSyntaxError(source, token.start + i + 1, "Unterminated unicode escape")
            try:
                out.append(chr(int(body[i + 3:close], 16)))
            except (ValueError, OverflowError):
                raise ValueSyntaxError(source, token.start + i + 1, "Invalid unicode escape")
            i = close + 1
        else:
            raise ValueSyntaxError(source, token.start + i + 1, f"Unknown escape '\\{nxt}'")
    return "".join(out)
