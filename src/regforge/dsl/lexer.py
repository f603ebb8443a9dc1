from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List

from regforge.errors import ParseError


class TokenType(Enum):
    DOC = "doc"
    IDENT = "identifier"
    NUMBER = "number"
    FLOAT = "float"
    HASH = "#"
    LBRACKET = "["
    RBRACKET = "]"
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    COMMA = ","
    SEMI = ";"
    EQUALS = "="
    PATHSEP = "::"
    COLON = ":"
    RANGE_INCLUSIVE = "..="
    RANGE = ".."
    DOT = "."
    MINUS = "-"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: object
    line: int
    column: int

    def describe(self) -> str:
        if self.type is TokenType.EOF:
            return "end of input"
        return f"'{self.value}'"


# Order matters: longer punctuation first, float before integer.
_TOKEN_RE = re.compile(
    r"""
    (?P<doc>///(?!/)[^\n]*)
  | (?P<comment>//[^\n]*)
  | (?P<ws>[ \t\r]+)
  | (?P<newline>\n)
  | (?P<float>\d[\d_]*\.\d[\d_]*)
  | (?P<number>0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO][0-7_]+|\d[\d_]*)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<punct>\.\.=|\.\.|::|[\#\[\]\(\)\{\},;=:.\-])
    """,
    re.VERBOSE,
)

_PUNCT = {t.value: t for t in TokenType if not t.value.isalpha()}


def parse_int(text: str) -> int:
    return int(text.replace("_", ""), 0)


def tokenize(text: str, source: str = "<dsl>") -> List[Token]:
    return list(iter_tokens(text, source))


def iter_tokens(text: str, source: str = "<dsl>") -> Iterator[Token]:
    pos = 0
    line = 1
    line_start = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise ParseError(f"unexpected character {text[pos]!r}", line, pos - line_start + 1, source)
        kind = m.lastgroup
        lexeme = m.group()
        col = pos - line_start + 1
        pos = m.end()

        if kind == "newline":
            line += 1
            line_start = pos
        elif kind in ("ws", "comment"):
            continue
        elif kind == "doc":
            yield Token(TokenType.DOC, lexeme[3:].strip(), line, col)
        elif kind == "float":
            yield Token(TokenType.FLOAT, lexeme, line, col)
        elif kind == "number":
            try:
                value = parse_int(lexeme)
            except ValueError:
                raise ParseError(f"invalid integer literal {lexeme!r}", line, col, source) from None
            yield Token(TokenType.NUMBER, value, line, col)
        elif kind == "ident":
            yield Token(TokenType.IDENT, lexeme, line, col)
        else:
            yield Token(_PUNCT[lexeme], lexeme, line, col)

    yield Token(TokenType.EOF, None, line, pos - line_start + 1)
