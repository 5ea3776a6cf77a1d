"""Token kinds and token representation for the TOML lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tomlstruct.source import Span


class TokenKind(Enum):
    # Layout
    NEWLINE = auto()
    EOF = auto()

    # Punctuation
    EQUALS = auto()
    DOT = auto()
    COMMA = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    DOUBLE_LBRACKET = auto()
    DOUBLE_RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()

    # Words
    BARE = auto()
    STRING = auto()

    def describe(self) -> str:
        return _DESCRIPTIONS[self]


class StringStyle(Enum):
    BASIC = "basic"
    LITERAL = "literal"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span
    style: StringStyle | None = None
    multiline: bool = False

    def describe(self) -> str:
        if self.kind == TokenKind.BARE:
            return f"`{self.value}`"
        if self.kind == TokenKind.STRING and self.multiline:
            return "a multiline string"
        return self.kind.describe()


_DESCRIPTIONS: dict[TokenKind, str] = {
    TokenKind.NEWLINE: "a newline",
    TokenKind.EOF: "eof",
    TokenKind.EQUALS: "an equals",
    TokenKind.DOT: "a period",
    TokenKind.COMMA: "a comma",
    TokenKind.LBRACKET: "a left bracket",
    TokenKind.RBRACKET: "a right bracket",
    TokenKind.DOUBLE_LBRACKET: "a double left bracket",
    TokenKind.DOUBLE_RBRACKET: "a double right bracket",
    TokenKind.LBRACE: "a left brace",
    TokenKind.RBRACE: "a right brace",
    TokenKind.BARE: "an identifier",
    TokenKind.STRING: "a string",
}

PUNCTUATION: dict[str, TokenKind] = {
    "=": TokenKind.EQUALS,
    ".": TokenKind.DOT,
    ",": TokenKind.COMMA,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
}

BARE_KEY_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"
)
VALUE_CHARS = BARE_KEY_CHARS | frozenset("+.:")

ESCAPES: dict[str, str] = {
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "f": "\f",
    "r": "\r",
    '"': '"',
    "\\": "\\",
}
