"""Lexer for TOML documents.

Produces a lazy stream of tokens from source text. Whitespace and comments
are validated and skipped. Plain runs are emitted as BARE tokens and are
classified later by the parser, but the lexer tracks whether a key or a value
is expected so that runs like ``1.5``, ``+inf`` and ``1979-05-27 07:32:00``
stay in one token while ``a.b`` splits into a dotted key.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from tomlstruct.errors import LexicalError
from tomlstruct.source import Span
from tomlstruct.tokens import (
    BARE_KEY_CHARS,
    ESCAPES,
    PUNCTUATION,
    VALUE_CHARS,
    StringStyle,
    Token,
    TokenKind,
)

_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_TIME_START = re.compile(r"\d{2}:")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _is_control(ch: str) -> bool:
    return (ch < " " and ch != "\t") or ch == "\x7f"


def _escape_char(ch: str) -> str:
    return ch.encode("unicode_escape").decode("ascii")


class Lexer:
    """Tokenizes TOML source text."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 1 if source.startswith("\ufeff") else 0
        # Open inline arrays (LBRACKET) and inline tables (LBRACE)
        self._contexts: list[TokenKind] = []
        self._value_next = False

    def reset(self, pos: int) -> None:
        """Restart tokenizing at ``pos``, which must be the start of a line."""
        if not 0 <= pos <= len(self.source) or (pos and self.source[pos - 1] != "\n"):
            raise ValueError(f"offset {pos} is not at the start of a line")
        if pos == 0 and self.source.startswith("\ufeff"):
            pos = 1
        self.pos = pos
        self._contexts.clear()
        self._value_next = False

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        return list(self.iter_tokens())

    def iter_tokens(self) -> Iterator[Token]:
        """Yield tokens one at a time, ending with EOF."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.kind == TokenKind.EOF:
                return

    def next_token(self) -> Token:
        self._skip_whitespace_and_comments()
        if self.pos >= len(self.source):
            end = len(self.source)
            return Token(TokenKind.EOF, "", Span(end, end))

        start = self.pos
        ch = self.source[start]
        if ch == "\n" or (ch == "\r" and self._peek(1) == "\n"):
            self.pos += 1 if ch == "\n" else 2
            if not self._contexts:
                self._value_next = False
            return Token(TokenKind.NEWLINE, "\n", Span(start, self.pos))
        if ch in ('"', "'"):
            tok = self._lex_string()
            self._value_next = False
            return tok
        if ch in (VALUE_CHARS if self._value_next else BARE_KEY_CHARS):
            return self._lex_bare()
        if ch in PUNCTUATION:
            return self._lex_punct()
        raise LexicalError(
            f"unexpected character found: `{_escape_char(ch)}`", Span(start, start + 1)
        )

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return ""

    def _emit(self, kind: TokenKind, start: int, value: str | None = None) -> Token:
        if value is None:
            value = self.source[start : self.pos]
        return Token(kind, value, Span(start, self.pos))

    # ── Whitespace and comments ──────────────────────────────────

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in (" ", "\t"):
                self.pos += 1
            elif ch == "#":
                self._skip_comment()
            else:
                return

    def _skip_comment(self) -> None:
        self.pos += 1  # skip #
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == "\n" or (ch == "\r" and self._peek(1) == "\n"):
                return
            if _is_control(ch):
                raise LexicalError(
                    f"invalid character in comment: `{_escape_char(ch)}`",
                    Span(self.pos, self.pos + 1),
                )
            self.pos += 1

    # ── Punctuation ──────────────────────────────────────────────

    def _lex_punct(self) -> Token:
        start = self.pos
        ch = self.source[start]
        kind = PUNCTUATION[ch]
        top = self._contexts[-1] if self._contexts else None
        self.pos += 1

        match kind:
            case TokenKind.EQUALS:
                self._value_next = True
            case TokenKind.LBRACKET:
                if self._value_next:
                    self._contexts.append(TokenKind.LBRACKET)
                elif top is None and self._peek() == "[":
                    self.pos += 1
                    kind = TokenKind.DOUBLE_LBRACKET
            case TokenKind.RBRACKET:
                if top == TokenKind.LBRACKET:
                    self._contexts.pop()
                    self._value_next = False
                elif top is None and self._peek() == "]":
                    self.pos += 1
                    kind = TokenKind.DOUBLE_RBRACKET
            case TokenKind.LBRACE:
                if self._value_next:
                    self._contexts.append(TokenKind.LBRACE)
                    self._value_next = False
            case TokenKind.RBRACE:
                if top == TokenKind.LBRACE:
                    self._contexts.pop()
                self._value_next = False
            case TokenKind.COMMA:
                self._value_next = top == TokenKind.LBRACKET
        return self._emit(kind, start)

    # ── Plain runs ───────────────────────────────────────────────

    def _lex_bare(self) -> Token:
        start = self.pos
        chars = VALUE_CHARS if self._value_next else BARE_KEY_CHARS
        self._consume_run(chars)
        if (
            self._value_next
            and _DATE.fullmatch(self.source, start, self.pos)
            and self._peek() == " "
            and _TIME_START.match(self.source, self.pos + 1)
        ):
            # Local or offset date-time written with a space separator
            self.pos += 1
            self._consume_run(chars)
        self._value_next = False
        return self._emit(TokenKind.BARE, start)

    def _consume_run(self, chars: frozenset[str]) -> None:
        while self.pos < len(self.source) and self.source[self.pos] in chars:
            self.pos += 1

    # ── Strings ──────────────────────────────────────────────────

    def _lex_string(self) -> Token:
        start = self.pos
        quote = self.source[start]
        style = StringStyle.BASIC if quote == '"' else StringStyle.LITERAL
        if self.source.startswith(quote * 3, start):
            value = self._lex_multiline_string(quote)
            return Token(TokenKind.STRING, value, Span(start, self.pos), style, True)

        self.pos += 1  # skip opening quote
        text: list[str] = []
        while True:
            if self.pos >= len(self.source):
                raise LexicalError("unterminated string", Span(start, self.pos))
            ch = self.source[self.pos]
            if ch == quote:
                self.pos += 1
                break
            if ch == "\n" or (ch == "\r" and self._peek(1) == "\n"):
                raise LexicalError("newline in string found", Span(self.pos, self.pos + 1))
            if ch == "\\" and style == StringStyle.BASIC:
                text.append(self._lex_escape_sequence(start))
                continue
            if _is_control(ch):
                raise LexicalError(
                    f"invalid character in string: `{_escape_char(ch)}`",
                    Span(self.pos, self.pos + 1),
                )
            text.append(ch)
            self.pos += 1
        return Token(TokenKind.STRING, "".join(text), Span(start, self.pos), style)

    def _lex_multiline_string(self, quote: str) -> str:
        start = self.pos
        self.pos += 3  # skip opening delimiter
        # A newline right after the delimiter is trimmed
        if self._peek() == "\n":
            self.pos += 1
        elif self._peek() == "\r" and self._peek(1) == "\n":
            self.pos += 2

        text: list[str] = []
        while True:
            if self.pos >= len(self.source):
                raise LexicalError("unterminated string", Span(start, self.pos))
            ch = self.source[self.pos]
            if ch == quote:
                run = 1
                while self._peek(run) == quote:
                    run += 1
                if run < 3:
                    text.append(quote * run)
                    self.pos += run
                    continue
                # Up to two quotes may sit against the closing delimiter
                extra = min(run - 3, 2)
                text.append(quote * extra)
                self.pos += 3 + extra
                return "".join(text)
            if ch == "\\" and quote == '"':
                if self._at_line_ending_backslash():
                    self._skip_line_ending_backslash()
                else:
                    text.append(self._lex_escape_sequence(start))
                continue
            if ch == "\r":
                if self._peek(1) != "\n":
                    raise LexicalError(
                        "invalid character in string: `\\r`", Span(self.pos, self.pos + 1)
                    )
                text.append("\r\n")
                self.pos += 2
                continue
            if ch != "\n" and _is_control(ch):
                raise LexicalError(
                    f"invalid character in string: `{_escape_char(ch)}`",
                    Span(self.pos, self.pos + 1),
                )
            text.append(ch)
            self.pos += 1

    def _at_line_ending_backslash(self) -> bool:
        i = self.pos + 1
        while i < len(self.source) and self.source[i] in (" ", "\t"):
            i += 1
        rest = self.source[i : i + 2]
        return rest.startswith("\n") or rest == "\r\n"

    def _skip_line_ending_backslash(self) -> None:
        self.pos += 1  # skip backslash
        while self.pos < len(self.source) and self.source[self.pos] in (" ", "\t", "\n", "\r"):
            self.pos += 1

    def _lex_escape_sequence(self, string_start: int) -> str:
        escape_start = self.pos
        self.pos += 1  # skip backslash
        if self.pos >= len(self.source):
            raise LexicalError("unterminated string", Span(string_start, self.pos))
        ch = self.source[self.pos]
        self.pos += 1
        if ch in ESCAPES:
            return ESCAPES[ch]
        if ch in ("u", "U"):
            width = 4 if ch == "u" else 8
            digits = self.source[self.pos : self.pos + width]
            for i, digit in enumerate(digits):
                if digit not in _HEX_DIGITS:
                    at = self.pos + i
                    raise LexicalError(
                        f"invalid hex escape character in string: `{_escape_char(digit)}`",
                        Span(at, at + 1),
                    )
            if len(digits) < width:
                raise LexicalError("unterminated string", Span(string_start, len(self.source)))
            code = int(digits, 16)
            self.pos += width
            if 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
                raise LexicalError(
                    f"invalid escape value: `{code}`", Span(escape_start, self.pos)
                )
            return chr(code)
        raise LexicalError(
            f"invalid escape character in string: `{_escape_char(ch)}`",
            Span(escape_start, self.pos),
        )
