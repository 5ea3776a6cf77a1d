"""Parser for TOML documents.

Transforms a token stream into a root :class:`Table` using recursive
descent. Table headers and dotted keys are resolved into nested tables as
they are read; a side map remembers how every table path came to exist so
that redeclarations and conflicts are rejected on the spot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum, auto
from typing import Any

from tomlstruct import literals
from tomlstruct.config import ParseConfig
from tomlstruct.errors import DuplicateKeyError, TomlError, TomlSyntaxError
from tomlstruct.lexer import Lexer
from tomlstruct.source import SourceText, Span
from tomlstruct.tokens import Token, TokenKind
from tomlstruct.value import Array, Table

logger = logging.getLogger(__name__)

Path = tuple[str, ...]
KeyPart = tuple[str, Span]


class TableState(Enum):
    IMPLICIT_TABLE = auto()   # intermediate segment of a header
    DOTTED_TABLE = auto()     # created by a dotted key in the open section
    EXPLICIT_TABLE = auto()   # declared by a header, or dotted in a closed section
    ARRAY_OF_TABLES = auto()  # declared by a [[header]]
    FROZEN = auto()           # inline table or inline array


def _duplicate_key(key: str, span: Span, context: Path) -> DuplicateKeyError:
    err = DuplicateKeyError(f"duplicate key: `{key}`", span)
    err.keys = list(context)
    return err


class _TableBuilder:
    """Builds one table tree and tracks how each path in it was created."""

    def __init__(self, root: Table, *, allow_duplicate_after_longer_table: bool = False) -> None:
        self.root = root
        self.allow_duplicate_after_longer_table = allow_duplicate_after_longer_table
        self.states: dict[Path, TableState] = {}
        self._open_dotted: list[Path] = []
        # Tables first declared after one of their sub-tables
        self._after_longer: set[Path] = set()

    def _close_section(self) -> None:
        for path in self._open_dotted:
            if self.states.get(path) == TableState.DOTTED_TABLE:
                self.states[path] = TableState.EXPLICIT_TABLE
        self._open_dotted.clear()

    def _descend(self, parts: list[KeyPart]) -> Table:
        """Walk a header's parent segments, creating implicit tables."""
        table = self.root
        path: Path = ()
        for key, span in parts:
            path += (key,)
            node = table.get(key)
            state = self.states.get(path)
            if node is None:
                node = Table()
                table.set(key, node, span)
                self.states[path] = TableState.IMPLICIT_TABLE
                table = node
            elif state == TableState.FROZEN:
                raise _duplicate_key(key, span, path[:-1])
            elif isinstance(node, dict):
                table = node
            elif isinstance(node, list) and state == TableState.ARRAY_OF_TABLES:
                table = node[-1]
            else:
                raise _duplicate_key(key, span, path[:-1])
        return table

    def declare_table(self, parts: list[KeyPart], header_span: Span) -> Table:
        """Handle a ``[a.b.c]`` header and return the new current table."""
        self._close_section()
        path = tuple(key for key, _ in parts)
        state = self.states.get(path)
        redeclared = state == TableState.EXPLICIT_TABLE
        if redeclared and not (
            self.allow_duplicate_after_longer_table and path in self._after_longer
        ):
            err = DuplicateKeyError(f"redefinition of table `{'.'.join(path)}`", header_span)
            err.keys = list(path)
            raise err
        if state == TableState.ARRAY_OF_TABLES:
            err = DuplicateKeyError(f"redefinition of table `{'.'.join(path)}`", header_span)
            err.keys = list(path)
            raise err

        parent = self._descend(parts[:-1])
        key, span = parts[-1]
        node = parent.get(key)
        if node is None:
            node = Table()
            parent.set(key, node, span)
        elif state == TableState.FROZEN or not isinstance(node, dict):
            raise _duplicate_key(key, span, path[:-1])

        if state == TableState.IMPLICIT_TABLE:
            self._after_longer.add(path)
        self.states[path] = TableState.EXPLICIT_TABLE
        logger.debug("declared table [%s]", ".".join(path))
        return node

    def declare_array_element(self, parts: list[KeyPart], header_span: Span) -> Table:
        """Handle a ``[[a.b.c]]`` header and return the appended table."""
        self._close_section()
        path = tuple(key for key, _ in parts)
        state = self.states.get(path)
        parent = self._descend(parts[:-1])
        key, span = parts[-1]
        node = parent.get(key)
        if node is None:
            node = Array()
            parent.set(key, node, span)
        elif state != TableState.ARRAY_OF_TABLES:
            if isinstance(node, dict):
                err = DuplicateKeyError("table redefined as array", header_span)
                err.keys = list(path)
                raise err
            raise _duplicate_key(key, span, path[:-1])

        # A fresh element starts with a clean slate below its path
        depth = len(path)
        for stale in [p for p in self.states if len(p) > depth and p[:depth] == path]:
            del self.states[stale]
        self._after_longer = {p for p in self._after_longer if p[:depth] != path}
        self.states[path] = TableState.ARRAY_OF_TABLES

        element = Table()
        node.push(element, header_span)
        logger.debug("appended table [[%s]] #%d", ".".join(path), len(node))
        return element

    def assign(
        self,
        section: Path,
        table: Table,
        parts: list[KeyPart],
        value: Any,
        value_span: Span,
    ) -> None:
        """Store ``a.b.c = value`` below ``table``, the open section."""
        path = section
        for key, span in parts[:-1]:
            path += (key,)
            node = table.get(key)
            state = self.states.get(path)
            if node is None:
                node = Table()
                table.set(key, node, span)
                self.states[path] = TableState.DOTTED_TABLE
                self._open_dotted.append(path)
            elif isinstance(node, dict) and state in (
                TableState.DOTTED_TABLE,
                TableState.IMPLICIT_TABLE,
            ):
                if state == TableState.IMPLICIT_TABLE:
                    self.states[path] = TableState.DOTTED_TABLE
                    self._open_dotted.append(path)
            else:
                err = DuplicateKeyError("dotted key attempted to extend non-table type", span)
                err.keys = list(path)
                raise err
            table = node

        key, span = parts[-1]
        if key in table:
            raise _duplicate_key(key, span, path)
        table.set(key, value, value_span)
        if isinstance(value, (dict, list)):
            self.states[path + (key,)] = TableState.FROZEN


class Parser:
    """Parses a stream of tokens into a root Table.

    Tokens are pulled lazily, so the first error in source order is the
    one reported.
    """

    def __init__(self, tokens: Iterable[Token], config: ParseConfig | None = None) -> None:
        self._tokens = iter(tokens)
        self._lookahead: list[Token] = []
        self.config = config or ParseConfig()

    # ── Token access ─────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> Token:
        while len(self._lookahead) <= offset:
            tok = next(self._tokens, None)
            if tok is None:
                # Keep returning the final EOF token
                tok = self._lookahead[-1]
            self._lookahead.append(tok)
        return self._lookahead[offset]

    def _current(self) -> Token:
        return self._peek(0)

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _advance(self) -> Token:
        tok = self._current()
        if tok.kind != TokenKind.EOF:
            self._lookahead.pop(0)
        return tok

    def _expect(self, kind: TokenKind) -> Token:
        if self._at(kind):
            return self._advance()
        tok = self._current()
        raise TomlSyntaxError(
            f"expected {kind.describe()}, found {tok.describe()}", tok.span
        )

    def _skip_newlines(self) -> None:
        while self._at(TokenKind.NEWLINE):
            self._advance()

    def _end_of_line(self) -> None:
        if self._at(TokenKind.EOF):
            return
        tok = self._current()
        if tok.kind != TokenKind.NEWLINE:
            raise TomlSyntaxError(f"expected newline, found {tok.describe()}", tok.span)
        self._advance()

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Table:
        """Parse the entire token stream into the root table."""
        root = Table()
        builder = _TableBuilder(
            root,
            allow_duplicate_after_longer_table=self.config.allow_duplicate_after_longer_table,
        )
        section: Path = ()
        current = root

        self._skip_newlines()
        while not self._at(TokenKind.EOF):
            if self._at(TokenKind.LBRACKET):
                start = self._advance().span
                parts = self._parse_key()
                self._expect(TokenKind.RBRACKET)
                section = tuple(key for key, _ in parts)
                current = builder.declare_table(parts, start)
            elif self._at(TokenKind.DOUBLE_LBRACKET):
                start = self._advance().span
                parts = self._parse_key()
                self._expect(TokenKind.DOUBLE_RBRACKET)
                section = tuple(key for key, _ in parts)
                current = builder.declare_array_element(parts, start)
            else:
                parts = self._parse_key()
                self._expect(TokenKind.EQUALS)
                value, span = self._parse_value()
                builder.assign(section, current, parts, value, span)
            self._end_of_line()
            self._skip_newlines()
        return root

    # ── Keys ─────────────────────────────────────────────────────

    def _parse_key(self) -> list[KeyPart]:
        parts = [self._parse_simple_key()]
        while self._at(TokenKind.DOT):
            self._advance()
            parts.append(self._parse_simple_key())
        return parts

    def _parse_simple_key(self) -> KeyPart:
        tok = self._current()
        if tok.kind == TokenKind.STRING:
            if tok.multiline:
                raise TomlSyntaxError("multiline strings are not allowed for key", tok.span)
            self._advance()
            return tok.value, tok.span
        if tok.kind == TokenKind.BARE:
            self._advance()
            return tok.value, tok.span
        raise TomlSyntaxError(f"expected a table key, found {tok.describe()}", tok.span)

    # ── Values ───────────────────────────────────────────────────

    def _parse_value(self) -> tuple[Any, Span]:
        tok = self._current()
        match tok.kind:
            case TokenKind.STRING:
                self._advance()
                return tok.value, tok.span
            case TokenKind.BARE:
                self._advance()
                try:
                    return literals.classify(tok.value), tok.span
                except TomlSyntaxError as err:
                    err.fix_span(tok.span)
                    raise
            case TokenKind.LBRACKET:
                return self._parse_array()
            case TokenKind.LBRACE:
                return self._parse_inline_table()
            case TokenKind.EOF:
                raise TomlSyntaxError("unexpected eof encountered", tok.span)
            case _:
                raise TomlSyntaxError(f"expected a value, found {tok.describe()}", tok.span)

    def _parse_array(self) -> tuple[Array, Span]:
        start = self._advance().span  # skip [
        array = Array()
        while True:
            self._skip_newlines()
            if self._at(TokenKind.RBRACKET):
                return array, start.to(self._advance().span)
            value, span = self._parse_value()
            array.push(value, span)
            self._skip_newlines()
            if not self._at(TokenKind.COMMA):
                break
            self._advance()
        self._skip_newlines()
        end = self._expect(TokenKind.RBRACKET).span
        return array, start.to(end)

    def _parse_inline_table(self) -> tuple[Table, Span]:
        start = self._advance().span  # skip {
        table = Table()
        if self._at(TokenKind.RBRACE):
            return table, start.to(self._advance().span)
        builder = _TableBuilder(table)
        while True:
            parts = self._parse_key()
            self._expect(TokenKind.EQUALS)
            value, span = self._parse_value()
            builder.assign((), table, parts, value, span)
            if self._at(TokenKind.RBRACE):
                return table, start.to(self._advance().span)
            self._expect(TokenKind.COMMA)


def parse(source: str, config: ParseConfig | None = None) -> Table:
    """Parse a TOML document into its root table.

    Errors are located against ``source`` before they propagate, so their
    message ends with the 1-based line and column.
    """
    try:
        return Parser(Lexer(source).iter_tokens(), config).parse()
    except TomlError as err:
        err.locate(SourceText(source))
        raise
