"""Error types and Rust-style colored diagnostic rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tomlstruct.source import SourceText, Span


class Severity(Enum):
    ERROR = "error"


class ErrorKind(Enum):
    LEXICAL = "lexical"
    SYNTAX = "syntax"
    DUPLICATE_KEY = "duplicate key"
    DESERIALIZATION = "deserialization"
    UNSUPPORTED_ROOT = "unsupported root"
    UNSUPPORTED_TYPE = "unsupported type"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",  # bold red
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str


@dataclass(frozen=True)
class Suggestion:
    """A suggested fix."""

    message: str
    replacement: str


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and suggestions."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors."""

    def __init__(self, source: SourceText | None = None, *, color: bool = True) -> None:
        self.source = source
        self.color = color

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E210]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        # Labels need the source text to be located
        if self.source is not None:
            for label in diag.labels:
                lines.extend(self._render_label(label, color))

        # Notes
        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        # Suggestions
        for suggestion in diag.suggestions:
            lines.append(
                f"  {self._c(_BLUE)}try:{self._c(_RESET)} {suggestion.replacement}"
            )

        return "\n".join(lines)

    def _render_label(self, label: DiagnosticLabel, color: str) -> list[str]:
        assert self.source is not None
        lines: list[str] = []
        last = max(label.span.start, label.span.end - 1)
        start_line, start_col = self.source.line_col(label.span.start)
        end_line = self.source.line_col(last)[0]

        lines.append(
            f"  {self._c(_BLUE)}-->{self._c(_RESET)} {start_line}:{start_col}"
        )
        gutter = f"{start_line:>4}"
        lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")
        lines.append(
            f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} "
            f"{self.source.line_at(start_line)}"
        )

        # Carets only for single-line spans
        if start_line == end_line:
            # Carets line up with characters, not bytes
            first = self.source.char_col(label.span.start)
            caret_len = max(1, self.source.char_col(last) - first + 1)
            padding = " " * (first - 1)
            carets = "^" * caret_len
            lines.append(
                f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                f"{padding}{self._c(color)}{carets}{self._c(_RESET)}"
            )

        if label.message:
            lines.append(
                f"  {self._c(_BLUE)}   |{self._c(_RESET)}   "
                f"{self._c(color)}{label.message}{self._c(_RESET)}"
            )
        return lines


class TomlError(ValueError):
    """Base class for every failure raised while reading or writing TOML.

    ``message`` is the bare description; ``str()`` appends the key path
    (``for key `a.b```) and, once the error has been located against its
    source, the 1-based line and column.
    """

    kind: ErrorKind
    code: str = "E000"

    def __init__(
        self,
        message: str,
        span: Span | None = None,
        *,
        notes: list[str] | None = None,
        suggestions: list[Suggestion] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.span = span
        self.keys: list[str] = []
        self.line: int | None = None
        self.col: int | None = None
        self.notes = notes or []
        self.suggestions = suggestions or []

    def add_key_context(self, key: str) -> None:
        self.keys.insert(0, key)

    def fix_span(self, span: Span | None) -> None:
        """Attach ``span`` unless a more precise one is already known."""
        if self.span is None:
            self.span = span

    def locate(self, source: SourceText) -> None:
        if self.span is not None:
            self.line, self.col = source.line_col(self.span.start)

    def __str__(self) -> str:
        text = self.message
        if self.keys:
            text += f" for key `{'.'.join(self.keys)}`"
        if self.line is not None:
            text += f" at line {self.line} column {self.col}"
        return text

    def diagnostic(self) -> Diagnostic:
        labels = []
        if self.span is not None:
            labels.append(DiagnosticLabel(span=self.span, message=""))
        notes = list(self.notes)
        if self.keys:
            notes.insert(0, f"while reading key `{'.'.join(self.keys)}`")
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=self.message,
            labels=labels,
            suggestions=list(self.suggestions),
            notes=notes,
        )


class LexicalError(TomlError):
    """Malformed token: bad escape, unterminated string, stray character."""

    kind = ErrorKind.LEXICAL
    code = "E100"


class TomlSyntaxError(TomlError):
    """Unexpected token or malformed value literal."""

    kind = ErrorKind.SYNTAX
    code = "E200"


class DuplicateKeyError(TomlError):
    """A key or table path declared twice, or conflicting with a value."""

    kind = ErrorKind.DUPLICATE_KEY
    code = "E210"


class DeserializationError(TomlError):
    """The value tree does not have the shape the consumer asked for."""

    kind = ErrorKind.DESERIALIZATION
    code = "E300"


class UnsupportedRootError(TomlError):
    """Only tables can be rendered as a document."""

    kind = ErrorKind.UNSUPPORTED_ROOT
    code = "E400"


class UnsupportedTypeError(TomlError):
    """A value with no TOML equivalent was handed to the serializer."""

    kind = ErrorKind.UNSUPPORTED_TYPE
    code = "E410"
