"""Source text representation and span tracking for diagnostics."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """A half-open range of offsets within a source text."""

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"

    def to(self, other: Span) -> Span:
        """Build a span covering this span through ``other``."""
        return Span(self.start, other.end)


class SourceText:
    """An in-memory TOML document with offset to line/column mapping.

    Spans index the ``str`` itself. Reported columns count UTF-8 bytes from
    the start of the line, so ``é`` advances the column by two.
    """

    def __init__(self, content: str) -> None:
        self.content = content
        self.lines = content.split("\n")
        self._line_starts = [0]
        for i, ch in enumerate(content):
            if ch == "\n":
                self._line_starts.append(i + 1)

    def _locate(self, offset: int) -> tuple[int, int]:
        offset = max(0, min(offset, len(self.content)))
        index = bisect_right(self._line_starts, offset) - 1
        return index, offset

    def line_col(self, offset: int) -> tuple[int, int]:
        """Return the 1-indexed (line, byte column) of an offset.

        Offsets past the end of the text map to the position just after
        the last character.
        """
        index, offset = self._locate(offset)
        prefix = self.content[self._line_starts[index] : offset]
        return index + 1, len(prefix.encode("utf-8", "surrogatepass")) + 1

    def char_col(self, offset: int) -> int:
        """Return the 1-indexed column of an offset counted in characters."""
        index, offset = self._locate(offset)
        return offset - self._line_starts[index] + 1

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1].rstrip("\r")
        return ""
