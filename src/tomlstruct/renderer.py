"""Value-tree printer producing canonical TOML text.

Walks a table with the same isinstance dispatch the rest of the package
uses. Plain key/value pairs of a table come first, then its sub-tables and
arrays of tables, depth first in order of first appearance. Strings always
use the basic quoted form.
"""

from __future__ import annotations

import datetime as _dt
import math
import re
from typing import Any

from tomlstruct.datetimes import Datetime
from tomlstruct.errors import UnsupportedRootError, UnsupportedTypeError
from tomlstruct.literals import I64_MAX, I64_MIN
from tomlstruct.value import is_table_array, type_name

_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")

_ESCAPES: dict[str, str] = {
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
    '"': '\\"',
    "\\": "\\\\",
}


def quote_string(text: str) -> str:
    """Render ``text`` as a basic string with minimal escaping."""
    out = ['"']
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch < " " or ch == "\x7f":
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def format_key(key: str) -> str:
    if not isinstance(key, str):
        raise UnsupportedTypeError("map key was not a string")
    if _BARE_KEY.fullmatch(key):
        return key
    return quote_string(key)


def format_float(value: float) -> str:
    if math.isnan(value):
        return "-nan" if math.copysign(1.0, value) < 0 else "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return repr(value)


def _is_section(value: Any) -> bool:
    return isinstance(value, dict) or is_table_array(value)


class Renderer:
    """Format a value tree as a TOML document."""

    # ── Public API ─────────────────────────────────────────────

    def render(self, table: Any) -> str:
        """Render a root table to canonical text."""
        if not isinstance(table, dict):
            raise UnsupportedRootError(
                f"unsupported root type: {type_name(table)}, only tables can be rendered"
            )
        lines: list[str] = []
        self._render_table(table, (), lines, header=None)
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    # ── Sections ───────────────────────────────────────────────

    def _render_table(
        self,
        table: dict,
        path: tuple[str, ...],
        lines: list[str],
        header: str | None,
    ) -> None:
        plain = [(k, v) for k, v in table.items() if not _is_section(v)]
        if header is not None:
            if lines:
                lines.append("")  # blank line between sections
            lines.append(header)
        for key, value in plain:
            lines.append(f"{format_key(key)} = {self.format_value(value)}")

        for key, value in table.items():
            sub_path = path + (key,)
            dotted = ".".join(format_key(k) for k in sub_path)
            if isinstance(value, dict):
                has_plain = any(not _is_section(v) for v in value.values())
                sub_header = f"[{dotted}]" if has_plain or not value else None
                self._render_table(value, sub_path, lines, sub_header)
            elif is_table_array(value):
                for element in value:
                    self._render_table(element, sub_path, lines, f"[[{dotted}]]")

    # ── Values ─────────────────────────────────────────────────

    def format_value(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            if not I64_MIN <= value <= I64_MAX:
                raise UnsupportedTypeError(
                    f"integer `{value}` does not fit in a signed 64-bit integer"
                )
            return str(value)
        if isinstance(value, float):
            return format_float(value)
        if isinstance(value, str):
            return quote_string(value)
        if isinstance(value, Datetime):
            return str(value)
        if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
            return str(Datetime.from_python(value))
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.format_value(v) for v in value) + "]"
        if isinstance(value, dict):
            if not value:
                return "{}"
            pairs = ", ".join(
                f"{format_key(k)} = {self.format_value(v)}" for k, v in value.items()
            )
            return "{ " + pairs + " }"
        raise UnsupportedTypeError(f"unsupported value type: {type(value).__name__}")
