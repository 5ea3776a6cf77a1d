"""Classification of unquoted value runs into typed TOML scalars."""

from __future__ import annotations

import math
import re

from tomlstruct.datetimes import Datetime
from tomlstruct.errors import Suggestion, TomlSyntaxError

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

_DIGITS = r"[0-9](?:_?[0-9])*"
_DEC_INT = re.compile(r"[+-]?(?:0|[1-9](?:_?[0-9])*)")
_FLOAT = re.compile(
    rf"[+-]?(?:0|[1-9](?:_?[0-9])*)"
    rf"(?:\.{_DIGITS}(?:[eE][+-]?{_DIGITS})?|[eE][+-]?{_DIGITS})"
)
_PREFIXED_INTS: dict[str, tuple[re.Pattern[str], int]] = {
    "0x": (re.compile(r"0x[0-9A-Fa-f](?:_?[0-9A-Fa-f])*"), 16),
    "0o": (re.compile(r"0o[0-7](?:_?[0-7])*"), 8),
    "0b": (re.compile(r"0b[01](?:_?[01])*"), 2),
}
_DATETIME_START = re.compile(r"\d{4}-\d{2}-|\d{2}:\d{2}")

_SPECIAL_FLOATS: dict[str, float] = {
    "inf": math.inf,
    "+inf": math.inf,
    "-inf": -math.inf,
    "nan": math.nan,
    "+nan": math.nan,
    "-nan": math.copysign(math.nan, -1.0),
}

Scalar = bool | int | float | Datetime


def classify(text: str) -> Scalar:
    """Turn an unquoted value run into a boolean, number or datetime.

    Raises TomlSyntaxError (without a span; the caller knows where the
    run came from) when ``text`` is none of those.
    """
    if text == "true":
        return True
    if text == "false":
        return False
    if text in _SPECIAL_FLOATS:
        return _SPECIAL_FLOATS[text]
    if _DATETIME_START.match(text):
        try:
            return Datetime.parse(text)
        except ValueError:
            raise TomlSyntaxError("invalid datetime") from None
    if text[:2] in _PREFIXED_INTS:
        pattern, base = _PREFIXED_INTS[text[:2]]
        if not pattern.fullmatch(text):
            raise TomlSyntaxError("invalid number")
        return _checked_int(int(text[2:].replace("_", ""), base))
    if text[0] in "+-0123456789":
        return parse_number(text)
    raise TomlSyntaxError(
        "invalid TOML value, did you mean to use a quoted string?",
        suggestions=[Suggestion("quote the value", f'"{text}"')],
    )


def parse_number(text: str) -> int | float:
    """Parse a decimal integer or float literal."""
    if _DEC_INT.fullmatch(text):
        return _checked_int(int(text.replace("_", "")))
    if _FLOAT.fullmatch(text):
        value = float(text.replace("_", ""))
        if not math.isfinite(value):
            raise TomlSyntaxError("invalid number")
        return value
    raise TomlSyntaxError("invalid number")


def _checked_int(value: int) -> int:
    if not I64_MIN <= value <= I64_MAX:
        raise TomlSyntaxError("invalid number")
    return value
