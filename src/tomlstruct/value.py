"""The generic value tree shared by the parser, the adapters and the renderer.

A value is one of ``str``, ``int``, ``float``, ``bool``, :class:`Datetime`,
an array (``list``) or a table (``dict`` with string keys). The parser
produces :class:`Table` and :class:`Array`, which behave exactly like
``dict`` and ``list`` but also remember where each entry came from.
"""

from __future__ import annotations

from typing import Any, Union

from tomlstruct.datetimes import Datetime
from tomlstruct.source import Span

Value = Union[str, int, float, bool, Datetime, "Array", "Table", list, dict]


class Table(dict):
    """An ordered string-keyed mapping that records each entry's span."""

    __slots__ = ("spans",)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.spans: dict[str, Span] = {}

    def span_of(self, key: str) -> Span | None:
        return self.spans.get(key)

    def set(self, key: str, value: Any, span: Span | None = None) -> None:
        self[key] = value
        if span is not None:
            self.spans[key] = span


class Array(list):
    """An ordered sequence that records each element's span."""

    __slots__ = ("spans",)

    def __init__(self, *args: Any) -> None:
        super().__init__(*args)
        self.spans: list[Span | None] = [None] * len(self)

    def span_of(self, index: int) -> Span | None:
        if 0 <= index < len(self.spans):
            return self.spans[index]
        return None

    def push(self, value: Any, span: Span | None = None) -> None:
        self.append(value)
        self.spans.extend([None] * (len(self) - len(self.spans)))
        self.spans[-1] = span


def span_of(container: Any, key: str | int) -> Span | None:
    """Span of an entry in a parsed container, or None for plain dicts and lists."""
    if isinstance(container, (Table, Array)):
        return container.span_of(key)  # type: ignore[arg-type]
    return None


def type_name(value: Any) -> str:
    """Describe a value the way error messages refer to it."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Datetime):
        return "datetime"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "table"
    return type(value).__name__


def is_table_array(value: Any) -> bool:
    """True for a non-empty array whose elements are all tables."""
    return isinstance(value, list) and bool(value) and all(isinstance(v, dict) for v in value)


def to_builtin(value: Any) -> Any:
    """Strip span bookkeeping, returning plain dicts and lists."""
    if isinstance(value, dict):
        return {k: to_builtin(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_builtin(v) for v in value]
    return value
