"""TOML to structured data and back.

``from_str(text, cls)`` parses a document and reads it as ``cls`` (a
dataclass, a ``dict[str, T]``, ...); ``to_string(value)`` writes one.
``parse`` / ``render`` work on the generic value tree in between.
"""

from __future__ import annotations

from functools import partial
from typing import Any

from tomlstruct import typed
from tomlstruct.config import DeserializeConfig, ParseConfig
from tomlstruct.datetimes import Date, Datetime, DatetimeKind, Offset, Time
from tomlstruct.deserializer import ValueDeserializer
from tomlstruct.errors import (
    DeserializationError,
    DuplicateKeyError,
    ErrorKind,
    LexicalError,
    TomlError,
    TomlSyntaxError,
    UnsupportedRootError,
    UnsupportedTypeError,
)
from tomlstruct.parser import parse
from tomlstruct.renderer import Renderer
from tomlstruct.serializer import to_value
from tomlstruct.source import SourceText, Span
from tomlstruct.value import Array, Table, to_builtin

__version__ = "0.1.0"

__all__ = [
    "Array",
    "Date",
    "Datetime",
    "DatetimeKind",
    "DeserializationError",
    "DeserializeConfig",
    "DuplicateKeyError",
    "ErrorKind",
    "LexicalError",
    "Offset",
    "ParseConfig",
    "Span",
    "Table",
    "Time",
    "TomlError",
    "TomlSyntaxError",
    "UnsupportedRootError",
    "UnsupportedTypeError",
    "dumps",
    "from_str",
    "loads",
    "parse",
    "render",
    "to_string",
]


def loads(text: str, *, allow_duplicate_after_longer_table: bool = False) -> dict[str, Any]:
    """Parse a document into plain dicts and lists."""
    config = ParseConfig(allow_duplicate_after_longer_table=allow_duplicate_after_longer_table)
    return to_builtin(parse(text, config))


def from_str(
    text: str,
    cls: Any = Any,
    *,
    deny_unknown_fields: bool = False,
    allow_duplicate_after_longer_table: bool = False,
) -> Any:
    """Parse a document and read it as a value of type ``cls``."""
    table = parse(
        text, ParseConfig(allow_duplicate_after_longer_table=allow_duplicate_after_longer_table)
    )
    deserializer = ValueDeserializer(
        table, config=DeserializeConfig(deny_unknown_fields=deny_unknown_fields)
    )
    try:
        return typed.deserialize(cls, deserializer)
    except TomlError as err:
        err.locate(SourceText(text))
        raise


def render(table: Any) -> str:
    """Render a value tree as a TOML document."""
    return Renderer().render(table)


def to_string(value: Any, tp: Any = Any) -> str:
    """Serialize ``value`` (optionally declared as type ``tp``) to a TOML document."""
    return render(to_value(partial(typed.serialize, value, tp=tp)))


def dumps(value: Any) -> str:
    return to_string(value)
