"""Drives the visitor protocol from a parsed value tree.

:class:`ValueDeserializer` wraps one value (and, when it came from the
parser, its span) and answers the shape requests of
:class:`~tomlstruct.protocol.Deserializer`. Errors raised by visitors that
carry no span yet get the span of the value being visited, and errors raised
below a table key get that key prepended, so the final message reads
``... for key `a.b` at line 3 column 5``.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from tomlstruct.config import DeserializeConfig
from tomlstruct.datetimes import Datetime
from tomlstruct.errors import DeserializationError, TomlError
from tomlstruct.protocol import (
    END,
    Consume,
    Deserializer,
    End,
    EnumAccess,
    MapAccess,
    SeqAccess,
    VariantAccess,
    Visitor,
    describe,
)
from tomlstruct.source import Span
from tomlstruct.value import span_of, type_name


def _debug_list(items: Sequence[str]) -> str:
    return "[" + ", ".join(f'"{item}"' for item in items) + "]"


class ValueDeserializer(Deserializer):
    """Deserializer over a single value of the tree."""

    def __init__(
        self,
        value: Any,
        span: Span | None = None,
        config: DeserializeConfig | None = None,
    ) -> None:
        self.value = value
        self.span = span
        self.config = config or DeserializeConfig()

    def _spanned(self, fn: Any, *args: Any) -> Any:
        try:
            return fn(*args)
        except TomlError as err:
            err.fix_span(self.span)
            raise

    def _invalid(self, visitor: Visitor) -> DeserializationError:
        return DeserializationError(
            f"invalid type: {describe(self.value)}, expected {visitor.expecting}", self.span
        )

    # ── Self-describing dispatch ─────────────────────────────────

    def deserialize_any(self, visitor: Visitor) -> Any:
        value = self.value
        if isinstance(value, bool):
            return self._spanned(visitor.visit_bool, value)
        if isinstance(value, int):
            return self._spanned(visitor.visit_int, value)
        if isinstance(value, float):
            return self._spanned(visitor.visit_float, value)
        if isinstance(value, str):
            return self._spanned(visitor.visit_str, value)
        if isinstance(value, Datetime):
            return self._spanned(visitor.visit_datetime, value)
        if isinstance(value, list):
            return self._spanned(visitor.visit_seq, SeqDeserializer(value, self.config))
        if isinstance(value, dict):
            return self._spanned(visitor.visit_map, MapDeserializer(value, self.config))
        raise DeserializationError(
            f"unsupported value of type {type(value).__name__}", self.span
        )

    # ── Shape hints ──────────────────────────────────────────────

    def deserialize_integer(self, visitor: Visitor, bits: int = 64, signed: bool = True) -> Any:
        value = self.value
        if not isinstance(value, int) or isinstance(value, bool):
            raise self._invalid(visitor)
        if signed:
            low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
        else:
            low, high = 0, 2**bits - 1
        if not low <= value <= high:
            width = f"{'i' if signed else 'u'}{bits}"
            raise DeserializationError(
                f"invalid value: integer `{value}`, expected {width}", self.span
            )
        return self._spanned(visitor.visit_int, value)

    def deserialize_datetime(self, visitor: Visitor) -> Any:
        if not isinstance(self.value, Datetime):
            raise self._invalid(visitor)
        return self._spanned(visitor.visit_datetime, self.value)

    def deserialize_option(self, visitor: Visitor) -> Any:
        # Absence is a missing key, so anything present is Some
        return self._spanned(visitor.visit_some, self)

    def deserialize_struct(self, name: str, fields: Sequence[str], visitor: Visitor) -> Any:
        if self.config.deny_unknown_fields and isinstance(self.value, dict):
            extra = [key for key in self.value if key not in fields]
            if extra:
                raise DeserializationError(
                    f"unexpected keys in table: `{_debug_list(extra)}`, "
                    f"available keys: `{_debug_list(list(fields))}`",
                    self.span,
                )
        return self.deserialize_any(visitor)

    def deserialize_enum(self, name: str, variants: Sequence[str], visitor: Visitor) -> Any:
        value = self.value
        if isinstance(value, str):
            access = EnumDeserializer(value, None, None, variants, self.config)
        elif isinstance(value, dict):
            if not value:
                raise DeserializationError(
                    "expected table with exactly 1 entry, found empty table", self.span
                )
            if len(value) > 1:
                raise DeserializationError(
                    f"expected table with exactly 1 entry, found table with {len(value)} entries",
                    self.span,
                )
            (key, payload), = value.items()
            access = EnumDeserializer(key, payload, span_of(value, key), variants, self.config)
        else:
            raise DeserializationError(
                f"expected string or table, found {type_name(value)}", self.span
            )
        return self._spanned(visitor.visit_enum, access)


class SeqDeserializer(SeqAccess):
    def __init__(self, values: list, config: DeserializeConfig) -> None:
        self.values = values
        self.config = config
        self.index = 0

    def next_element(self, consume: Consume) -> Any:
        if self.index >= len(self.values):
            return END
        index = self.index
        self.index += 1
        value = self.values[index]
        return consume(ValueDeserializer(value, span_of(self.values, index), self.config))

    def size_hint(self) -> int | None:
        return len(self.values) - self.index


class MapDeserializer(MapAccess):
    def __init__(self, table: dict, config: DeserializeConfig) -> None:
        self.table = table
        self.config = config
        self._items: Iterator[tuple[str, Any]] = iter(table.items())
        self._pending: tuple[str, Any] | None = None

    def next_key(self) -> str | End:
        entry = next(self._items, None)
        if entry is None:
            return END
        self._pending = entry
        return entry[0]

    def next_value(self, consume: Consume) -> Any:
        if self._pending is None:
            raise DeserializationError("next_value called before next_key")
        key, value = self._pending
        self._pending = None
        span = span_of(self.table, key)
        try:
            return consume(ValueDeserializer(value, span, self.config))
        except TomlError as err:
            err.fix_span(span)
            err.add_key_context(key)
            raise


class EnumDeserializer(EnumAccess, VariantAccess):
    """A variant name, plus its payload when written as a one-entry table.

    ``payload`` is None for the bare-string form, which only fits a unit
    variant.
    """

    def __init__(
        self,
        name: str,
        payload: Any,
        span: Span | None,
        variants: Sequence[str],
        config: DeserializeConfig,
    ) -> None:
        self.name = name
        self.payload = payload
        self.span = span
        self.variants = variants
        self.config = config

    def variant(self) -> tuple[str, VariantAccess]:
        if self.variants and self.name not in self.variants:
            expected = ", ".join(f"`{v}`" for v in self.variants)
            raise DeserializationError(
                f"unknown variant `{self.name}`, expected one of {expected}", self.span
            )
        return self.name, self

    def _payload(self, expected: str) -> Any:
        if self.payload is None:
            raise DeserializationError(
                f"invalid type: unit variant, expected {expected}", self.span
            )
        return self.payload

    def unit_variant(self) -> None:
        if self.payload is None:
            return
        if not isinstance(self.payload, dict):
            raise DeserializationError(
                f"expected table, found {type_name(self.payload)}", self.span
            )
        if self.payload:
            raise DeserializationError("expected empty table", self.span)

    def newtype_variant(self, consume: Consume) -> Any:
        payload = self._payload("newtype variant")
        return consume(ValueDeserializer(payload, self.span, self.config))

    def tuple_variant(self, length: int, visitor: Visitor) -> Any:
        payload = self._payload("tuple variant")
        if isinstance(payload, dict):
            # Written as a table keyed "0", "1", ...
            values = []
            for index, (key, value) in enumerate(payload.items()):
                if key != str(index):
                    raise DeserializationError(
                        f"expected table key `{index}`, but was `{key}`",
                        span_of(payload, key) or self.span,
                    )
                values.append(value)
            if len(values) != length:
                raise DeserializationError(f"expected table with length {length}", self.span)
            payload = values
        elif not isinstance(payload, list):
            raise DeserializationError(
                f"expected table, found {type_name(payload)}", self.span
            )
        return ValueDeserializer(payload, self.span, self.config).deserialize_seq(visitor)

    def struct_variant(self, fields: Sequence[str], visitor: Visitor) -> Any:
        payload = self._payload("struct variant")
        return ValueDeserializer(payload, self.span, self.config).deserialize_struct(
            self.name, fields, visitor
        )
