"""Builds a value tree from visitor protocol calls.

:class:`ValueSerializer` is the producer-side counterpart of
:class:`~tomlstruct.deserializer.ValueDeserializer`: whatever drives it gets
back plain ``dict`` / ``list`` / scalar values that the renderer can print.
"""

from __future__ import annotations

import logging
from typing import Any

from tomlstruct.datetimes import Datetime
from tomlstruct.errors import UnsupportedTypeError
from tomlstruct.literals import I64_MAX, I64_MIN
from tomlstruct.protocol import (
    Produce,
    SerializeMap,
    SerializeSeq,
    SerializeStruct,
    Serializer,
)

logger = logging.getLogger(__name__)


class _Absent:
    """What ``serialize_none`` returns; tables drop entries holding it."""

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


class ValueSerializer(Serializer):
    """Serializer whose results are value-tree nodes."""

    def serialize_bool(self, value: bool) -> bool:
        return bool(value)

    def serialize_int(self, value: int) -> int:
        if not I64_MIN <= value <= I64_MAX:
            raise UnsupportedTypeError(
                f"integer `{value}` does not fit in a signed 64-bit integer"
            )
        return int(value)

    def serialize_float(self, value: float) -> float:
        return float(value)

    def serialize_str(self, value: str) -> str:
        return str(value)

    def serialize_datetime(self, value: Datetime) -> Datetime:
        return value

    def serialize_none(self) -> _Absent:
        return ABSENT

    def serialize_unit(self) -> Any:
        raise UnsupportedTypeError("unsupported unit type")

    def serialize_unit_variant(self, name: str, index: int, variant: str) -> str:
        return variant

    def serialize_newtype_variant(
        self, name: str, index: int, variant: str, produce: Produce
    ) -> dict:
        value = produce(self)
        if value is ABSENT:
            raise UnsupportedTypeError(f"unsupported None value in variant `{variant}`")
        return {variant: value}

    def serialize_seq(self, length: int | None = None) -> SerializeSeq:
        return _SeqBuilder(self)

    def serialize_map(self, length: int | None = None) -> SerializeMap:
        return _MapBuilder(self)

    def serialize_struct(self, name: str, length: int) -> SerializeStruct:
        return _StructBuilder(self)

    def serialize_struct_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> SerializeStruct:
        return _StructBuilder(self, variant=variant)


class _SeqBuilder(SerializeSeq):
    def __init__(self, serializer: ValueSerializer) -> None:
        self.serializer = serializer
        self.items: list[Any] = []

    def serialize_element(self, produce: Produce) -> None:
        value = produce(self.serializer)
        if value is ABSENT:
            raise UnsupportedTypeError("unsupported None value in array")
        self.items.append(value)

    def end(self) -> list[Any]:
        return self.items


class _MapBuilder(SerializeMap):
    def __init__(self, serializer: ValueSerializer) -> None:
        self.serializer = serializer
        self.table: dict[str, Any] = {}
        self._key: str | None = None

    def serialize_key(self, produce: Produce) -> None:
        key = produce(self.serializer)
        if not isinstance(key, str):
            raise UnsupportedTypeError("map key was not a string")
        self._key = key

    def serialize_value(self, produce: Produce) -> None:
        if self._key is None:
            raise UnsupportedTypeError("map value serialized before its key")
        key, self._key = self._key, None
        value = produce(self.serializer)
        if value is not ABSENT:
            self.table[key] = value

    def end(self) -> dict[str, Any]:
        return self.table


class _StructBuilder(SerializeStruct):
    def __init__(self, serializer: ValueSerializer, variant: str | None = None) -> None:
        self.serializer = serializer
        self.variant = variant
        self.table: dict[str, Any] = {}

    def serialize_field(self, name: str, produce: Produce) -> None:
        value = produce(self.serializer)
        if value is not ABSENT:
            self.table[name] = value

    def end(self) -> dict[str, Any]:
        if self.variant is not None:
            return {self.variant: self.table}
        return self.table


def to_value(produce: Produce) -> Any:
    """Run a producer against a fresh ValueSerializer.

    A top-level ``None`` has nothing to be skipped from and is rejected.
    """
    value = produce(ValueSerializer())
    if value is ABSENT:
        raise UnsupportedTypeError("unsupported None value")
    logger.debug("serialized %s value", type(value).__name__)
    return value
