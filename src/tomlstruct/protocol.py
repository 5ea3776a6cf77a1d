"""The visitor protocol between TOML and arbitrary typed values.

Two small interfaces, one per direction:

* Consumer side. A :class:`Deserializer` owns a value and is told which
  shape the caller expects (``deserialize_struct``, ``deserialize_enum``,
  ...). It answers by calling exactly one ``visit_*`` method on the caller's
  :class:`Visitor`. Sequences and maps are handed over as
  :class:`SeqAccess` / :class:`MapAccess` objects which the visitor drains at
  its own pace.
* Producer side. A value describes itself to a :class:`Serializer` by
  calling one ``serialize_*`` method. Compound values open a
  :class:`SerializeSeq`, :class:`SerializeMap` or :class:`SerializeStruct`,
  feed it one nested producer at a time and close it with ``end()``.

Nested values travel as callables: a ``Consume`` takes a Deserializer and
returns the finished value; a ``Produce`` takes a Serializer and returns
whatever that serializer returns. Datetimes are a first-class kind on both
sides (``visit_datetime`` / ``serialize_datetime``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from tomlstruct.datetimes import Datetime
from tomlstruct.errors import DeserializationError


class End:
    """Returned by access objects once they have nothing left."""

    def __repr__(self) -> str:
        return "END"

    def __bool__(self) -> bool:
        return False


END = End()

Consume = Callable[["Deserializer"], Any]
Produce = Callable[["Serializer"], Any]


def describe(value: Any) -> str:
    """Describe a concrete value for ``invalid type`` messages."""
    if isinstance(value, bool):
        return f"boolean `{'true' if value else 'false'}`"
    if isinstance(value, int):
        return f"integer `{value}`"
    if isinstance(value, float):
        return f"floating point `{value}`"
    if isinstance(value, str):
        return f'string "{value}"'
    if isinstance(value, Datetime):
        return f"datetime `{value}`"
    if isinstance(value, list):
        return "sequence"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


# ── Consumer side ────────────────────────────────────────────────


class Visitor:
    """Receives a single value from a Deserializer.

    Every ``visit_*`` method rejects its input by default; subclasses
    override the ones for the shapes they accept. ``expecting`` completes
    the sentence "invalid type: ..., expected ___".
    """

    expecting = "a value"

    def invalid_type(self, found: str) -> DeserializationError:
        return DeserializationError(f"invalid type: {found}, expected {self.expecting}")

    def visit_bool(self, value: bool) -> Any:
        raise self.invalid_type(describe(value))

    def visit_int(self, value: int) -> Any:
        raise self.invalid_type(describe(value))

    def visit_float(self, value: float) -> Any:
        raise self.invalid_type(describe(value))

    def visit_str(self, value: str) -> Any:
        raise self.invalid_type(describe(value))

    def visit_datetime(self, value: Datetime) -> Any:
        raise self.invalid_type(describe(value))

    def visit_none(self) -> Any:
        raise self.invalid_type("option")

    def visit_some(self, deserializer: Deserializer) -> Any:
        raise self.invalid_type("option")

    def visit_unit(self) -> Any:
        raise self.invalid_type("unit value")

    def visit_seq(self, seq: SeqAccess) -> Any:
        raise self.invalid_type("sequence")

    def visit_map(self, mapping: MapAccess) -> Any:
        raise self.invalid_type("map")

    def visit_enum(self, data: EnumAccess) -> Any:
        raise self.invalid_type("enum")


class SeqAccess(ABC):
    @abstractmethod
    def next_element(self, consume: Consume) -> Any:
        """Consume the next element, or return END when exhausted."""

    def size_hint(self) -> int | None:
        """Number of elements left, or None when unknown."""
        return None

    def elements(self, consume: Consume) -> Iterator[Any]:
        """Yield consumed elements until the sequence runs out."""
        while True:
            item = self.next_element(consume)
            if item is END:
                return
            yield item


class MapAccess(ABC):
    @abstractmethod
    def next_key(self) -> str | End:
        """Return the next key, or END when exhausted."""

    @abstractmethod
    def next_value(self, consume: Consume) -> Any:
        """Consume the value belonging to the key just returned."""

    def keys(self) -> Iterator[str]:
        """Yield keys until the map runs out; read each value before the next key."""
        while True:
            key = self.next_key()
            if isinstance(key, End):
                return
            yield key


class VariantAccess(ABC):
    @abstractmethod
    def unit_variant(self) -> None: ...

    @abstractmethod
    def newtype_variant(self, consume: Consume) -> Any: ...

    @abstractmethod
    def tuple_variant(self, length: int, visitor: Visitor) -> Any: ...

    @abstractmethod
    def struct_variant(self, fields: Sequence[str], visitor: Visitor) -> Any: ...


class EnumAccess(ABC):
    @abstractmethod
    def variant(self) -> tuple[str, VariantAccess]:
        """Return the variant name and an accessor for its payload."""


class Deserializer(ABC):
    """Drives a Visitor from one value.

    Only ``deserialize_any`` is required. The shape-specific entry points
    let a self-describing format simply forward to it, and exist so that
    formats which are not self-describing (or which need the hint, such as
    enums and bounded integers) can act on it.
    """

    @abstractmethod
    def deserialize_any(self, visitor: Visitor) -> Any: ...

    def deserialize_bool(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_integer(self, visitor: Visitor, bits: int = 64, signed: bool = True) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_float(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_str(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_datetime(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_option(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_unit(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_seq(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_map(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    def deserialize_struct(self, name: str, fields: Sequence[str], visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)

    @abstractmethod
    def deserialize_enum(self, name: str, variants: Sequence[str], visitor: Visitor) -> Any: ...

    def deserialize_ignored_any(self, visitor: Visitor) -> Any:
        return self.deserialize_any(visitor)


# ── Producer side ────────────────────────────────────────────────


class SerializeSeq(ABC):
    @abstractmethod
    def serialize_element(self, produce: Produce) -> None: ...

    @abstractmethod
    def end(self) -> Any: ...


class SerializeMap(ABC):
    @abstractmethod
    def serialize_key(self, produce: Produce) -> None: ...

    @abstractmethod
    def serialize_value(self, produce: Produce) -> None: ...

    def serialize_entry(self, key: Produce, value: Produce) -> None:
        self.serialize_key(key)
        self.serialize_value(value)

    @abstractmethod
    def end(self) -> Any: ...


class SerializeStruct(ABC):
    @abstractmethod
    def serialize_field(self, name: str, produce: Produce) -> None: ...

    def skip_field(self, name: str) -> None:
        pass

    @abstractmethod
    def end(self) -> Any: ...


class Serializer(ABC):
    """Receives a value's self-description, one call per value."""

    @abstractmethod
    def serialize_bool(self, value: bool) -> Any: ...

    @abstractmethod
    def serialize_int(self, value: int) -> Any: ...

    @abstractmethod
    def serialize_float(self, value: float) -> Any: ...

    @abstractmethod
    def serialize_str(self, value: str) -> Any: ...

    @abstractmethod
    def serialize_datetime(self, value: Datetime) -> Any: ...

    @abstractmethod
    def serialize_none(self) -> Any: ...

    def serialize_some(self, produce: Produce) -> Any:
        return produce(self)

    @abstractmethod
    def serialize_unit(self) -> Any: ...

    @abstractmethod
    def serialize_unit_variant(self, name: str, index: int, variant: str) -> Any: ...

    @abstractmethod
    def serialize_newtype_variant(
        self, name: str, index: int, variant: str, produce: Produce
    ) -> Any: ...

    @abstractmethod
    def serialize_seq(self, length: int | None = None) -> SerializeSeq: ...

    def serialize_tuple(self, length: int) -> SerializeSeq:
        return self.serialize_seq(length)

    @abstractmethod
    def serialize_map(self, length: int | None = None) -> SerializeMap: ...

    @abstractmethod
    def serialize_struct(self, name: str, length: int) -> SerializeStruct: ...

    @abstractmethod
    def serialize_struct_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> SerializeStruct: ...

    def serialize_bytes(self, data: bytes) -> Any:
        seq = self.serialize_seq(len(data))
        for byte in data:
            seq.serialize_element(lambda s, b=byte: s.serialize_int(b))
        return seq.end()
