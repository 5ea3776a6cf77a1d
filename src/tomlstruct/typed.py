"""Python types on both ends of the visitor protocol.

:func:`deserialize` reads a type hint and asks a
:class:`~tomlstruct.protocol.Deserializer` for that shape; :func:`serialize`
describes a Python value to a :class:`~tomlstruct.protocol.Serializer`.
Supported shapes:

* ``bool``, ``int`` (and the width aliases ``i8`` ... ``u64``), ``float``,
  ``str``;
* :class:`~tomlstruct.datetimes.Datetime` and ``datetime.datetime`` /
  ``datetime.date`` / ``datetime.time``;
* ``list[T]``, ``tuple[A, B]``, ``tuple[T, ...]``, ``dict[str, T]``;
* ``Optional[T]`` (a missing key reads as None, a None field is not written);
* dataclasses, as structs;
* ``enum.Enum`` subclasses, as unit variants named after their members;
* unions of two or more dataclasses, as variants tagged with the class name
  (``[shape.Circle]`` / ``shape = { Circle = { r = 1.0 } }``);
* ``Any``, which yields the plain value tree.
* ``None``, a unit value. TOML has none, so reading one always fails.

A value with a ``__toml_serialize__(serializer)`` method describes itself.
"""

from __future__ import annotations

import dataclasses
import datetime as _dt
import enum
import types
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from tomlstruct.datetimes import Datetime, DatetimeKind
from tomlstruct.errors import DeserializationError, UnsupportedTypeError
from tomlstruct.protocol import (
    END,
    Consume,
    Deserializer,
    EnumAccess,
    MapAccess,
    SeqAccess,
    Serializer,
    Visitor,
)


@dataclass(frozen=True)
class IntWidth:
    bits: int
    signed: bool = True

    def __str__(self) -> str:
        return f"{'i' if self.signed else 'u'}{self.bits}"


i8 = Annotated[int, IntWidth(8)]
i16 = Annotated[int, IntWidth(16)]
i32 = Annotated[int, IntWidth(32)]
i64 = Annotated[int, IntWidth(64)]
u8 = Annotated[int, IntWidth(8, signed=False)]
u16 = Annotated[int, IntWidth(16, signed=False)]
u32 = Annotated[int, IntWidth(32, signed=False)]
u64 = Annotated[int, IntWidth(64, signed=False)]


# ── Type-hint helpers ────────────────────────────────────────────


def _is_union(tp: Any) -> bool:
    return get_origin(tp) in (Union, types.UnionType)


def _strip_optional(tp: Any) -> tuple[Any, bool]:
    """Split ``Optional[T]`` into ``(T, True)``; anything else is ``(tp, False)``."""
    if not _is_union(tp):
        return tp, False
    args = [arg for arg in get_args(tp) if arg is not type(None)]
    if len(args) == len(get_args(tp)):
        return tp, False
    if len(args) == 1:
        return args[0], True
    return Union[tuple(args)], True


def _is_dataclass_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def _tagged_members(tp: Any) -> tuple[type, ...] | None:
    """The classes of a union made only of dataclasses, else None."""
    if not _is_union(tp):
        return None
    args = get_args(tp)
    if len(args) > 1 and all(_is_dataclass_type(arg) for arg in args):
        return args
    return None


def _init_fields(cls: type) -> list[dataclasses.Field]:
    return [f for f in dataclasses.fields(cls) if f.init]


# ── Consumers ────────────────────────────────────────────────────


def _ignore(deserializer: Deserializer) -> Any:
    return deserializer.deserialize_ignored_any(_AnyVisitor())


class _AnyVisitor(Visitor):
    expecting = "any value"

    def visit_bool(self, value: bool) -> bool:
        return value

    def visit_int(self, value: int) -> int:
        return value

    def visit_float(self, value: float) -> float:
        return value

    def visit_str(self, value: str) -> str:
        return value

    def visit_datetime(self, value: Datetime) -> Datetime:
        return value

    def visit_none(self) -> None:
        return None

    def visit_some(self, deserializer: Deserializer) -> Any:
        return deserializer.deserialize_any(self)

    def visit_seq(self, seq: SeqAccess) -> list:
        return list(seq.elements(_ignore))

    def visit_map(self, mapping: MapAccess) -> dict:
        return {key: mapping.next_value(_ignore) for key in mapping.keys()}


class _BoolVisitor(Visitor):
    expecting = "a boolean"

    def visit_bool(self, value: bool) -> bool:
        return value


class _IntVisitor(Visitor):
    def __init__(self, width: IntWidth | None = None) -> None:
        self.expecting = f"{width}" if width else "an integer"

    def visit_int(self, value: int) -> int:
        return value


class _FloatVisitor(Visitor):
    expecting = "a float"

    def visit_float(self, value: float) -> float:
        return value

    def visit_int(self, value: int) -> float:
        return float(value)


class _StrVisitor(Visitor):
    expecting = "a string"

    def visit_str(self, value: str) -> str:
        return value


class _UnitVisitor(Visitor):
    expecting = "unit"

    def visit_unit(self) -> None:
        return None


_DATETIME_TARGETS: dict[Any, tuple[str, tuple[DatetimeKind, ...]]] = {
    _dt.datetime: (
        "a date-time",
        (DatetimeKind.OFFSET_DATE_TIME, DatetimeKind.LOCAL_DATE_TIME),
    ),
    _dt.date: ("a local date", (DatetimeKind.LOCAL_DATE,)),
    _dt.time: ("a local time", (DatetimeKind.LOCAL_TIME,)),
}


class _DatetimeVisitor(Visitor):
    """Accepts a Datetime, optionally converting it to a standard library type."""

    def __init__(self, target: type | None = None) -> None:
        self.target = target
        self.expecting = _DATETIME_TARGETS[target][0] if target else "a datetime"

    def visit_datetime(self, value: Datetime) -> Any:
        if self.target is None:
            return value
        if value.kind not in _DATETIME_TARGETS[self.target][1]:
            raise self.invalid_type(f"{value.kind.value} `{value}`")
        try:
            return value.to_python()
        except ValueError as err:
            raise DeserializationError(str(err)) from None


class _OptionVisitor(Visitor):
    expecting = "option"

    def __init__(self, inner: Consume) -> None:
        self.inner = inner

    def visit_none(self) -> None:
        return None

    def visit_unit(self) -> None:
        return None

    def visit_some(self, deserializer: Deserializer) -> Any:
        return self.inner(deserializer)


class _ListVisitor(Visitor):
    expecting = "an array"

    def __init__(self, item: Consume) -> None:
        self.item = item

    def visit_seq(self, seq: SeqAccess) -> list:
        return list(seq.elements(self.item))


class _TupleVisitor(Visitor):
    def __init__(self, items: list[Consume]) -> None:
        self.items = items
        self.expecting = f"a tuple of size {len(items)}"

    def visit_seq(self, seq: SeqAccess) -> tuple:
        values = []
        for index, consume in enumerate(self.items):
            value = seq.next_element(consume)
            if value is END:
                raise DeserializationError(f"invalid length {index}, expected {self.expecting}")
            values.append(value)
        remaining = seq.size_hint()
        if remaining is None:
            remaining = sum(1 for _ in seq.elements(_ignore))
        if remaining:
            count = len(values) + remaining
            raise DeserializationError(f"invalid length {count}, expected {self.expecting}")
        return tuple(values)


class _DictVisitor(Visitor):
    expecting = "a table"

    def __init__(self, value: Consume) -> None:
        self.value = value

    def visit_map(self, mapping: MapAccess) -> dict:
        return {key: mapping.next_value(self.value) for key in mapping.keys()}


class _DataclassVisitor(Visitor):
    def __init__(self, cls: type) -> None:
        self.cls = cls
        self.expecting = f"struct {cls.__name__}"

    def visit_map(self, mapping: MapAccess) -> Any:
        hints = get_type_hints(self.cls, include_extras=True)
        fields = {f.name: f for f in _init_fields(self.cls)}
        values: dict[str, Any] = {}
        for key in mapping.keys():
            if key in fields:
                values[key] = mapping.next_value(consumer(hints.get(key, Any)))
            else:
                mapping.next_value(_ignore)

        for name, f in fields.items():
            if name in values:
                continue
            if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
                continue
            if _strip_optional(hints.get(name, Any))[1]:
                values[name] = None
                continue
            raise DeserializationError(f"missing field `{name}`")
        return self.cls(**values)


class _EnumVisitor(Visitor):
    def __init__(self, cls: type[enum.Enum]) -> None:
        self.cls = cls
        self.expecting = f"enum {cls.__name__}"

    def visit_enum(self, data: EnumAccess) -> enum.Enum:
        name, variant = data.variant()
        variant.unit_variant()
        return self.cls[name]


class _TaggedVisitor(Visitor):
    def __init__(self, members: tuple[type, ...]) -> None:
        self.members = {cls.__name__: cls for cls in members}
        self.expecting = "one of " + ", ".join(self.members)

    def visit_enum(self, data: EnumAccess) -> Any:
        name, variant = data.variant()
        cls = self.members[name]
        fields = [f.name for f in _init_fields(cls)]
        return variant.struct_variant(fields, _DataclassVisitor(cls))


def consumer(tp: Any) -> Consume:
    """Build the Consume callable reading a value of type ``tp``."""
    if tp is Any or tp is object:
        return _ignore

    origin = get_origin(tp)
    if origin is Annotated:
        base, *metadata = get_args(tp)
        width = next((m for m in metadata if isinstance(m, IntWidth)), None)
        if base is int and width is not None:
            visitor = _IntVisitor(width)
            return lambda d: d.deserialize_integer(visitor, width.bits, width.signed)
        return consumer(base)

    if _is_union(tp):
        inner, optional = _strip_optional(tp)
        if optional:
            option = _OptionVisitor(consumer(inner))
            return lambda d: d.deserialize_option(option)
        members = _tagged_members(tp)
        if members is None:
            raise TypeError(f"cannot deserialize {tp!r}: only unions of dataclasses are supported")
        tagged = _TaggedVisitor(members)
        return lambda d: d.deserialize_enum("Union", list(tagged.members), tagged)

    if tp is bool:
        return lambda d: d.deserialize_bool(_BoolVisitor())
    if tp is int:
        return lambda d: d.deserialize_integer(_IntVisitor())
    if tp is float:
        return lambda d: d.deserialize_float(_FloatVisitor())
    if tp is str:
        return lambda d: d.deserialize_str(_StrVisitor())
    if tp is None or tp is type(None):
        return lambda d: d.deserialize_unit(_UnitVisitor())
    if tp is Datetime:
        return lambda d: d.deserialize_datetime(_DatetimeVisitor())
    if tp in _DATETIME_TARGETS:
        return lambda d: d.deserialize_datetime(_DatetimeVisitor(tp))

    if tp is list or origin is list:
        args = get_args(tp)
        items = _ListVisitor(consumer(args[0] if args else Any))
        return lambda d: d.deserialize_seq(items)
    if tp is tuple or origin is tuple:
        args = get_args(tp)
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            items = _ListVisitor(consumer(args[0] if args else Any))
            return lambda d: tuple(d.deserialize_seq(items))
        fixed = _TupleVisitor([consumer(arg) for arg in args])
        return lambda d: d.deserialize_seq(fixed)
    if tp is dict or origin in (dict, Mapping):
        args = get_args(tp)
        if args and args[0] not in (str, Any):
            raise TypeError(f"cannot deserialize {tp!r}: table keys are strings")
        values = _DictVisitor(consumer(args[1] if args else Any))
        return lambda d: d.deserialize_map(values)

    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        members = _EnumVisitor(tp)
        return lambda d: d.deserialize_enum(tp.__name__, list(tp.__members__), members)
    if _is_dataclass_type(tp):
        names = [f.name for f in _init_fields(tp)]
        return lambda d: d.deserialize_struct(tp.__name__, names, _DataclassVisitor(tp))

    raise TypeError(f"cannot deserialize {tp!r}")


def deserialize(tp: Any, deserializer: Deserializer) -> Any:
    """Read one value of type ``tp`` out of ``deserializer``."""
    return consumer(tp)(deserializer)


# ── Producers ────────────────────────────────────────────────────


def _serialize_fields(value: Any, compound: Any) -> Any:
    hints = get_type_hints(type(value), include_extras=True)
    for f in dataclasses.fields(value):
        compound.serialize_field(
            f.name, partial(serialize, getattr(value, f.name), tp=hints.get(f.name, Any))
        )
    return compound.end()


def _element_types(tp: Any, count: int) -> list[Any]:
    args = get_args(tp)
    if get_origin(tp) is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
        return list(args) + [Any] * (count - len(args))
    return [args[0] if args else Any] * count


def serialize(value: Any, serializer: Serializer, tp: Any = Any) -> Any:
    """Describe ``value`` to ``serializer``.

    ``tp`` is the declared type when one is known (a dataclass field or a
    container's element type); it only matters for tagged unions, which
    cannot be recognised from the value alone.
    """
    hook = getattr(value, "__toml_serialize__", None)
    if callable(hook) and not isinstance(value, type):
        return hook(serializer)

    if get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    tp, optional = _strip_optional(tp)
    if value is None:
        return serializer.serialize_none()
    if optional:
        return serializer.serialize_some(partial(serialize, value, tp=tp))

    members = _tagged_members(tp)
    if members is not None and type(value) in members:
        index = members.index(type(value))
        compound = serializer.serialize_struct_variant(
            "Union", index, type(value).__name__, len(dataclasses.fields(value))
        )
        return _serialize_fields(value, compound)

    if isinstance(value, enum.Enum):
        index = list(type(value)).index(value)
        return serializer.serialize_unit_variant(type(value).__name__, index, value.name)
    if isinstance(value, bool):
        return serializer.serialize_bool(value)
    if isinstance(value, int):
        return serializer.serialize_int(value)
    if isinstance(value, float):
        return serializer.serialize_float(value)
    if isinstance(value, str):
        return serializer.serialize_str(value)
    if isinstance(value, Datetime):
        return serializer.serialize_datetime(value)
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        try:
            return serializer.serialize_datetime(Datetime.from_python(value))
        except ValueError as err:
            raise UnsupportedTypeError(str(err)) from None
    if isinstance(value, (bytes, bytearray)):
        return serializer.serialize_bytes(bytes(value))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        compound = serializer.serialize_struct(type(value).__name__, len(dataclasses.fields(value)))
        return _serialize_fields(value, compound)

    if isinstance(value, Mapping):
        args = get_args(tp)
        value_tp = args[1] if len(args) == 2 else Any
        builder = serializer.serialize_map(len(value))
        for key, item in value.items():
            builder.serialize_entry(partial(serialize, key), partial(serialize, item, tp=value_tp))
        return builder.end()

    if isinstance(value, tuple):
        seq = serializer.serialize_tuple(len(value))
        for item, item_tp in zip(value, _element_types(tp, len(value))):
            seq.serialize_element(partial(serialize, item, tp=item_tp))
        return seq.end()

    if isinstance(value, (list, set, frozenset)):
        items = list(value)
        seq = serializer.serialize_seq(len(items))
        for item, item_tp in zip(items, _element_types(tp, len(items))):
            seq.serialize_element(partial(serialize, item, tp=item_tp))
        return seq.end()

    raise UnsupportedTypeError(f"unsupported type: {type(value).__name__}")
