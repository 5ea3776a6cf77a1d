"""Tests for the value-tree serializer adapter."""

from __future__ import annotations

import pytest

from tomlstruct.datetimes import Datetime
from tomlstruct.errors import UnsupportedTypeError
from tomlstruct.serializer import ABSENT, ValueSerializer, to_value
from tomlstruct.typed import serialize


def str_(value):
    return lambda s: s.serialize_str(value)


def int_(value):
    return lambda s: s.serialize_int(value)


def none(s):
    return s.serialize_none()


class TupleCounting(ValueSerializer):
    """Records the length of every tuple it is asked to open."""

    def __init__(self):
        self.tuples = []

    def serialize_tuple(self, length):
        self.tuples.append(length)
        return super().serialize_tuple(length)


class TestScalars:
    def test_scalars_pass_through(self):
        s = ValueSerializer()
        assert s.serialize_bool(True) is True
        assert s.serialize_int(7) == 7
        assert s.serialize_float(0.5) == 0.5
        assert s.serialize_str("x") == "x"
        d = Datetime.parse("1979-05-27")
        assert s.serialize_datetime(d) is d

    def test_integer_bounds(self):
        s = ValueSerializer()
        assert s.serialize_int(2**63 - 1) == 2**63 - 1
        assert s.serialize_int(-(2**63)) == -(2**63)
        with pytest.raises(UnsupportedTypeError, match="signed 64-bit"):
            s.serialize_int(2**63)

    def test_none_is_absent(self):
        assert ValueSerializer().serialize_none() is ABSENT

    def test_some_serializes_inner(self):
        assert ValueSerializer().serialize_some(int_(3)) == 3

    def test_unit_is_rejected(self):
        with pytest.raises(UnsupportedTypeError, match="unsupported unit type"):
            ValueSerializer().serialize_unit()

    def test_bytes_become_integers(self):
        assert ValueSerializer().serialize_bytes(b"\x01\xff") == [1, 255]


class TestCompound:
    def test_seq(self):
        seq = ValueSerializer().serialize_seq(2)
        seq.serialize_element(int_(1))
        seq.serialize_element(str_("a"))
        assert seq.end() == [1, "a"]

    def test_none_in_seq(self):
        seq = ValueSerializer().serialize_seq()
        with pytest.raises(UnsupportedTypeError, match="unsupported None value in array"):
            seq.serialize_element(none)

    def test_python_tuples_open_tuples(self):
        s = TupleCounting()
        assert serialize({"point": (1, 2), "list": [3]}, s) == {"point": [1, 2], "list": [3]}
        assert s.tuples == [2]

    def test_map_skips_none(self):
        m = ValueSerializer().serialize_map()
        m.serialize_entry(str_("a"), int_(1))
        m.serialize_entry(str_("b"), none)
        assert m.end() == {"a": 1}

    def test_map_key_must_be_string(self):
        m = ValueSerializer().serialize_map()
        with pytest.raises(UnsupportedTypeError, match="map key was not a string"):
            m.serialize_key(int_(1))

    def test_struct_skips_none(self):
        st = ValueSerializer().serialize_struct("Point", 3)
        st.serialize_field("x", int_(1))
        st.serialize_field("label", none)
        st.skip_field("hidden")
        st.serialize_field("y", int_(2))
        assert st.end() == {"x": 1, "y": 2}

    def test_insertion_order(self):
        st = ValueSerializer().serialize_struct("S", 2)
        st.serialize_field("z", int_(1))
        st.serialize_field("a", int_(2))
        assert list(st.end()) == ["z", "a"]


class TestVariants:
    def test_unit_variant_is_its_name(self):
        assert ValueSerializer().serialize_unit_variant("Color", 0, "Red") == "Red"

    def test_newtype_variant(self):
        s = ValueSerializer()
        assert s.serialize_newtype_variant("Opt", 1, "Some", int_(5)) == {"Some": 5}

    def test_struct_variant(self):
        st = ValueSerializer().serialize_struct_variant("Shape", 0, "Circle", 1)
        st.serialize_field("r", int_(2))
        assert st.end() == {"Circle": {"r": 2}}


class TestToValue:
    def test_runs_producer(self):
        assert to_value(str_("x")) == "x"

    def test_top_level_none(self):
        with pytest.raises(UnsupportedTypeError, match="unsupported None value"):
            to_value(none)
