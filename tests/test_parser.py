"""Tests for the TOML parser."""

from __future__ import annotations

import math

import pytest

from tomlstruct.config import ParseConfig
from tomlstruct.datetimes import Datetime, DatetimeKind
from tomlstruct.errors import DuplicateKeyError, LexicalError, TomlSyntaxError
from tomlstruct.lexer import Lexer
from tomlstruct.parser import Parser, parse
from tomlstruct.source import Span
from tomlstruct.value import Array, Table


def value_of(source: str, key: str = "a"):
    """Helper: parse ``a = <source>`` and return the value."""
    return parse(f"{key} = {source}")[key]


def error(source: str, exc: type = DuplicateKeyError) -> str:
    """Helper: parse source, asserting it fails, and return the message."""
    with pytest.raises(exc) as info:
        parse(source)
    return str(info.value)


class TestParserTables:
    def test_empty_document(self):
        assert parse("") == {}
        assert parse("\n\n# only a comment\n") == {}

    def test_key_values(self):
        assert parse("a = 1\nb = 'two'") == {"a": 1, "b": "two"}

    def test_dotted_keys_create_tables(self):
        assert parse("a.b.c = 1") == {"a": {"b": {"c": 1}}}

    def test_dotted_keys_extend_each_other(self):
        assert parse("a.b = 1\na.c = 2") == {"a": {"b": 1, "c": 2}}

    def test_table_header(self):
        assert parse("[a]\nx = 1\n[b]\ny = 2") == {"a": {"x": 1}, "b": {"y": 2}}

    def test_nested_header_creates_parents(self):
        assert parse("[a.b.c]\nx = 1") == {"a": {"b": {"c": {"x": 1}}}}

    def test_header_with_whitespace_and_quotes(self):
        assert parse('[ a . "b.c" ]') == {"a": {"b.c": {}}}

    def test_parent_declared_after_child(self):
        assert parse("[a.b]\nx = 1\n[a]\ny = 2") == {"a": {"b": {"x": 1}, "y": 2}}

    def test_header_below_dotted_table(self):
        source = "[fruit]\napple.color = 'red'\n[fruit.apple.texture]\nsmooth = true"
        assert parse(source) == {
            "fruit": {"apple": {"color": "red", "texture": {"smooth": True}}}
        }

    def test_quoted_keys(self):
        assert parse('"a.b" = 1\n\'\' = 2') == {"a.b": 1, "": 2}

    def test_insertion_order_is_preserved(self):
        assert list(parse("z = 1\na = 2\nm = 3")) == ["z", "a", "m"]

    def test_result_is_span_table(self):
        table = parse("a = 1\nb = [2]")
        assert isinstance(table, Table)
        assert table.span_of("a") == Span(4, 5)
        assert isinstance(table["b"], Array)
        assert table["b"].span_of(0) == Span(11, 12)


class TestParserArrayOfTables:
    def test_array_of_tables(self):
        assert parse("[[a]]\nx=1\n[[a]]\nx=2") == {"a": [{"x": 1}, {"x": 2}]}

    def test_subtable_of_last_element(self):
        source = (
            "[[fruit]]\n"
            "name = 'apple'\n"
            "[fruit.physical]\n"
            "color = 'red'\n"
            "[[fruit]]\n"
            "name = 'banana'\n"
        )
        assert parse(source) == {
            "fruit": [
                {"name": "apple", "physical": {"color": "red"}},
                {"name": "banana"},
            ]
        }

    def test_subtable_may_repeat_in_new_element(self):
        source = "[[a]]\n[a.b]\nx = 1\n[[a]]\n[a.b]\nx = 2"
        assert parse(source) == {"a": [{"b": {"x": 1}}, {"b": {"x": 2}}]}

    def test_nested_array_of_tables(self):
        source = "[[a]]\n[[a.b]]\nx = 1\n[[a.b]]\nx = 2"
        assert parse(source) == {"a": [{"b": [{"x": 1}, {"x": 2}]}]}

    def test_empty_elements(self):
        assert parse("[[a]]\n[[a]]") == {"a": [{}, {}]}


class TestParserInline:
    def test_inline_table(self):
        assert value_of("{ x = 1, y.z = 2 }") == {"x": 1, "y": {"z": 2}}

    def test_empty_inline_table(self):
        assert value_of("{}") == {}

    def test_nested_inline_values(self):
        assert value_of("{ p = [1, { q = 2 }] }") == {"p": [1, {"q": 2}]}

    def test_multiline_array_with_trailing_comma_and_comments(self):
        assert value_of("[\n  1, # one\n  2,\n]") == [1, 2]

    def test_mixed_array(self):
        assert value_of("[1, 'x', { b = 2 }, [true]]") == [1, "x", {"b": 2}, [True]]

    def test_empty_array(self):
        assert value_of("[ ]") == []

    def test_inline_table_trailing_comma(self):
        error("p = { x = 1, }", TomlSyntaxError)

    def test_inline_table_newline(self):
        error("p = { x = 1,\n y = 2 }", TomlSyntaxError)

    def test_inline_table_duplicate_key(self):
        assert error("p = { x = 1, x = 2 }").startswith("duplicate key: `x`")


class TestParserValues:
    def test_integers(self):
        assert value_of("1_000") == 1000
        assert value_of("0x1A") == 26
        assert value_of("0o17") == 15
        assert value_of("0b101") == 5
        assert value_of("+12") == 12
        assert value_of("-0") == 0

    def test_integer_limits(self):
        assert value_of("9223372036854775807") == 2**63 - 1
        assert value_of("-9223372036854775808") == -(2**63)

    def test_floats(self):
        assert value_of("3.25") == 3.25
        assert value_of("-1e-3") == -0.001
        assert value_of("6.626e34") == 6.626e34
        assert value_of("inf") == math.inf
        assert value_of("-inf") == -math.inf

    def test_nan_keeps_sign(self):
        assert math.isnan(value_of("nan"))
        assert math.copysign(1.0, value_of("-nan")) == -1.0

    def test_booleans(self):
        assert value_of("true") is True
        assert value_of("false") is False

    def test_string_escape(self):
        assert parse('s = "a\\nb"') == {"s": "a\nb"}

    def test_offset_datetime(self):
        d = value_of("1979-05-27T07:32:00Z")
        assert isinstance(d, Datetime)
        assert d.kind == DatetimeKind.OFFSET_DATE_TIME
        assert str(d) == "1979-05-27T07:32:00Z"

    def test_other_datetime_kinds(self):
        assert value_of("1979-05-27 07:32:00").kind == DatetimeKind.LOCAL_DATE_TIME
        assert value_of("1979-05-27").kind == DatetimeKind.LOCAL_DATE
        assert value_of("07:32:00.5").kind == DatetimeKind.LOCAL_TIME

    def test_datetime_in_array(self):
        days = value_of("[1979-05-27, 1980-01-01]")
        assert [str(d) for d in days] == ["1979-05-27", "1980-01-01"]


class TestParserErrors:
    def test_duplicate_key(self):
        assert error("a = 1\na = 2") == "duplicate key: `a` at line 2 column 1"

    def test_duplicate_table(self):
        assert error("[a]\n[a]") == "redefinition of table `a` for key `a` at line 2 column 1"

    def test_dotted_table_redeclared_by_header(self):
        assert error("a.b = 1\n[a]\nb = 2").startswith("redefinition of table `a`")

    def test_duplicate_key_in_section_has_context(self):
        assert error("[a]\nb = 1\nb = 2") == "duplicate key: `b` for key `a` at line 3 column 1"

    def test_header_over_value(self):
        error("[a]\nb = 1\n[a.b]")

    def test_dotted_key_over_value(self):
        msg = error("a = 1\na.b = 2")
        assert msg.startswith("dotted key attempted to extend non-table type")

    def test_dotted_key_over_explicit_table(self):
        error("[a.b]\nx = 1\n[a]\nb.y = 2")

    def test_inline_table_is_frozen(self):
        error("a = { b = 1 }\na.c = 2")
        error("a = { b = 1 }\n[a.c]")
        error("a = { b = 1 }\n[a]")

    def test_array_of_tables_over_table(self):
        assert error("[a]\n[[a]]").startswith("table redefined as array")

    def test_table_over_array_of_tables(self):
        assert error("[[a]]\n[a]").startswith("redefinition of table `a`")

    def test_array_of_tables_over_static_array(self):
        error("a = [1]\n[[a]]")

    def test_unquoted_string(self):
        msg = error("a = hello", TomlSyntaxError)
        assert msg == (
            "invalid TOML value, did you mean to use a quoted string? at line 1 column 5"
        )

    def test_invalid_numbers(self):
        for literal in ["012", "1__0", "_1", "1.", ".5", "0x", "+0x1", "9223372036854775808"]:
            with pytest.raises(TomlSyntaxError):
                parse(f"a = {literal}")

    def test_invalid_datetime(self):
        with pytest.raises(TomlSyntaxError, match="invalid datetime"):
            parse("d = 1979-02-30")

    def test_missing_value(self):
        assert error("a =", TomlSyntaxError).startswith("unexpected eof encountered")

    def test_two_values_on_one_line(self):
        assert error("a = 1 b = 2", TomlSyntaxError).startswith("expected newline, found `b`")

    def test_missing_equals(self):
        assert error("a 1", TomlSyntaxError).startswith("expected an equals, found `1`")

    def test_multiline_key(self):
        msg = error('"""a""" = 1', TomlSyntaxError)
        assert msg.startswith("multiline strings are not allowed for key")

    def test_unclosed_header(self):
        error("[a\nb = 1", TomlSyntaxError)

    def test_lexical_error_is_located(self):
        msg = error('a = 1\nb = "\\q"', LexicalError)
        assert msg.endswith("at line 2 column 6")

    def test_first_error_wins(self):
        # The duplicate on line 2 comes before the bad escape on line 3
        msg = error('a = 1\na = 2\nb = "\\q"')
        assert msg.endswith("at line 2 column 1")


class TestParserBackcompat:
    SOURCE = """
        [dependencies.openssl-sys]
        version = 1

        [dependencies]
        libc = 1

        [dependencies]
        bitflags = 1
    """

    def test_rejected_by_default(self):
        assert error(self.SOURCE) == (
            "redefinition of table `dependencies` for key `dependencies` at line 8 column 9"
        )

    def test_allowed_after_longer_table(self):
        config = ParseConfig(allow_duplicate_after_longer_table=True)
        table = parse(self.SOURCE, config)
        assert table["dependencies"]["openssl-sys"]["version"] == 1
        assert table["dependencies"]["libc"] == 1
        assert table["dependencies"]["bitflags"] == 1

    def test_duplicate_keys_still_fail(self):
        config = ParseConfig(allow_duplicate_after_longer_table=True)
        source = "[a.b]\n[a]\nx = 1\n[a]\nx = 2"
        with pytest.raises(DuplicateKeyError):
            parse(source, config)

    def test_plain_redefinition_still_fails(self):
        config = ParseConfig(allow_duplicate_after_longer_table=True)
        with pytest.raises(DuplicateKeyError):
            parse("[a]\n[a]", config)


class TestParserDirect:
    def test_parser_accepts_token_list(self):
        tokens = Lexer("[a]\nb = 1").lex()
        assert Parser(tokens).parse() == {"a": {"b": 1}}
