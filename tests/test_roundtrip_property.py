"""Property tests: rendering and parsing agree on arbitrary value trees.

The generated trees cover every value kind, keys that need quoting, mixed
arrays (rendered inline) and arrays of tables (rendered as ``[[...]]``).
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tomlstruct import from_str, to_string
from tomlstruct.datetimes import Datetime
from tomlstruct.parser import parse
from tomlstruct.renderer import Renderer, quote_string
from tomlstruct.typed import u16
from tomlstruct.value import to_builtin

Draw = Callable[[st.SearchStrategy[Any]], Any]

TEXT = st.text(st.characters(blacklist_categories=("Cs",)), max_size=12)
KEYS = st.one_of(st.from_regex(r"[A-Za-z0-9_-]{1,8}", fullmatch=True), TEXT)

TIMEZONES = st.sampled_from(
    [
        None,
        dt.timezone.utc,
        dt.timezone(dt.timedelta(hours=-8)),
        dt.timezone(dt.timedelta(minutes=330)),
    ]
)

DATETIMES = st.one_of(
    st.datetimes(
        min_value=dt.datetime(1900, 1, 1),
        max_value=dt.datetime(2200, 1, 1),
        timezones=TIMEZONES,
    ).map(Datetime.from_python),
    st.dates(min_value=dt.date(1900, 1, 1)).map(Datetime.from_python),
    st.times().map(Datetime.from_python),
)

SCALARS = st.one_of(
    st.booleans(),
    st.integers(min_value=-(2**63), max_value=2**63 - 1),
    st.floats(allow_nan=False),
    TEXT,
    DATETIMES,
)


def _values(children: st.SearchStrategy[Any]) -> st.SearchStrategy[Any]:
    return st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(KEYS, children, max_size=4),
    )


VALUES = st.recursive(SCALARS, _values, max_leaves=12)


@st.composite
def documents(draw: Draw) -> dict[str, Any]:
    """A root table, sometimes with an array of tables mixed in."""
    root = draw(st.dictionaries(KEYS, VALUES, max_size=5))
    if draw(st.booleans()):
        tables = st.lists(st.dictionaries(KEYS, VALUES, max_size=3), min_size=1, max_size=3)
        root[draw(KEYS)] = draw(tables)
    return root


def render(table: Any) -> str:
    return Renderer().render(table)


@settings(suppress_health_check=[HealthCheck.too_slow], deadline=None, max_examples=200)
@given(doc=documents())
def test_parse_of_render_is_identity(doc: dict[str, Any]) -> None:
    assert to_builtin(parse(render(doc))) == doc


@settings(suppress_health_check=[HealthCheck.too_slow], deadline=None, max_examples=200)
@given(doc=documents())
def test_render_is_stable(doc: dict[str, Any]) -> None:
    text = render(doc)
    assert render(parse(text)) == text


@settings(deadline=None, max_examples=300)
@given(text=TEXT)
def test_quoted_strings_read_back(text: str) -> None:
    assert parse(f"s = {quote_string(text)}")["s"] == text


@dataclass
class Endpoint:
    host: str
    port: u16
    tags: list[str] = field(default_factory=list)
    note: Optional[str] = None


@settings(deadline=None, max_examples=100)
@given(
    endpoints=st.lists(
        st.builds(
            Endpoint,
            host=TEXT,
            port=st.integers(min_value=0, max_value=65535),
            tags=st.lists(TEXT, max_size=3),
            note=st.one_of(st.none(), TEXT),
        ),
        max_size=3,
    )
)
def test_dataclasses_round_trip(endpoints: list[Endpoint]) -> None:
    table = {"endpoints": endpoints}
    assert from_str(to_string(table), dict[str, list[Endpoint]]) == table
