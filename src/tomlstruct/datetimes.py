"""TOML date and time values.

TOML has four temporal kinds: offset date-time, local date-time, local date
and local time. They are kept as one :class:`Datetime` value holding an
optional date part, an optional time part and an optional UTC offset, so a
datetime never has to travel through the value tree disguised as a string.
"""

from __future__ import annotations

import calendar
import datetime as _dt
import re
from dataclasses import dataclass
from enum import Enum

_DATETIME = re.compile(
    r"""
    (?:(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2}))?
    (?P<sep>[Tt ])?
    (?:
        (?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})
        (?:\.(?P<fraction>\d+))?
    )?
    (?P<offset>[Zz]|(?P<sign>[+-])(?P<off_hour>\d{2}):(?P<off_minute>\d{2}))?
    """,
    re.VERBOSE,
)


class DatetimeKind(Enum):
    OFFSET_DATE_TIME = "offset date-time"
    LOCAL_DATE_TIME = "local date-time"
    LOCAL_DATE = "local date"
    LOCAL_TIME = "local time"


@dataclass(frozen=True)
class Date:
    year: int
    month: int
    day: int

    def __str__(self) -> str:
        return f"{self.year:04}-{self.month:02}-{self.day:02}"


@dataclass(frozen=True)
class Time:
    hour: int
    minute: int
    second: int
    nanosecond: int = 0

    def __str__(self) -> str:
        text = f"{self.hour:02}:{self.minute:02}:{self.second:02}"
        if self.nanosecond:
            text += "." + f"{self.nanosecond:09}".rstrip("0")
        return text


@dataclass(frozen=True)
class Offset:
    """A UTC offset: ``Z`` when ``minutes`` is None, else signed minutes."""

    minutes: int | None = None

    def __str__(self) -> str:
        if self.minutes is None:
            return "Z"
        sign = "+" if self.minutes >= 0 else "-"
        hours, minutes = divmod(abs(self.minutes), 60)
        return f"{sign}{hours:02}:{minutes:02}"


@dataclass(frozen=True)
class Datetime:
    date: Date | None = None
    time: Time | None = None
    offset: Offset | None = None

    def __post_init__(self) -> None:
        if self.date is None and self.time is None:
            raise ValueError("a datetime needs a date or a time")
        if self.offset is not None and (self.date is None or self.time is None):
            raise ValueError("an offset needs both a date and a time")

    @property
    def kind(self) -> DatetimeKind:
        if self.date is not None and self.time is not None:
            if self.offset is not None:
                return DatetimeKind.OFFSET_DATE_TIME
            return DatetimeKind.LOCAL_DATE_TIME
        if self.date is not None:
            return DatetimeKind.LOCAL_DATE
        return DatetimeKind.LOCAL_TIME

    def __str__(self) -> str:
        parts = []
        if self.date is not None:
            parts.append(str(self.date))
        if self.time is not None:
            if self.date is not None:
                parts.append("T")
            parts.append(str(self.time))
        if self.offset is not None:
            parts.append(str(self.offset))
        return "".join(parts)

    # ── Parsing ──────────────────────────────────────────────────

    @classmethod
    def parse(cls, text: str) -> Datetime:
        """Parse one of the four TOML datetime forms.

        Raises ValueError if ``text`` is not a datetime or names an
        impossible calendar date or clock time.
        """
        m = _DATETIME.fullmatch(text)
        if m is None or not text:
            raise ValueError(f"invalid datetime: {text!r}")
        has_date = m["year"] is not None
        has_time = m["hour"] is not None
        if not has_time and (m["sep"] or m["offset"]):
            raise ValueError(f"invalid datetime: {text!r}")
        if has_date and has_time and not m["sep"]:
            raise ValueError(f"invalid datetime: {text!r}")
        if not has_date and (m["sep"] or m["offset"]):
            raise ValueError(f"invalid datetime: {text!r}")

        date = None
        if has_date:
            year, month, day = int(m["year"]), int(m["month"]), int(m["day"])
            if not 1 <= month <= 12:
                raise ValueError(f"invalid month in datetime: {text!r}")
            if not 1 <= day <= calendar.monthrange(year, month)[1]:
                raise ValueError(f"invalid day in datetime: {text!r}")
            date = Date(year, month, day)

        time = None
        if has_time:
            hour, minute, second = int(m["hour"]), int(m["minute"]), int(m["second"])
            if hour > 23 or minute > 59 or second > 60:
                raise ValueError(f"invalid time in datetime: {text!r}")
            fraction = m["fraction"] or ""
            # Precision beyond nanoseconds is truncated
            nanosecond = int(fraction[:9].ljust(9, "0"))
            time = Time(hour, minute, second, nanosecond)

        offset = None
        if m["offset"] is not None:
            if m["sign"] is None:
                offset = Offset()
            else:
                off_hour, off_minute = int(m["off_hour"]), int(m["off_minute"])
                if off_hour > 23 or off_minute > 59:
                    raise ValueError(f"invalid offset in datetime: {text!r}")
                minutes = off_hour * 60 + off_minute
                offset = Offset(-minutes if m["sign"] == "-" else minutes)

        return cls(date, time, offset)

    # ── Conversion to and from the standard library ──────────────

    def to_python(self) -> _dt.datetime | _dt.date | _dt.time:
        """Convert to ``datetime.datetime``, ``datetime.date`` or ``datetime.time``.

        Sub-microsecond precision is dropped. Raises ValueError for leap
        seconds, which the standard library cannot represent.
        """
        time = None
        if self.time is not None:
            time = _dt.time(
                self.time.hour,
                self.time.minute,
                self.time.second,
                self.time.nanosecond // 1000,
            )
        if self.date is None:
            assert time is not None
            return time
        date = _dt.date(self.date.year, self.date.month, self.date.day)
        if time is None:
            return date
        tzinfo = None
        if self.offset is not None:
            if self.offset.minutes is None:
                tzinfo = _dt.timezone.utc
            else:
                tzinfo = _dt.timezone(_dt.timedelta(minutes=self.offset.minutes))
        return _dt.datetime.combine(date, time, tzinfo)

    @classmethod
    def from_python(cls, value: _dt.datetime | _dt.date | _dt.time) -> Datetime:
        if isinstance(value, _dt.datetime):
            offset = None
            if value.tzinfo is not None:
                delta = value.utcoffset()
                assert delta is not None
                if value.tzinfo is _dt.timezone.utc:
                    offset = Offset()
                else:
                    offset = Offset(int(delta.total_seconds()) // 60)
            return cls(
                Date(value.year, value.month, value.day),
                Time(value.hour, value.minute, value.second, value.microsecond * 1000),
                offset,
            )
        if isinstance(value, _dt.date):
            return cls(date=Date(value.year, value.month, value.day))
        if isinstance(value, _dt.time):
            if value.tzinfo is not None:
                raise ValueError("TOML local times cannot carry a UTC offset")
            return cls(
                time=Time(value.hour, value.minute, value.second, value.microsecond * 1000)
            )
        raise TypeError(f"expected a date, time or datetime, got {type(value).__name__}")
