# timeruler/util/isotime.py
from __future__ import annotations

import datetime as dt
import re

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?$")


def is_date_iso(s: str | None) -> bool:
    """True for a bare YYYY-MM-DD value (all-day marker)."""
    return isinstance(s, str) and bool(_DATE_RE.match(s))


def is_datetime_iso(s: str | None) -> bool:
    return isinstance(s, str) and bool(_DATETIME_RE.match(s))


def parse_iso(s: str) -> dt.datetime:
    """Parse a naive local ISO date or date-time. Date-only values map to midnight."""
    if is_date_iso(s):
        return dt.datetime.strptime(s, "%Y-%m-%d")
    if is_datetime_iso(s):
        return dt.datetime.fromisoformat(s)
    raise ValueError(f"Invalid ISO date/date-time: {s!r}")


def date_iso(d: dt.date) -> str:
    return d.strftime("%Y-%m-%d")


def datetime_iso(d: dt.datetime) -> str:
    """Minute-precision ISO, no seconds and no offset."""
    return d.strftime("%Y-%m-%dT%H:%M")


def round_minutes(d: dt.datetime, granularity_min: int) -> dt.datetime:
    """Round to the nearest multiple of `granularity_min` within the day."""
    d = d.replace(second=0, microsecond=0)
    if granularity_min <= 1:
        return d
    midnight = d.replace(hour=0, minute=0)
    minute_of_day = d.hour * 60 + d.minute
    snapped = int(round(minute_of_day / granularity_min) * granularity_min)
    return midnight + dt.timedelta(minutes=snapped)


def shift_iso(s: str, delta: dt.timedelta) -> str:
    """Shift a date-time ISO by `delta`. Date-only input stays date-only."""
    d = parse_iso(s)
    if is_date_iso(s):
        return date_iso((d + delta).date())
    return datetime_iso(d + delta)


def minutes_between(start: str, end: str) -> int:
    return int((parse_iso(end) - parse_iso(start)).total_seconds() // 60)


def format_start(s: str, *, today: str, twenty_four_hour: bool = False) -> str:
    """Short label for an event/block start, as shown in the timeline headers."""
    d = parse_iso(s)
    if is_date_iso(s):
        return f"{d:%a} {d:%b} {d.day}"
    if s < today:
        return f"{d:%a} {d:%b} {d.day} {_clock(d, twenty_four_hour)}"
    return _clock(d, twenty_four_hour)


def _clock(d: dt.datetime, twenty_four_hour: bool) -> str:
    if twenty_four_hour:
        return f"{d:%H:%M}"
    hour12 = d.hour % 12 or 12
    return f"{hour12}:{d:%M} {'AM' if d.hour < 12 else 'PM'}"
