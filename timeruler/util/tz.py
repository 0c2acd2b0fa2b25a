# timeruler/util/tz.py
from __future__ import annotations

import datetime as dt
import os
import re
from typing import Optional
from zoneinfo import ZoneInfo

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")

_ALIASES = {
    "": "local",
    "local": "local",
    "system": "local",
    "native": "local",
    "utc": "UTC",
    "z": "UTC",
    "gmt": "UTC",
    "utc0": "UTC",
    "utc+0": "UTC",
}


def default_tz_name() -> str:
    return normalize_tz_name(os.getenv("TIMERULER_TZ", "local"))


def normalize_tz_name(name: Optional[str]) -> str:
    """Canonical zone name: "local", "UTC", an IANA name or a "+HH:MM" offset as given."""
    s = str(name).strip() if name is not None else ""
    return _ALIASES.get(s.lower(), s)


def _fixed_offset(name: str) -> Optional[dt.tzinfo]:
    m = _OFFSET_RE.match(name)
    if not m:
        return None
    sign, hh, mm = m.group(1), int(m.group(2)), int(m.group(3))
    if hh > 23 or mm > 59:
        raise ValueError(f"Invalid timezone offset: {name!r}")
    minutes = hh * 60 + mm
    return dt.timezone(dt.timedelta(minutes=minutes if sign == "+" else -minutes))


def resolve_tz(name: Optional[str]) -> dt.tzinfo:
    """tzinfo for `name`; ValueError when it names no known zone or offset."""
    tz_name = normalize_tz_name(name)
    if tz_name == "UTC":
        return dt.timezone.utc
    if tz_name == "local":
        return dt.datetime.now().astimezone().tzinfo or dt.timezone.utc

    offset = _fixed_offset(tz_name)
    if offset is not None:
        return offset
    try:
        return ZoneInfo(tz_name)
    except Exception as ex:
        raise ValueError(f"Invalid timezone identifier: {tz_name!r}") from ex


def local_now(tz: Optional[dt.tzinfo] = None) -> dt.datetime:
    """Wall-clock now in `tz`, returned naive (records carry naive local ISO)."""
    tzinfo = tz or resolve_tz(default_tz_name())
    return dt.datetime.now(tz=tzinfo).replace(tzinfo=None)
