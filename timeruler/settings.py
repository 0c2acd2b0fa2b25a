# timeruler/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .util.console import eprint
from .util.tz import default_tz_name

DEFAULT_GRANULARITY_MIN = 15
NOW_REFRESH_S = 60.0


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        v = int(raw)
        if v > 0:
            return v
    except ValueError:
        pass
    eprint(f"[timeruler.settings] WARN: ignoring invalid {name}={raw!r}; using {default}")
    return default


def granularity_min() -> int:
    """Drop-target rounding step in minutes (env TIMERULER_GRANULARITY_MIN)."""
    return _env_int("TIMERULER_GRANULARITY_MIN", DEFAULT_GRANULARITY_MIN)


def _coerce_day_start_end(v: Any) -> Tuple[int, int]:
    if isinstance(v, (list, tuple)) and len(v) == 2:
        try:
            start, end = int(v[0]), int(v[1])
        except (TypeError, ValueError):
            return (0, 24)
        if 0 <= start < end <= 24:
            return (start, end)
    return (0, 24)


@dataclass(frozen=True)
class ViewSettings:
    """Host-owned settings the engine reads but never writes."""

    day_start_end: Tuple[int, int] = (0, 24)
    hide_headings: bool = False
    muted: bool = False
    twenty_four_hour_format: bool = False
    tz: str = "local"

    @classmethod
    def from_host(cls, get_setting: Any, *, tz: Optional[str] = None) -> "ViewSettings":
        return cls(
            day_start_end=_coerce_day_start_end(get_setting("dayStartEnd")),
            hide_headings=bool(get_setting("hideHeadings")),
            muted=bool(get_setting("muted")),
            twenty_four_hour_format=bool(get_setting("twentyFourHourFormat")),
            tz=tz or default_tz_name(),
        )

    def as_state(self) -> dict:
        return {
            "day_start_end": self.day_start_end,
            "hide_headings": self.hide_headings,
            "muted": self.muted,
            "twenty_four_hour_format": self.twenty_four_hour_format,
        }


__all__ = [
    "DEFAULT_GRANULARITY_MIN",
    "NOW_REFRESH_S",
    "granularity_min",
    "ViewSettings",
]
