# timeruler/util/duration.py
from __future__ import annotations

import re
from typing import Optional

# Task lengths are stored as ISO-8601 durations: PT10M, PT1H30M, etc.
_ISO_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$", re.IGNORECASE)


def parse_duration_to_minutes(s: str | None) -> Optional[int]:
    """Whole minutes in `s` (seconds round to the nearest minute); None if unset, malformed or zero."""
    m = _ISO_RE.match(str(s).strip()) if s else None
    if not m:
        return None
    hours, minutes, seconds = (int(g or 0) for g in m.groups())
    total = hours * 60 + minutes + (1 if seconds >= 30 else 0)
    return total or None


def format_minutes_as_duration(minutes: int) -> str:
    if minutes <= 0:
        raise ValueError(f"duration must be positive, got {minutes}")
    h, m = divmod(int(minutes), 60)
    return "PT" + (f"{h}H" if h else "") + (f"{m}M" if m else "")
