# timeruler/util/timeparse.py
from __future__ import annotations

import datetime as dt
from typing import Any, Dict

from .isotime import is_date_iso, is_datetime_iso


def parse_date_yyyy_mm_dd(s: str) -> dt.date:
    return dt.datetime.strptime(s, "%Y-%m-%d").date()


def parse_drop_arg(s: str) -> Dict[str, Any]:
    """Turn a command-line drop target into drop zone data.

    Accepted forms:
      - "unscheduled"
      - "YYYY-MM-DD" / "YYYY-MM-DDTHH:MM"   (scheduled slot)
      - "due:YYYY-MM-DD"                      (deadline slot)
      - "heading:<path#heading>"              (file/heading order)
    """
    arg = (s or "").strip()
    if not arg:
        raise ValueError("empty drop target")
    if arg.lower() == "unscheduled":
        return {"scheduled": ""}
    if arg.startswith("heading:"):
        name = arg[len("heading:"):].strip()
        if not name:
            raise ValueError(f"Invalid heading target: {s!r}")
        return {"before_heading": name}
    if arg.startswith("due:"):
        v = arg[len("due:"):].strip()
        if not (is_date_iso(v) or is_datetime_iso(v)):
            raise ValueError(f"Invalid due target: {s!r}")
        return {"due": v}
    if is_date_iso(arg) or is_datetime_iso(arg):
        return {"scheduled": arg}
    raise ValueError(f"Invalid drop target: {s!r}")
