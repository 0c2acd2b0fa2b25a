from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Tuple

from .bucketing import day_windows
from .interface import JsonEventSource, JsonTaskStore, NOOP_EVENT_SOURCE
from .model import AreaGroup, Window
from .session import TimelineSession
from .util.duration import parse_duration_to_minutes
from .util.isotime import datetime_iso, format_start, is_datetime_iso
from .util.timeparse import parse_date_yyyy_mm_dd
from .util.tz import local_now, normalize_tz_name, resolve_tz
from .view import TimelineView, view_to_dict


def _die(msg: str, rc: int = 2) -> int:
    print(f"[timeruler] ERROR: {msg}", file=sys.stderr)
    return rc


def _render_groups(groups: Tuple[AreaGroup, ...], indent: str, hide_headings: bool) -> List[str]:
    lines: List[str] = []
    for g in groups:
        if g.name:
            lines.append(f"{indent}[{g.name}]")
        for h in g.headings:
            if not hide_headings and h.name and h.name != "__ungrouped":
                lines.append(f"{indent}  # {h.name}")
            for e in h.entries:
                task = e.node.task or {}
                title = task.get("title") or e.node.id
                mark = "->" if e.render == "link" else "- "
                mins = parse_duration_to_minutes(task.get("duration"))
                lines.append(f"{indent}  {mark} {title}" + (f" ({mins}m)" if mins else ""))
    return lines


def render_text(view: TimelineView, *, today: str, twenty_four_hour: bool, hide_headings: bool) -> str:
    lines = [view.title]
    for t in view.due_tasks:
        lines.append(f"  ! {t.get('title') or t.get('id')} (due {t.get('due')})")
    for e in view.all_day_events:
        lines.append(f"  * {e.get('title') or e.get('id')}")
    if not view.all_day_collapsed:
        lines.extend(_render_groups(view.all_day_groups, "  ", hide_headings))
    for b in view.blocks:
        label = format_start(b.key, today=today, twenty_four_hour=twenty_four_hour)
        titles = [str(e.get("title") or e.get("id")) for e in b.events]
        lines.append(f"  {label}" + (f"  {', '.join(titles)}" if titles else ""))
        lines.extend(_render_groups(b.groups, "    ", hide_headings))
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="timeruler",
        description="Render the scheduling timeline for tasks/events stored in JSON files.",
    )
    ap.add_argument("--tasks", required=True, help="Task store JSON path ({\"tasks\": [...]})")
    ap.add_argument("--events", default=None, help="Event source JSON path ({\"events\": [...]})")
    ap.add_argument("--scope", default="", help="Only load tasks whose path starts with this prefix")
    ap.add_argument("--start", default=None, help="First day YYYY-MM-DD (default: today in --tz)")
    ap.add_argument("--dates-shown", type=int, default=0, help="Extra days to show (0 = today and tomorrow)")
    ap.add_argument("--now", default=None, help="Override 'now' as YYYY-MM-DDTHH:MM (testing/replay)")
    ap.add_argument(
        "--tz",
        default=os.getenv("TIMERULER_TZ", "local"),
        help="Timezone for 'today' (default: env TIMERULER_TZ or 'local')",
    )
    ap.add_argument("--format", choices=("json", "text"), default="text", help="Output format (default: text)")
    ap.add_argument("--out", default=None, help="Write output to this path instead of stdout")
    ns = ap.parse_args(argv)

    tasks_path = Path(ns.tasks)
    if not tasks_path.exists():
        return _die(f"Missing task store JSON: {tasks_path}")

    if ns.now and not is_datetime_iso(ns.now):
        return _die(f"--now must look like YYYY-MM-DDTHH:MM, got {ns.now!r}")

    event_api = JsonEventSource(ns.events) if ns.events else NOOP_EVENT_SOURCE
    session = TimelineSession(JsonTaskStore(tasks_path), event_api, scope_filter=ns.scope, tz=normalize_tz_name(ns.tz))
    try:
        now_iso = ns.now or datetime_iso(local_now(resolve_tz(session.tz)))
    except ValueError as e:
        return _die(f"Invalid --tz value: {e}")
    session.store.set_state({"now": now_iso})

    try:
        session.reload()
    except ValueError as e:
        return _die(f"Failed to load JSON: {e}")

    try:
        start_date = parse_date_yyyy_mm_dd(ns.start) if ns.start else session.today()
    except ValueError as e:
        return _die(f"Invalid --start value: {e}")

    windows: List[Window] = day_windows(start_date, int(ns.dates_shown))
    views = [session.view(w) for w in windows]

    today = now_iso[:10]
    if ns.format == "json":
        text = json.dumps([view_to_dict(v) for v in views], indent=2, sort_keys=True)
    else:
        text = "\n\n".join(
            render_text(
                v,
                today=today,
                twenty_four_hour=session.settings.twenty_four_hour_format,
                hide_headings=session.settings.hide_headings,
            )
            for v in views
        )

    if ns.out:
        out_path = Path(ns.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text + "\n", encoding="utf-8")
        print(str(out_path))
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
