#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List

from timeruler.drag import Rect, RescheduleEngine
from timeruler.interface import JsonEventSource, JsonTaskStore
from timeruler.model import DRAG_TYPES, DragPayload
from timeruler.session import TimelineSession
from timeruler.settings import granularity_min
from timeruler.util.timeparse import parse_drop_arg


def _die(msg: str, rc: int = 2) -> int:
    print(f"[timeruler-reschedule] ERROR: {msg}", file=sys.stderr)
    return rc


def _split_ids(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


async def _run(engine: RescheduleEngine, payload: DragPayload) -> dict:
    engine.start(payload)
    engine.move(0.5, 0.5)
    result = await engine.drop()
    out = {"status": result.status, "target": result.target.key if result.target else None, "ok": result.ok}
    if result.mutation is not None:
        out["action"] = result.mutation.action
    if result.report is not None:
        out["outcomes"] = [
            {"id": o.id, "status": o.status, **({"error": o.error} if o.error else {})} for o in result.report.outcomes
        ]
    if result.created is not None:
        out["created"] = result.created.get("id")
    return out


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="timeruler-reschedule",
        description="Drop tasks (or an event) onto a slot and write the new schedule back to the JSON store.",
    )
    ap.add_argument("--tasks", required=True, help="Task store JSON path")
    ap.add_argument("--events", default=None, help="Event source JSON path")
    ap.add_argument("--ids", default="", help="Comma-separated task ids carried by the drag")
    ap.add_argument("--drag-type", default=None, help=f"One of: {', '.join(DRAG_TYPES)} (default: task, or group for several ids)")
    ap.add_argument("--event-id", default=None, help="Calendar event id for --drag-type event")
    ap.add_argument("--path", default=None, help="Target file for --drag-type new/new_button, or the heading path for group reorders")
    ap.add_argument("--heading", default=None, help="Heading for --drag-type new")
    ap.add_argument(
        "--to",
        required=True,
        help="Drop target: YYYY-MM-DD | YYYY-MM-DDTHH:MM | unscheduled | due:YYYY-MM-DD | heading:<path>",
    )
    ap.add_argument("--granularity", type=int, default=None, help="Rounding minutes for date-time targets (default: env or 15)")
    ns = ap.parse_args(argv)

    tasks_path = Path(ns.tasks)
    if not tasks_path.exists():
        return _die(f"Missing task store JSON: {tasks_path}")

    try:
        zone_data = parse_drop_arg(ns.to)
    except ValueError as e:
        return _die(str(e))

    ids = _split_ids(ns.ids)
    drag_type = ns.drag_type or ("group" if len(ids) > 1 else "task")
    try:
        payload = DragPayload(
            drag_type=drag_type,
            task_ids=tuple(ids),
            event_id=ns.event_id,
            path=ns.path,
            heading=ns.heading,
        )
    except ValueError as e:
        return _die(str(e))

    session = TimelineSession(JsonTaskStore(tasks_path), JsonEventSource(ns.events) if ns.events else None)
    try:
        session.reload()
    except ValueError as e:
        return _die(f"Failed to load JSON: {e}")

    engine = RescheduleEngine(session.store, granularity_min=ns.granularity or granularity_min())
    engine.zones.register("cli::target", Rect(0, 0, 1, 1), zone_data)

    summary = asyncio.run(_run(engine, payload))
    print(json.dumps(summary, indent=2, sort_keys=True))
    if summary["status"] != "resolved":
        return _die(f"drop on {ns.to!r} is not valid for a {drag_type} drag", rc=1)
    return 0 if summary["ok"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
