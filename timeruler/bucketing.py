# timeruler/bucketing.py
from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .model import Event, Task, TimeBlock, TimelineBuckets, Window
from .util.isotime import date_iso, is_date_iso

TaskTable = Mapping[str, Task]
EventPool = Union[Mapping[str, Event], Iterable[Event]]


def is_completed(task: Task) -> bool:
    return bool(task.get("completed")) or bool(task.get("completion"))


def ancestor_ids(task_id: str, tasks: TaskTable) -> List[str]:
    """Parent chain of `task_id`, nearest first. Cycles are cut."""
    out: List[str] = []
    seen = {task_id}
    cur = tasks.get(task_id)
    while cur is not None:
        parent = cur.get("parent_id")
        if not isinstance(parent, str) or not parent or parent in seen:
            break
        out.append(parent)
        seen.add(parent)
        cur = tasks.get(parent)
    return out


def remove_nested_children(parent_id: str, items: List[Task], tasks: TaskTable) -> List[Task]:
    """Drop `parent_id` itself and every item whose ancestor chain reaches it."""
    return [
        t
        for t in items
        if t.get("id") != parent_id and parent_id not in ancestor_ids(str(t.get("id")), tasks)
    ]


def _events_list(events: EventPool) -> List[Event]:
    if isinstance(events, Mapping):
        return list(events.values())
    return list(events)


def filter_events(events: EventPool, window: Window, now_iso: str) -> List[Event]:
    """Events overlapping the window that have not already ended."""
    out: List[Event] = []
    for e in _events_list(events):
        start = e.get("startISO")
        end = e.get("endISO")
        if not isinstance(start, str) or not isinstance(end, str):
            continue
        if end <= window.start_iso or start >= window.end_iso or end <= now_iso:
            continue
        out.append(e)
    return out


def classify_task(task: Task, window: Window, is_today: bool) -> Optional[str]:
    """Return "due", "timed", "all_day" or None (not shown in this window)."""
    if is_completed(task):
        return None

    start, end = window.start_iso, window.end_iso
    scheduled = task.get("scheduled") or None
    due = task.get("due") or None

    scheduled_here = bool(scheduled) and scheduled < end and (is_today or scheduled >= start)
    if (
        not scheduled_here
        and due
        and (due >= start or (is_today and due < end))
        and (not scheduled or scheduled < end)
    ):
        return "due"
    if scheduled_here:
        return "timed" if scheduled > start else "all_day"
    return None


def bucket_timeline(
    tasks: TaskTable,
    events: EventPool,
    window: Window,
    *,
    today_iso: str,
    now_iso: str,
) -> TimelineBuckets:
    """Project the task/event pools onto one day window.

    Pure: no store access, same input gives the same ordered output.
    """
    is_today = window.start_iso[:10] == today_iso

    due_tasks: List[Task] = []
    timed_tasks: List[Task] = []
    all_day_tasks: List[Task] = []
    for task in tasks.values():
        kind = classify_task(task, window, is_today)
        if kind == "due":
            due_tasks.append(task)
        elif kind == "timed":
            timed_tasks.append(task)
        elif kind == "all_day":
            all_day_tasks.append(task)

    for tid in [str(t.get("id")) for t in timed_tasks]:
        all_day_tasks = remove_nested_children(tid, all_day_tasks, tasks)

    due_tasks.sort(key=lambda t: (t.get("due") or "", t.get("scheduled") is None, t.get("scheduled") or ""))

    shown_events = filter_events(events, window, now_iso)
    all_day_events = [e for e in shown_events if is_date_iso(e.get("startISO"))]
    timed_events = [e for e in shown_events if not is_date_iso(e.get("startISO"))]

    block_tasks: Dict[str, List[Task]] = {}
    block_events: Dict[str, List[Event]] = {}
    for t in timed_tasks:
        block_tasks.setdefault(str(t["scheduled"]), []).append(t)
    for e in timed_events:
        block_events.setdefault(str(e["startISO"]), []).append(e)

    keys = sorted(set(block_tasks) | set(block_events))
    blocks = tuple(
        TimeBlock(key=k, tasks=tuple(block_tasks.get(k, ())), events=tuple(block_events.get(k, ())))
        for k in keys
        if k > window.start_iso
    )

    return TimelineBuckets(
        due_tasks=tuple(due_tasks),
        timed_tasks=tuple(timed_tasks),
        all_day_tasks=tuple(all_day_tasks),
        all_day_events=tuple(all_day_events),
        timed_events=tuple(timed_events),
        blocks=blocks,
        is_today=is_today,
    )


def day_windows(today: dt.date, dates_shown: int = 0) -> List[Window]:
    """Day columns for the timeline strip.

    dates_shown == 0 shows today and tomorrow. Otherwise the strip runs from
    today up to (not including) the Monday after the week reached by
    skipping `dates_shown` days ahead.
    """
    count = 2
    if dates_shown > 0:
        target = today + dt.timedelta(days=dates_shown)
        next_monday = target + dt.timedelta(days=7 - target.weekday())
        count = max(2, (next_monday - today).days)

    out: List[Window] = []
    for i in range(count):
        day = today + dt.timedelta(days=i)
        out.append(Window(start_iso=date_iso(day), end_iso=date_iso(day + dt.timedelta(days=1))))
    return out


__all__ = [
    "is_completed",
    "ancestor_ids",
    "remove_nested_children",
    "filter_events",
    "classify_task",
    "bucket_timeline",
    "day_windows",
]
