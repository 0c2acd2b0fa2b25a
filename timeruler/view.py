# timeruler/view.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .bucketing import bucket_timeline
from .grouping import group_block
from .model import AreaGroup, Event, Task, Window
from .store import RecordStore
from .util.isotime import datetime_iso, parse_iso
from .util.tz import local_now


@dataclass(frozen=True)
class BlockView:
    key: str
    events: Tuple[Event, ...]
    groups: Tuple[AreaGroup, ...]


@dataclass(frozen=True)
class TimelineView:
    window: Window
    title: str
    is_today: bool
    all_day_collapsed: bool
    due_tasks: Tuple[Task, ...]
    all_day_events: Tuple[Event, ...]
    all_day_groups: Tuple[AreaGroup, ...]
    blocks: Tuple[BlockView, ...]


def window_title(window: Window) -> str:
    d = parse_iso(window.start_iso or window.end_iso)
    if window.span_type == "days":
        return f"{d:%B}"
    return f"{d:%a}, {d:%b} {d.day}"


def all_day_key(window: Window) -> str:
    return f"{window.start_iso}::all_day"


def build_view(store: RecordStore, window: Window, *, now_iso: Optional[str] = None) -> TimelineView:
    """Bucket then group one window against the current store snapshot."""
    now_iso = now_iso or store.read("now") or datetime_iso(local_now())
    tasks = store.read("tasks")
    buckets = bucket_timeline(
        tasks,
        store.read("events"),
        window,
        today_iso=now_iso[:10],
        now_iso=now_iso,
    )

    all_day_groups = group_block(buckets.all_day_tasks, "event", tasks=tasks, scheduled=window.start_iso)
    blocks = tuple(
        BlockView(
            key=b.key,
            events=b.events,
            groups=group_block(b.tasks, "event", tasks=tasks, scheduled=b.key),
        )
        for b in buckets.blocks
    )

    return TimelineView(
        window=window,
        title=window_title(window),
        is_today=buckets.is_today,
        all_day_collapsed=store.is_collapsed(all_day_key(window)),
        due_tasks=buckets.due_tasks,
        all_day_events=buckets.all_day_events,
        all_day_groups=all_day_groups,
        blocks=blocks,
    )


def view_to_dict(view: TimelineView) -> dict:
    """JSON-ready rendering of a TimelineView."""

    def _groups(groups: Tuple[AreaGroup, ...]) -> list:
        return [
            {
                "area": g.name,
                "headings": [
                    {
                        "name": h.name,
                        "path": h.path,
                        "items": [
                            {
                                "id": e.node.id,
                                "kind": e.node.kind,
                                "type": e.node.type,
                                "render": e.render,
                                "title": (e.node.task or {}).get("title", ""),
                                "children": list(e.node.children),
                            }
                            for e in h.entries
                        ],
                    }
                    for h in g.headings
                ],
            }
            for g in groups
        ]

    return {
        "start": view.window.start_iso,
        "end": view.window.end_iso,
        "title": view.title,
        "is_today": view.is_today,
        "all_day_collapsed": view.all_day_collapsed,
        "due": [t.get("id") for t in view.due_tasks],
        "all_day_events": [e.get("id") for e in view.all_day_events],
        "all_day": _groups(view.all_day_groups),
        "blocks": [
            {"key": b.key, "events": [e.get("id") for e in b.events], "groups": _groups(b.groups)}
            for b in view.blocks
        ],
    }


__all__ = [
    "BlockView",
    "TimelineView",
    "window_title",
    "all_day_key",
    "build_view",
    "view_to_dict",
]
