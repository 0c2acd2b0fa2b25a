# timeruler/drag.py
from __future__ import annotations

import datetime as dt
import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .model import DELETE, DragPayload, DropTarget, PatchReport, Task
from .settings import granularity_min as _default_granularity
from .store import RecordStore, derive_children
from .util.console import eprint, obs
from .util.duration import format_minutes_as_duration
from .util.isotime import (
    datetime_iso,
    is_date_iso,
    is_datetime_iso,
    minutes_between,
    parse_iso,
    round_minutes,
    shift_iso,
)

IDLE = "idle"
DRAGGING = "dragging"
RESOLVED = "resolved"
CANCELLED = "cancelled"

DEFAULT_EVENT_MIN = 60


class DragStateError(AssertionError):
    """Drag engine used out of order (e.g. drop without an active drag)."""


# -----------------------------
# Drop zones
# -----------------------------


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def area(self) -> float:
        return self.w * self.h

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom


@dataclass(frozen=True)
class DropZone:
    id: str
    rect: Rect
    data: Mapping[str, Any]


class DropZoneRegistry:
    """Registered drop zones; hit testing picks the innermost zone under the pointer."""

    def __init__(self) -> None:
        self._zones: Dict[str, DropZone] = {}

    def register(self, zone_id: str, rect: Rect, data: Mapping[str, Any]) -> DropZone:
        zone = DropZone(id=zone_id, rect=rect, data=dict(data))
        self._zones.pop(zone_id, None)
        self._zones[zone_id] = zone
        return zone

    def unregister(self, zone_id: str) -> None:
        self._zones.pop(zone_id, None)

    def clear(self) -> None:
        self._zones.clear()

    def __len__(self) -> int:
        return len(self._zones)

    def hit(self, px: float, py: float) -> Optional[DropZone]:
        best: Optional[DropZone] = None
        for zone in self._zones.values():
            if not zone.rect.contains(px, py):
                continue
            # Later registrations win ties (nested zones register after parents).
            if best is None or zone.rect.area <= best.rect.area:
                best = zone
        return best


# -----------------------------
# Auto-scroll
# -----------------------------


@dataclass
class ScrollContainer:
    id: str
    rect: Rect
    axis: str  # "x" | "y"
    max_scroll: float = float("inf")
    scroll: float = 0.0

    def __post_init__(self) -> None:
        if self.axis not in ("x", "y"):
            raise ValueError(f"scroll axis must be 'x' or 'y', got {self.axis!r}")


class AutoScroller:
    """Scroll containers while the pointer sits in their edge band during a drag."""

    EDGE_PX = 48
    STEP_PX = 24

    def __init__(self) -> None:
        self.containers: Dict[str, ScrollContainer] = {}
        self.engaged = False

    def add(self, container: ScrollContainer) -> ScrollContainer:
        self.containers[container.id] = container
        return container

    def engage(self) -> None:
        self.engaged = True

    def stop(self) -> None:
        self.engaged = False

    def tick(self, px: float, py: float) -> List[Tuple[str, float]]:
        """Advance scroll offsets for one pointer sample; returns (id, delta) pairs."""
        if not self.engaged:
            return []
        moved: List[Tuple[str, float]] = []
        for c in self.containers.values():
            r = c.rect
            if not r.contains(px, py):
                continue
            if c.axis == "x":
                lo, hi, pos = r.x, r.right, px
            else:
                lo, hi, pos = r.y, r.bottom, py

            step = 0.0
            if pos < lo + self.EDGE_PX:
                step = -self.STEP_PX
            elif pos > hi - self.EDGE_PX:
                step = self.STEP_PX
            if not step:
                continue

            new_scroll = min(max(0.0, c.scroll + step), c.max_scroll)
            if new_scroll != c.scroll:
                moved.append((c.id, new_scroll - c.scroll))
                c.scroll = new_scroll
        return moved


# -----------------------------
# Drop target resolution
# -----------------------------


def resolve_drop_target(data: Mapping[str, Any], granularity_min: int) -> Optional[DropTarget]:
    """Normalize a drop zone's data into a DropTarget (None if unusable)."""
    if "before_heading" in data:
        v = data.get("before_heading")
        return DropTarget(kind="heading", value=str(v)) if v else None

    if "due" in data:
        v = data.get("due")
        if is_date_iso(v):
            return DropTarget(kind="due", value=v)
        if is_datetime_iso(v):
            return DropTarget(kind="due", value=datetime_iso(round_minutes(parse_iso(v), granularity_min)))
        return None

    if "scheduled" in data:
        v = data.get("scheduled")
        if v is None or v == "" or v == DELETE:
            return DropTarget(kind="unscheduled")
        if is_date_iso(v):
            return DropTarget(kind="date", value=v)
        if is_datetime_iso(v):
            return DropTarget(kind="datetime", value=datetime_iso(round_minutes(parse_iso(v), granularity_min)))
    return None


@dataclass(frozen=True)
class Mutation:
    """The single write a resolved drop performs."""

    action: str  # "patch_tasks" | "reschedule_event" | "create_task" | "update_file_order"
    ids: Tuple[str, ...] = ()
    partial: Mapping[str, Any] = field(default_factory=dict)
    per_task: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    event_id: Optional[str] = None
    start_iso: Optional[str] = None
    end_iso: Optional[str] = None
    path: Optional[str] = None
    heading: Optional[str] = None
    schedule: Optional[str] = None
    before_heading: Optional[str] = None


def _shift_tasks(
    ids: Tuple[str, ...],
    target: str,
    tasks: Mapping[str, Task],
    anchor: Optional[str] = None,
) -> Mutation:
    """Move every task by the same delta; the anchor defaults to the earliest timed task."""
    if anchor is None or not is_datetime_iso(anchor):
        timed = [tasks[i]["scheduled"] for i in ids if i in tasks and is_datetime_iso(tasks[i].get("scheduled"))]
        anchor = min(timed) if timed else None

    delta = parse_iso(target) - parse_iso(anchor) if anchor else dt.timedelta(0)
    per_task: Dict[str, Dict[str, Any]] = {}
    for i in ids:
        cur = tasks.get(i, {}).get("scheduled")
        if anchor and is_datetime_iso(cur):
            per_task[i] = {"scheduled": shift_iso(cur, delta)}
        else:
            per_task[i] = {"scheduled": target}
    return Mutation(action="patch_tasks", ids=ids, per_task=per_task)


def _schedule_patch(ids: Tuple[str, ...], target: DropTarget, tasks: Mapping[str, Task], anchor: Optional[str] = None) -> Optional[Mutation]:
    if target.kind == "unscheduled":
        return Mutation(action="patch_tasks", ids=ids, partial={"scheduled": DELETE})
    if target.kind == "due":
        return Mutation(action="patch_tasks", ids=ids, partial={"due": target.value})
    if target.kind == "date":
        return Mutation(action="patch_tasks", ids=ids, partial={"scheduled": target.value})
    if target.kind == "datetime":
        return _shift_tasks(ids, str(target.value), tasks, anchor)
    return None


def plan_mutation(
    payload: DragPayload,
    target: DropTarget,
    state: Mapping[str, Any],
    *,
    granularity_min: int,
) -> Optional[Mutation]:
    """Decide what a drop of `payload` on `target` writes. None means the drop is invalid."""
    tasks: Mapping[str, Task] = state.get("tasks") or {}
    kind = payload.drag_type
    ids = tuple(payload.task_ids)

    if kind == "group" and target.kind == "heading":
        if not payload.path or payload.path == target.value:
            return None
        return Mutation(action="update_file_order", heading=payload.path, before_heading=target.value)

    if target.kind == "heading":
        return None

    if kind in ("task", "group"):
        return _schedule_patch(ids, target, tasks)

    if kind == "task-length":
        if not ids or target.kind != "datetime":
            return None
        start = tasks.get(ids[0], {}).get("scheduled")
        if not is_datetime_iso(start):
            return None
        length = max(minutes_between(start, str(target.value)), max(1, int(granularity_min)))
        return Mutation(action="patch_tasks", ids=ids[:1], partial={"duration": format_minutes_as_duration(length)})

    if kind == "due":
        if target.kind == "unscheduled":
            return Mutation(action="patch_tasks", ids=ids, partial={"due": DELETE})
        return Mutation(action="patch_tasks", ids=ids, partial={"due": target.value})

    if kind == "event":
        events = state.get("events") or {}
        if payload.event_id and payload.event_id in events:
            return _event_move(payload.event_id, events[payload.event_id], target)
        return _schedule_patch(ids, target, tasks, anchor=payload.start_iso)

    if kind in ("new", "new_button"):
        if target.kind not in ("date", "datetime", "unscheduled"):
            return None
        path = payload.path or state.get("daily_note_path") or ""
        if not path:
            return None
        return Mutation(
            action="create_task",
            path=path,
            heading=payload.heading if kind == "new" else None,
            schedule=target.value if target.kind != "unscheduled" else None,
        )

    return None


def _event_move(event_id: str, event: Mapping[str, Any], target: DropTarget) -> Optional[Mutation]:
    start, end = event.get("startISO"), event.get("endISO")
    if target.kind == "date":
        return Mutation(action="reschedule_event", event_id=event_id, start_iso=target.value, end_iso=target.value)
    if target.kind != "datetime":
        return None
    length = DEFAULT_EVENT_MIN
    if is_datetime_iso(start) and is_datetime_iso(end):
        length = max(0, minutes_between(start, end))
    new_start = str(target.value)
    new_end = shift_iso(new_start, dt.timedelta(minutes=length))
    return Mutation(action="reschedule_event", event_id=event_id, start_iso=new_start, end_iso=new_end)


# -----------------------------
# Engine
# -----------------------------


@dataclass(frozen=True)
class DropResult:
    status: str  # RESOLVED | CANCELLED
    target: Optional[DropTarget] = None
    mutation: Optional[Mutation] = None
    report: Optional[PatchReport] = None
    created: Optional[Task] = None
    ok: bool = True


class RescheduleEngine:
    """idle -> dragging -> (resolved | cancelled) -> idle.

    The payload lives in the store's single drag slot; the slot is cleared at
    the end of every drag whichever branch is taken.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        zones: Optional[DropZoneRegistry] = None,
        scroller: Optional[AutoScroller] = None,
        granularity_min: Optional[int] = None,
    ) -> None:
        self.store = store
        self.zones = zones or DropZoneRegistry()
        self.scroller = scroller or AutoScroller()
        self.granularity_min = int(granularity_min or _default_granularity())
        self._state = IDLE
        self._target: Optional[DropTarget] = None
        self.last_result: Optional[DropResult] = None
        self._unsubscribe = store.subscribe(lambda s: s["drag_data"], self._on_slot)

    @property
    def state(self) -> str:
        return self._state

    @property
    def target(self) -> Optional[DropTarget]:
        return self._target

    def start(self, payload: DragPayload) -> None:
        if self._state == DRAGGING:
            obs("drag", "start while dragging; dropping previous gesture")
            self._finish()
        self._state = DRAGGING
        self._target = None
        self.store.set_drag(payload)
        self.scroller.engage()
        obs("drag", f"start type={payload.drag_type} ids={len(payload.task_ids)}")

    def move(self, px: float, py: float) -> Optional[DropTarget]:
        """Track the pointer: recompute the drop target and auto-scroll. No writes."""
        if self._state != DRAGGING:
            return None
        self.scroller.tick(px, py)
        zone = self.zones.hit(px, py)
        self._target = resolve_drop_target(zone.data, self.granularity_min) if zone else None
        return self._target

    async def drop(self, px: Optional[float] = None, py: Optional[float] = None) -> DropResult:
        payload = self.store.read("drag_data")
        if self._state != DRAGGING or payload is None:
            self._finish()
            raise DragStateError("drop() called with no active drag payload")

        try:
            if px is not None and py is not None:
                self.move(px, py)
            target = self._target
            mutation = None
            if target is not None:
                mutation = plan_mutation(payload, target, self.store.read_all(), granularity_min=self.granularity_min)
            if mutation is None:
                self._state = CANCELLED
                result = DropResult(status=CANCELLED, target=target)
            else:
                self._state = RESOLVED
                result = await self._apply(mutation, target)
        finally:
            self._finish()

        self.last_result = result
        obs("drag", f"drop status={result.status} target={result.target.key if result.target else None}")
        return result

    def cancel(self) -> None:
        """External cancel (pointer capture lost, escape). Never writes."""
        if self._state == DRAGGING:
            self._state = CANCELLED
            self.last_result = DropResult(status=CANCELLED)
        self._finish()

    def reset(self) -> None:
        """Full reload: whatever was in flight ends idle with an empty slot."""
        self._finish()

    def close(self) -> None:
        """Detach from the store; the engine is unusable afterwards."""
        self._finish()
        self._unsubscribe()

    def _on_slot(self, payload: Optional[DragPayload], old: Optional[DragPayload]) -> None:
        # A slot cleared elsewhere (host reset, reload) ends the gesture.
        if payload is None and self._state == DRAGGING:
            obs("drag", "drag slot cleared externally; cancelling")
            self.last_result = DropResult(status=CANCELLED)
            self._finish()

    def _finish(self) -> None:
        self._state = IDLE
        self._target = None
        self.scroller.stop()
        self.store.set_drag(None)

    async def _apply(self, m: Mutation, target: Optional[DropTarget]) -> DropResult:
        if m.action == "patch_tasks":
            report = await self.store.patch_tasks(m.ids, m.partial, per_task=m.per_task)
            return DropResult(status=RESOLVED, target=target, mutation=m, report=report, ok=report.ok)

        if m.action == "update_file_order":
            self.store.update_file_order(str(m.heading), str(m.before_heading))
            return DropResult(status=RESOLVED, target=target, mutation=m)

        if m.action == "reschedule_event":
            api = self.store.event_api
            if api is None:
                raise RuntimeError("event source collaborator is not attached")
            ok = await _maybe_await(api.reschedule_event(str(m.event_id), str(m.start_iso), str(m.end_iso)))
            if ok is False:
                eprint(f"[timeruler.drag] ERROR: reschedule_event rejected id={m.event_id!r}")
            return DropResult(status=RESOLVED, target=target, mutation=m, ok=ok is not False)

        if m.action == "create_task":
            api = self.store.task_api
            if api is None:
                raise RuntimeError("task store collaborator is not attached")
            created = await _maybe_await(api.create_task(str(m.path), m.heading, m.schedule))
            if isinstance(created, dict) and isinstance(created.get("id"), str):
                self.store.modify(lambda s: {"tasks": derive_children({**s["tasks"], created["id"]: dict(created)})})
            return DropResult(status=RESOLVED, target=target, mutation=m, created=created)

        raise ValueError(f"unknown mutation action: {m.action!r}")


async def _maybe_await(v: Any) -> Any:
    if inspect.isawaitable(v):
        return await v
    return v


__all__ = [
    "IDLE",
    "DRAGGING",
    "RESOLVED",
    "CANCELLED",
    "DragStateError",
    "Rect",
    "DropZone",
    "DropZoneRegistry",
    "ScrollContainer",
    "AutoScroller",
    "resolve_drop_target",
    "Mutation",
    "plan_mutation",
    "DropResult",
    "RescheduleEngine",
]
