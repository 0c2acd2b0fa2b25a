# timeruler/model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# Records are JSON-shaped dicts owned by the store.
Task = Dict[str, Any]
Event = Dict[str, Any]

# Field value meaning "remove this field" in a task patch.
DELETE = "DELETE"

UNGROUPED = "__ungrouped"

BLOCK_TYPES = ("child", "time", "event", "default")
DRAG_TYPES = ("task", "task-length", "group", "event", "new", "due", "new_button")
SPAN_TYPES = ("minutes", "hours", "days")


@dataclass(frozen=True)
class Window:
    """Half-open [start_iso, end_iso) view window."""

    start_iso: str
    end_iso: str
    span_type: str = "minutes"

    def __post_init__(self) -> None:
        if self.span_type not in SPAN_TYPES:
            raise ValueError(f"unknown span type: {self.span_type!r}")


@dataclass(frozen=True)
class TimeBlock:
    key: str
    tasks: Tuple[Task, ...]
    events: Tuple[Event, ...]


@dataclass(frozen=True)
class TimelineBuckets:
    due_tasks: Tuple[Task, ...]
    timed_tasks: Tuple[Task, ...]
    all_day_tasks: Tuple[Task, ...]
    all_day_events: Tuple[Event, ...]
    timed_events: Tuple[Event, ...]
    blocks: Tuple[TimeBlock, ...]
    is_today: bool


@dataclass(frozen=True)
class TaskNode:
    """Tree leaf/parent. `kind` is "real" for a store task, "synthetic" for a virtual parent."""

    kind: str
    id: str
    type: str
    area: str
    heading: Optional[str]
    path: str
    position: int
    scheduled: Optional[str]
    children: Tuple[str, ...] = ()
    task: Optional[Task] = None


@dataclass(frozen=True)
class GroupEntry:
    node: TaskNode
    render: str  # "task" | "link"


@dataclass(frozen=True)
class HeadingGroup:
    name: str
    path: str
    entries: Tuple[GroupEntry, ...]


@dataclass(frozen=True)
class AreaGroup:
    name: str
    headings: Tuple[HeadingGroup, ...]

    def task_ids(self) -> Tuple[str, ...]:
        return tuple(e.node.id for h in self.headings for e in h.entries)


@dataclass(frozen=True)
class DragPayload:
    """In-flight description of what is being dragged.

    drag_type is one of DRAG_TYPES. Only the fields relevant to the kind are set.
    """

    drag_type: str
    task_ids: Tuple[str, ...] = ()
    container: Optional[str] = None
    span_type: str = "minutes"
    start_iso: Optional[str] = None
    end_iso: Optional[str] = None
    event_id: Optional[str] = None
    path: Optional[str] = None
    heading: Optional[str] = None
    name: Optional[str] = None
    level: Optional[str] = None

    def __post_init__(self) -> None:
        if self.drag_type not in DRAG_TYPES:
            raise ValueError(f"unknown drag type: {self.drag_type!r}")


@dataclass(frozen=True)
class DropTarget:
    kind: str  # "date" | "datetime" | "unscheduled" | "due" | "heading"
    value: Optional[str] = None

    @property
    def key(self) -> str:
        if self.kind == "unscheduled":
            return "unscheduled"
        if self.kind == "due":
            return f"due:{self.value}"
        if self.kind == "heading":
            return f"heading:{self.value}"
        return str(self.value)


@dataclass(frozen=True)
class PatchOutcome:
    id: str
    status: str  # "ok" | "failed" | "missing"
    error: Optional[str] = None


@dataclass(frozen=True)
class PatchReport:
    outcomes: Tuple[PatchOutcome, ...] = field(default_factory=tuple)

    def ids(self, status: str) -> Tuple[str, ...]:
        return tuple(o.id for o in self.outcomes if o.status == status)

    @property
    def ok(self) -> bool:
        return not self.ids("failed")


__all__ = [
    "Task",
    "Event",
    "DELETE",
    "UNGROUPED",
    "BLOCK_TYPES",
    "DRAG_TYPES",
    "SPAN_TYPES",
    "Window",
    "TimeBlock",
    "TimelineBuckets",
    "TaskNode",
    "GroupEntry",
    "HeadingGroup",
    "AreaGroup",
    "DragPayload",
    "DropTarget",
    "PatchOutcome",
    "PatchReport",
]
