"""timeruler.api

Stable *library* entrypoint.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

from timeruler.bucketing import bucket_timeline, day_windows, remove_nested_children
from timeruler.drag import (
    AutoScroller,
    DragStateError,
    DropResult,
    DropZoneRegistry,
    Rect,
    RescheduleEngine,
    ScrollContainer,
    plan_mutation,
    resolve_drop_target,
)
from timeruler.grouping import group_block
from timeruler.interface import EventSourceAPI, JsonEventSource, JsonTaskStore, TaskStoreAPI
from timeruler.model import DELETE, DragPayload, DropTarget, PatchReport, TaskNode, Window
from timeruler.session import NowTicker, TimelineSession
from timeruler.store import RecordStore
from timeruler.view import TimelineView, build_view, view_to_dict

__all__ = [
    "DELETE",
    "Window",
    "TaskNode",
    "DragPayload",
    "DropTarget",
    "PatchReport",
    "RecordStore",
    "bucket_timeline",
    "day_windows",
    "remove_nested_children",
    "group_block",
    "TimelineView",
    "build_view",
    "view_to_dict",
    "Rect",
    "DropZoneRegistry",
    "ScrollContainer",
    "AutoScroller",
    "resolve_drop_target",
    "plan_mutation",
    "DropResult",
    "DragStateError",
    "RescheduleEngine",
    "TaskStoreAPI",
    "EventSourceAPI",
    "JsonTaskStore",
    "JsonEventSource",
    "TimelineSession",
    "NowTicker",
]
