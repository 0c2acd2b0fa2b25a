"""Collaborator boundary: task persistence and calendar event source.

The engine only needs success/failure from these calls. Implementations may
be synchronous or return awaitables; the store awaits whatever comes back.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from .model import Event, Task
from .util.console import obs

JsonDict = Dict[str, Any]


class TaskStoreAPI(Protocol):
    def is_ready(self) -> bool:
        """False until the host's task index is initialized."""

    def on_ready(self, callback: Callable[[], None]) -> None:
        """Invoke `callback` once when the index becomes ready."""

    def load_tasks(self, scope_filter: str) -> List[Task]:
        ...

    def save_task(self, task: Task) -> bool:
        ...

    def create_task(self, path: str, heading: Optional[str], initial_schedule: Optional[str]) -> Task:
        ...

    def update_file_order(self, heading: str, before_heading: str) -> None:
        ...

    def get_exclude_paths(self) -> List[str]:
        ...

    def get_setting(self, name: str) -> Any:
        ...

    def play_complete(self) -> None:
        ...


class EventSourceAPI(Protocol):
    def load_events(self) -> List[Event]:
        ...

    def reschedule_event(self, event_id: str, start_iso: str, end_iso: str) -> bool:
        ...


class NoopEventSource:
    """Event source with no calendars configured."""

    def load_events(self) -> List[Event]:
        return []

    def reschedule_event(self, event_id: str, start_iso: str, end_iso: str) -> bool:
        return False


NOOP_EVENT_SOURCE = NoopEventSource()


def _read_json_object(path: Path) -> JsonDict:
    if not path.exists():
        return {}
    obj = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    if not isinstance(obj, dict):
        raise ValueError(f"{path} must hold a JSON object; got {type(obj).__name__}")
    return obj


def _write_json_object(path: Path, obj: JsonDict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n", encoding="utf-8")


class JsonTaskStore:
    """TaskStoreAPI over a JSON file: {"tasks": [...], "settings": {...}, ...}."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.completions = 0

    def is_ready(self) -> bool:
        return True

    def on_ready(self, callback: Callable[[], None]) -> None:
        callback()

    def _doc(self) -> JsonDict:
        return _read_json_object(self.path)

    def _tasks(self, doc: JsonDict) -> List[Task]:
        tasks = doc.get("tasks")
        return [t for t in tasks if isinstance(t, dict)] if isinstance(tasks, list) else []

    def load_tasks(self, scope_filter: str) -> List[Task]:
        doc = self._doc()
        excluded = self.get_exclude_paths()
        out: List[Task] = []
        for t in self._tasks(doc):
            p = str(t.get("path") or "")
            if scope_filter and not p.startswith(scope_filter):
                continue
            if any(p.startswith(x) for x in excluded):
                continue
            out.append(dict(t))
        obs("interface", f"load_tasks path={self.path} tasks={len(out)}")
        return out

    def save_task(self, task: Task) -> bool:
        tid = task.get("id")
        if not isinstance(tid, str) or not tid:
            return False
        doc = self._doc()
        tasks = self._tasks(doc)
        saved = {k: v for k, v in task.items() if k != "children"}
        for i, t in enumerate(tasks):
            if t.get("id") == tid:
                tasks[i] = saved
                break
        else:
            return False
        doc["tasks"] = tasks
        _write_json_object(self.path, doc)
        return True

    def create_task(self, path: str, heading: Optional[str], initial_schedule: Optional[str]) -> Task:
        doc = self._doc()
        tasks = self._tasks(doc)
        position = 1 + max((int(t.get("position") or 0) for t in tasks if t.get("path") == path), default=-1)
        task: Task = {
            "id": f"{path}::{position}",
            "title": "",
            "path": path,
            "position": position,
            "area": path.rsplit("/", 1)[-1].replace(".md", ""),
        }
        if heading:
            task["heading"] = heading
        if initial_schedule:
            task["scheduled"] = initial_schedule
        tasks.append(task)
        doc["tasks"] = tasks
        _write_json_object(self.path, doc)
        return dict(task)

    def update_file_order(self, heading: str, before_heading: str) -> None:
        doc = self._doc()
        order = [x for x in (doc.get("file_order") or []) if isinstance(x, str) and x != heading]
        if before_heading in order:
            order.insert(order.index(before_heading), heading)
        else:
            order.append(heading)
        doc["file_order"] = order
        _write_json_object(self.path, doc)

    def get_exclude_paths(self) -> List[str]:
        raw = self._doc().get("exclude_paths") or []
        return [x for x in raw if isinstance(x, str) and x]

    def get_setting(self, name: str) -> Any:
        settings = self._doc().get("settings")
        return settings.get(name) if isinstance(settings, dict) else None

    def play_complete(self) -> None:
        self.completions += 1


class JsonEventSource:
    """EventSourceAPI over a JSON file: {"events": [...]}."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load_events(self) -> List[Event]:
        events = _read_json_object(self.path).get("events")
        if not isinstance(events, list):
            return []
        return [dict(e) for e in events if isinstance(e, dict) and e.get("startISO") and e.get("endISO")]

    def reschedule_event(self, event_id: str, start_iso: str, end_iso: str) -> bool:
        doc = _read_json_object(self.path)
        events = doc.get("events") if isinstance(doc.get("events"), list) else []
        for e in events:
            if isinstance(e, dict) and e.get("id") == event_id:
                e["startISO"] = start_iso
                e["endISO"] = end_iso
                _write_json_object(self.path, doc)
                return True
        return False


__all__ = [
    "TaskStoreAPI",
    "EventSourceAPI",
    "NoopEventSource",
    "NOOP_EVENT_SOURCE",
    "JsonTaskStore",
    "JsonEventSource",
]
