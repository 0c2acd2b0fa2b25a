# timeruler/store.py
from __future__ import annotations

import asyncio
import copy
import inspect
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .interface import EventSourceAPI, TaskStoreAPI
from .model import DELETE, DragPayload, Event, PatchOutcome, PatchReport, Task
from .util.console import eprint, obs

Selector = Callable[[Dict[str, Any]], Any]
Listener = Callable[[Any, Any], None]


def initial_state() -> Dict[str, Any]:
    return {
        "tasks": {},
        "events": {},
        "drag_data": None,
        "finding_task": None,
        "search_status": False,
        "calendar_mode": False,
        "file_order": [],
        "collapsed": {},
        "now": None,
        "daily_note_path": "",
        "day_start_end": (0, 24),
        "hide_headings": False,
        "muted": False,
        "twenty_four_hour_format": False,
    }


def _is_delete(v: Any) -> bool:
    return isinstance(v, str) and v == DELETE


def _marks_complete(patch: Optional[Mapping[str, Any]]) -> bool:
    if not patch:
        return False
    return any(patch.get(k) and not _is_delete(patch.get(k)) for k in ("completed", "completion"))


def merge_task(current: Task, *patches: Optional[Mapping[str, Any]]) -> Task:
    """Field-level merge; a DELETE value removes the field instead of setting it."""
    merged: Task = dict(current)
    for patch in patches:
        if not patch:
            continue
        for k, v in patch.items():
            if _is_delete(v):
                merged.pop(k, None)
            else:
                merged[k] = v
    return merged


def derive_children(tasks: Dict[str, Task]) -> Dict[str, Task]:
    """Rebuild each task's `children` list from `parent_id` links."""
    out = {tid: {**t, "children": []} for tid, t in tasks.items()}
    for tid, t in out.items():
        parent = t.get("parent_id")
        if isinstance(parent, str) and parent in out:
            out[parent]["children"].append(tid)
    return out


class RecordStore:
    """Process-wide keyed table of records plus transient UI state.

    Every write goes through `set_state`, which replaces top-level values
    (never mutates them in place) and then notifies subscribers. Writes issued
    from inside a subscriber are queued and applied after the current
    notification round, so no listener sees a half-applied patch.
    """

    def __init__(
        self,
        *,
        task_api: Optional[TaskStoreAPI] = None,
        event_api: Optional[EventSourceAPI] = None,
        state: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._state: Dict[str, Any] = initial_state()
        if state:
            self._state.update(state)
        self.task_api = task_api
        self.event_api = event_api
        self._listeners: List[Tuple[Selector, Listener, List[Any]]] = []
        self._pending: Deque[Dict[str, Any]] = deque()
        self._committing = False

    # --- reads -------------------------------------------------------------

    def read(self, key: str) -> Any:
        return self._state[key]

    def read_all(self) -> Dict[str, Any]:
        """Deep snapshot of the whole state tree."""
        return copy.deepcopy(self._state)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._state["tasks"].get(task_id)

    def get_event(self, event_id: str) -> Optional[Event]:
        return self._state["events"].get(event_id)

    # --- mutation gateway --------------------------------------------------

    def set_state(self, partial: Mapping[str, Any]) -> None:
        unknown = [k for k in partial if k not in self._state]
        if unknown:
            raise KeyError(f"unknown state keys: {', '.join(sorted(unknown))}")

        self._pending.append(dict(partial))
        if self._committing:
            return

        self._committing = True
        try:
            while self._pending:
                patch = self._pending.popleft()
                self._state = {**self._state, **patch}
                self._notify()
        finally:
            self._committing = False
            self._pending.clear()

    def modify(self, modifier: Callable[[Dict[str, Any]], Mapping[str, Any]]) -> None:
        """Apply a patch computed from the current state."""
        self.set_state(modifier(self._state))

    def subscribe(self, selector: Selector, listener: Listener) -> Callable[[], None]:
        """Call `listener(new, old)` whenever `selector(state)` changes.

        Returns an unsubscribe callable.
        """
        entry = (selector, listener, [selector(self._state)])
        self._listeners.append(entry)

        def _unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return _unsubscribe

    def _notify(self) -> None:
        """Run every listener whose selection changed; one failing listener does not stop the rest."""
        for selector, listener, last in list(self._listeners):
            try:
                new = selector(self._state)
                if new == last[0]:
                    continue
                old = last[0]
                last[0] = new
                listener(new, old)
            except Exception as ex:
                name = getattr(listener, "__name__", type(listener).__name__)
                eprint(f"[timeruler.store] ERROR: subscriber {name} failed: {ex}")

    # --- table loads -------------------------------------------------------

    def load_tasks(self, records: Iterable[Task]) -> None:
        table: Dict[str, Task] = {}
        for t in records:
            tid = t.get("id") if isinstance(t, dict) else None
            if not isinstance(tid, str) or not tid:
                eprint(f"[timeruler.store] WARN: skipping task without id: {t!r}")
                continue
            table[tid] = dict(t)
        self.set_state({"tasks": derive_children(table)})
        obs("store", f"load_tasks tasks={len(table)}")

    def load_events(self, records: Iterable[Event]) -> None:
        table: Dict[str, Event] = {}
        for e in records:
            eid = e.get("id") if isinstance(e, dict) else None
            if not isinstance(eid, str) or not eid:
                eprint(f"[timeruler.store] WARN: skipping event without id: {e!r}")
                continue
            table[eid] = dict(e)
        self.set_state({"events": table})
        obs("store", f"load_events events={len(table)}")

    # --- drag slot ---------------------------------------------------------

    def set_drag(self, payload: Optional[DragPayload]) -> None:
        """Replace the single drag slot (never mutated in place)."""
        self.set_state({"drag_data": payload})

    # --- sanctioned writes -------------------------------------------------

    def _require_task_api(self) -> TaskStoreAPI:
        if self.task_api is None:
            raise RuntimeError("task store collaborator is not attached")
        return self.task_api

    async def patch_tasks(
        self,
        ids: Sequence[str],
        partial: Mapping[str, Any],
        *,
        per_task: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> PatchReport:
        """Merge `partial` (then `per_task[id]`) onto each task and save it.

        Ids are written one at a time, in order. A rejected or raising write is
        recorded for that id and the loop moves on; ids no longer in the store
        are skipped as no-ops.
        """
        api = self._require_task_api()
        per_task = per_task or {}
        outcomes: List[PatchOutcome] = []

        for tid in ids:
            current = self.get_task(tid)
            if current is None:
                outcomes.append(PatchOutcome(id=tid, status="missing"))
                obs("store", f"patch.missing id={tid!r}")
                continue

            merged = merge_task(current, partial, per_task.get(tid))
            try:
                res = api.save_task(merged)
                if inspect.isawaitable(res):
                    res = await res
            except Exception as ex:
                outcomes.append(PatchOutcome(id=tid, status="failed", error=str(ex) or type(ex).__name__))
                eprint(f"[timeruler.store] ERROR: save_task failed id={tid!r}: {ex}")
                continue

            if res is False:
                outcomes.append(PatchOutcome(id=tid, status="failed", error="rejected"))
                eprint(f"[timeruler.store] ERROR: save_task rejected id={tid!r}")
                continue

            self.modify(lambda s, tid=tid, merged=merged: {"tasks": {**s["tasks"], tid: merged}})
            outcomes.append(PatchOutcome(id=tid, status="ok"))

        report = PatchReport(outcomes=tuple(outcomes))
        obs("store", f"patch ok={len(report.ids('ok'))} failed={len(report.ids('failed'))} missing={len(report.ids('missing'))}")

        if any(_marks_complete(partial) or _marks_complete(per_task.get(tid)) for tid in report.ids("ok")):
            self._signal_complete(api)
        return report

    def _signal_complete(self, api: TaskStoreAPI) -> None:
        if self._state.get("muted"):
            return
        try:
            res = api.play_complete()
        except Exception as ex:
            eprint(f"[timeruler.store] WARN: completion signal failed: {ex}")
            return
        if inspect.isawaitable(res):
            fut = asyncio.ensure_future(res)
            fut.add_done_callback(_report_signal_failure)

    def patch_collapsed(self, key: str, collapsed: bool) -> None:
        self.modify(lambda s: {"collapsed": {**s["collapsed"], key: bool(collapsed)}})

    def is_collapsed(self, key: str) -> bool:
        return bool(self._state["collapsed"].get(key, False))

    def update_file_order(self, heading: str, before_heading: str) -> None:
        self._require_task_api().update_file_order(heading, before_heading)
        order = [x for x in self._state["file_order"] if x != heading]
        if before_heading in order:
            order.insert(order.index(before_heading), heading)
        else:
            order.append(heading)
        self.set_state({"file_order": order})


def _report_signal_failure(fut: "asyncio.Future[Any]") -> None:
    if fut.cancelled():
        return
    ex = fut.exception()
    if ex is not None:
        eprint(f"[timeruler.store] WARN: completion signal failed: {ex}")


__all__ = [
    "RecordStore",
    "initial_state",
    "merge_task",
    "derive_children",
]
