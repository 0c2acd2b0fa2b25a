# timeruler/session.py
from __future__ import annotations

import asyncio
import datetime as dt
from typing import Callable, List, Optional

from .bucketing import day_windows
from .interface import NOOP_EVENT_SOURCE, EventSourceAPI, TaskStoreAPI
from .model import Task, Window
from .settings import NOW_REFRESH_S, ViewSettings
from .store import RecordStore
from .util.console import obs
from .util.isotime import datetime_iso
from .util.tz import local_now, resolve_tz
from .view import TimelineView, build_view


class TimelineSession:
    """Wires the store to its collaborators and reloads everything on demand.

    If the task index is not ready yet, reload() registers a one-shot
    readiness callback and returns False; the callback re-runs reload().
    """

    def __init__(
        self,
        task_api: TaskStoreAPI,
        event_api: Optional[EventSourceAPI] = None,
        *,
        store: Optional[RecordStore] = None,
        scope_filter: str = "",
        tz: Optional[str] = None,
    ) -> None:
        self.store = store or RecordStore()
        self.store.task_api = task_api
        self.store.event_api = event_api or NOOP_EVENT_SOURCE
        self.scope_filter = scope_filter
        self.tz = tz
        self.settings = ViewSettings()
        self.exclude_paths: List[str] = []
        self._waiting_ready = False
        self.reload_count = 0

    @property
    def task_api(self) -> TaskStoreAPI:
        return self.store.task_api  # type: ignore[return-value]

    @property
    def event_api(self) -> EventSourceAPI:
        return self.store.event_api  # type: ignore[return-value]

    def reload(self) -> bool:
        api = self.task_api
        if not api.is_ready():
            if not self._waiting_ready:
                self._waiting_ready = True
                api.on_ready(self._on_ready)
            obs("session", "task index not ready; deferring reload")
            return False

        # A full reload ends any in-flight drag.
        self.store.set_drag(None)
        self.exclude_paths = list(api.get_exclude_paths() or [])
        self.settings = ViewSettings.from_host(api.get_setting, tz=self.tz)
        self.store.set_state(self.settings.as_state())

        daily = api.get_setting("dailyNotePath")
        if isinstance(daily, str):
            self.store.set_state({"daily_note_path": daily})

        self.store.load_events(self.event_api.load_events())
        self.store.load_tasks(t for t in api.load_tasks(self.scope_filter) if not self._excluded(t))
        self.reload_count += 1
        obs("session", f"reload #{self.reload_count} done")
        return True

    def _excluded(self, task: Task) -> bool:
        path = str(task.get("path") or "")
        return any(x and path.startswith(x) for x in self.exclude_paths)

    def _on_ready(self) -> None:
        self._waiting_ready = False
        self.reload()

    def today(self) -> dt.date:
        now = self.store.read("now")
        if now:
            return dt.date.fromisoformat(now[:10])
        return local_now(resolve_tz(self.settings.tz)).date()

    def windows(self, dates_shown: int = 0) -> List[Window]:
        return day_windows(self.today(), dates_shown)

    def view(self, window: Window) -> TimelineView:
        return build_view(self.store, window)


class NowTicker:
    """Advance the store's `now` on a coarse period so subscribers re-bucket."""

    def __init__(
        self,
        store: RecordStore,
        *,
        interval_s: float = NOW_REFRESH_S,
        clock: Callable[[], dt.datetime] = local_now,
    ) -> None:
        self.store = store
        self.interval_s = float(interval_s)
        self.clock = clock
        self._task: Optional["asyncio.Task[None]"] = None

    def tick(self) -> str:
        now = datetime_iso(self.clock())
        self.store.set_state({"now": now})
        return now

    async def run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval_s)

    def start(self) -> "asyncio.Task[None]":
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = [
    "TimelineSession",
    "NowTicker",
]
