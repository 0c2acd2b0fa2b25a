from __future__ import annotations

import asyncio
import unittest

from _fakes import make_store

from timeruler.drag import (
    AutoScroller,
    DropZoneRegistry,
    Rect,
    RescheduleEngine,
    ScrollContainer,
    resolve_drop_target,
)
from timeruler.model import DELETE, DragPayload, DropTarget


class TestResolveDropTargetContract(unittest.TestCase):
    def test_scheduled_slots(self) -> None:
        self.assertEqual(resolve_drop_target({"scheduled": "2024-01-02"}, 15), DropTarget("date", "2024-01-02"))
        self.assertEqual(
            resolve_drop_target({"scheduled": "2024-01-02T13:07"}, 15),
            DropTarget("datetime", "2024-01-02T13:00"),
        )
        self.assertEqual(resolve_drop_target({"scheduled": "2024-01-02T13:08"}, 15).value, "2024-01-02T13:15")
        self.assertEqual(resolve_drop_target({"scheduled": "2024-01-02T13:08"}, 1).value, "2024-01-02T13:08")

    def test_unscheduled_forms(self) -> None:
        for v in ("", None, DELETE):
            self.assertEqual(resolve_drop_target({"scheduled": v}, 15), DropTarget("unscheduled"))

    def test_due_and_heading(self) -> None:
        self.assertEqual(resolve_drop_target({"due": "2024-01-09"}, 15).key, "due:2024-01-09")
        self.assertEqual(resolve_drop_target({"before_heading": "a.md#Work"}, 15).key, "heading:a.md#Work")
        self.assertIsNone(resolve_drop_target({"before_heading": ""}, 15))
        self.assertIsNone(resolve_drop_target({"due": "soon"}, 15))

    def test_unusable_zone_data(self) -> None:
        self.assertIsNone(resolve_drop_target({}, 15))
        self.assertIsNone(resolve_drop_target({"scheduled": "next tuesday"}, 15))


class TestDropZoneRegistryContract(unittest.TestCase):
    def test_innermost_zone_wins(self) -> None:
        zones = DropZoneRegistry()
        zones.register("day", Rect(0, 0, 100, 100), {"scheduled": "2024-01-01"})
        zones.register("slot", Rect(10, 10, 20, 20), {"scheduled": "2024-01-01T09:00"})

        self.assertEqual(zones.hit(15, 15).id, "slot")
        self.assertEqual(zones.hit(50, 50).id, "day")
        self.assertIsNone(zones.hit(500, 500))

        zones.unregister("slot")
        self.assertEqual(zones.hit(15, 15).id, "day")
        self.assertEqual(len(zones), 1)

    def test_reregister_replaces_zone(self) -> None:
        zones = DropZoneRegistry()
        zones.register("slot", Rect(0, 0, 10, 10), {"scheduled": "2024-01-01"})
        zones.register("slot", Rect(0, 0, 10, 10), {"scheduled": "2024-01-02"})
        self.assertEqual(len(zones), 1)
        self.assertEqual(zones.hit(5, 5).data["scheduled"], "2024-01-02")


class TestAutoScrollContract(unittest.TestCase):
    def test_edge_bands_scroll_by_step(self) -> None:
        scroller = AutoScroller()
        strip = scroller.add(ScrollContainer("days", Rect(0, 0, 400, 300), "x", max_scroll=30))
        scroller.engage()

        self.assertEqual(scroller.tick(390, 150), [("days", 24)])
        self.assertEqual(scroller.tick(390, 150), [("days", 6)])
        self.assertEqual(scroller.tick(390, 150), [])
        self.assertEqual(scroller.tick(200, 150), [])
        self.assertEqual(scroller.tick(10, 150), [("days", -24)])
        self.assertEqual(strip.scroll, 6)

    def test_axis_is_per_container(self) -> None:
        scroller = AutoScroller()
        scroller.add(ScrollContainer("times", Rect(0, 0, 400, 300), "y"))
        scroller.engage()
        self.assertEqual(scroller.tick(390, 150), [])
        self.assertEqual(scroller.tick(200, 290), [("times", 24)])

    def test_not_engaged_does_nothing(self) -> None:
        scroller = AutoScroller()
        scroller.add(ScrollContainer("days", Rect(0, 0, 400, 300), "x"))
        self.assertEqual(scroller.tick(390, 150), [])

    def test_bad_axis(self) -> None:
        with self.assertRaises(ValueError):
            ScrollContainer("z", Rect(0, 0, 1, 1), "z")

    def test_engine_stops_scrolling_when_drag_ends(self) -> None:
        store, _, _ = make_store([{"id": "a", "scheduled": "2024-01-01T09:00"}])
        scroller = AutoScroller()
        scroller.add(ScrollContainer("days", Rect(0, 0, 400, 300), "x"))
        engine = RescheduleEngine(store, scroller=scroller, granularity_min=15)
        engine.zones.register("slot", Rect(0, 0, 400, 300), {"scheduled": "2024-01-02"})

        engine.start(DragPayload("task", task_ids=("a",)))
        self.assertTrue(scroller.engaged)
        engine.move(390, 150)
        self.assertEqual(scroller.containers["days"].scroll, 24)

        asyncio.run(engine.drop())
        self.assertFalse(scroller.engaged)
        self.assertEqual(scroller.tick(390, 150), [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
