from __future__ import annotations

import datetime as dt
import unittest

from timeruler.util.duration import format_minutes_as_duration, parse_duration_to_minutes
from timeruler.util.isotime import (
    format_start,
    is_date_iso,
    is_datetime_iso,
    minutes_between,
    parse_iso,
    round_minutes,
    shift_iso,
)
from timeruler.util.timeparse import parse_drop_arg


class TestIsoTimeContract(unittest.TestCase):
    def test_shapes(self) -> None:
        self.assertTrue(is_date_iso("2024-01-01"))
        self.assertFalse(is_date_iso("2024-01-01T09:00"))
        self.assertTrue(is_datetime_iso("2024-01-01T09:00"))
        self.assertTrue(is_datetime_iso("2024-01-01T09:00:30"))
        self.assertFalse(is_datetime_iso(None))

    def test_parse(self) -> None:
        self.assertEqual(parse_iso("2024-01-01"), dt.datetime(2024, 1, 1))
        self.assertEqual(parse_iso("2024-01-01T09:15"), dt.datetime(2024, 1, 1, 9, 15))
        with self.assertRaises(ValueError):
            parse_iso("tomorrow")

    def test_round_to_granularity(self) -> None:
        self.assertEqual(round_minutes(dt.datetime(2024, 1, 1, 9, 7, 40), 15), dt.datetime(2024, 1, 1, 9, 0))
        self.assertEqual(round_minutes(dt.datetime(2024, 1, 1, 9, 8), 15), dt.datetime(2024, 1, 1, 9, 15))
        self.assertEqual(round_minutes(dt.datetime(2024, 1, 1, 9, 44), 30), dt.datetime(2024, 1, 1, 9, 30))

    def test_shift_keeps_shape(self) -> None:
        self.assertEqual(shift_iso("2024-01-01T22:30", dt.timedelta(hours=4)), "2024-01-02T02:30")
        self.assertEqual(shift_iso("2024-01-01", dt.timedelta(days=1)), "2024-01-02")

    def test_minutes_between(self) -> None:
        self.assertEqual(minutes_between("2024-01-01T09:00", "2024-01-01T10:30"), 90)
        self.assertEqual(minutes_between("2024-01-01T09:00", "2024-01-01T08:00"), -60)

    def test_format_start(self) -> None:
        self.assertEqual(format_start("2024-01-01T09:05", today="2024-01-01"), "9:05 AM")
        self.assertEqual(format_start("2024-01-01T13:05", today="2024-01-01"), "1:05 PM")
        self.assertEqual(format_start("2024-01-01T13:05", today="2024-01-01", twenty_four_hour=True), "13:05")
        self.assertEqual(format_start("2024-01-01T00:10", today="2024-01-01"), "12:10 AM")
        self.assertEqual(format_start("2024-01-01", today="2024-01-01"), "Mon Jan 1")
        self.assertEqual(format_start("2023-12-31T18:00", today="2024-01-01"), "Sun Dec 31 6:00 PM")


class TestDurationContract(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertEqual(parse_duration_to_minutes("PT1H30M"), 90)
        self.assertEqual(parse_duration_to_minutes("PT45S"), 1)
        self.assertIsNone(parse_duration_to_minutes("PT0M"))
        self.assertIsNone(parse_duration_to_minutes("90 minutes"))
        self.assertIsNone(parse_duration_to_minutes(None))

    def test_format(self) -> None:
        self.assertEqual(format_minutes_as_duration(15), "PT15M")
        self.assertEqual(format_minutes_as_duration(60), "PT1H")
        self.assertEqual(format_minutes_as_duration(135), "PT2H15M")
        with self.assertRaises(ValueError):
            format_minutes_as_duration(0)


class TestDropArgContract(unittest.TestCase):
    def test_forms(self) -> None:
        self.assertEqual(parse_drop_arg("2024-01-02"), {"scheduled": "2024-01-02"})
        self.assertEqual(parse_drop_arg("2024-01-02T09:00"), {"scheduled": "2024-01-02T09:00"})
        self.assertEqual(parse_drop_arg("Unscheduled"), {"scheduled": ""})
        self.assertEqual(parse_drop_arg("due:2024-01-05"), {"due": "2024-01-05"})
        self.assertEqual(parse_drop_arg("heading:a.md#Work"), {"before_heading": "a.md#Work"})

    def test_rejects(self) -> None:
        for bad in ("", "heading:", "due:friday", "next week"):
            with self.assertRaises(ValueError):
                parse_drop_arg(bad)


if __name__ == "__main__":
    unittest.main(verbosity=2)
