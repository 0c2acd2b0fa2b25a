from __future__ import annotations

import datetime as dt
import os
import unittest
from unittest.mock import patch

from timeruler.util.tz import default_tz_name, local_now, normalize_tz_name, resolve_tz


class TestZoneNamesContract(unittest.TestCase):
    def test_aliases_collapse(self) -> None:
        for raw in (None, "", " System ", "native"):
            self.assertEqual(normalize_tz_name(raw), "local")
        for raw in ("z", "GMT", "utc+0"):
            self.assertEqual(normalize_tz_name(raw), "UTC")
        self.assertEqual(normalize_tz_name("Europe/Bucharest"), "Europe/Bucharest")

    def test_env_default(self) -> None:
        with patch.dict(os.environ, {"TIMERULER_TZ": "gmt"}):
            self.assertEqual(default_tz_name(), "UTC")

    def test_offsets_and_utc(self) -> None:
        self.assertIs(resolve_tz("Z"), dt.timezone.utc)
        self.assertEqual(resolve_tz("+02:00").utcoffset(None), dt.timedelta(hours=2))
        self.assertEqual(resolve_tz("-0530").utcoffset(None), dt.timedelta(hours=-5, minutes=-30))

    def test_bad_names_are_value_errors(self) -> None:
        for bad in ("No/Such_Zone", "+25:00", "+02:75"):
            with self.assertRaises(ValueError, msg=bad):
                resolve_tz(bad)

    def test_now_is_naive_wall_clock(self) -> None:
        self.assertIsNone(local_now(dt.timezone.utc).tzinfo)


if __name__ == "__main__":
    unittest.main(verbosity=2)
