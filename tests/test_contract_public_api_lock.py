from __future__ import annotations

import unittest

import timeruler
import timeruler.api as api


class TestPublicSurfaceContract(unittest.TestCase):
    def test_all_names_resolve_once(self) -> None:
        names = list(api.__all__)
        self.assertEqual(len(names), len(set(names)))
        missing = [n for n in names if getattr(api, n, None) is None]
        self.assertEqual(missing, [])

    def test_engine_entrypoints_are_public(self) -> None:
        for name in ("RecordStore", "bucket_timeline", "group_block", "RescheduleEngine", "TimelineSession", "DELETE"):
            self.assertIn(name, api.__all__)

    def test_package_mirrors_api(self) -> None:
        self.assertEqual(list(timeruler.__all__), list(api.__all__))
        for name in api.__all__:
            self.assertIs(getattr(timeruler, name), getattr(api, name), name)
        self.assertEqual(timeruler.__version__, "0.1.0")


if __name__ == "__main__":
    unittest.main(verbosity=2)
