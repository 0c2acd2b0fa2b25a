from __future__ import annotations

import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from timeruler import cli

TASKS = {
    "tasks": [
        {"id": "a", "title": "Write report", "area": "work", "path": "work.md", "position": 1, "scheduled": "2024-01-01T09:00"},
        {"id": "b", "title": "Groceries", "area": "home", "path": "home.md", "position": 1, "scheduled": "2024-01-01"},
        {"id": "c", "title": "Taxes", "area": "home", "path": "home.md", "position": 2, "due": "2024-01-02"},
        {"id": "d", "title": "Done", "area": "home", "path": "home.md", "position": 3, "scheduled": "2024-01-01T11:00", "completed": True},
    ],
    "settings": {"twentyFourHourFormat": False},
}

EVENTS = {"events": [{"id": "e1", "title": "Standup", "startISO": "2024-01-01T09:00", "endISO": "2024-01-01T09:15"}]}


def _run(argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        rc = cli.main(argv)
    return rc, out.getvalue(), err.getvalue()


class TestCliViewContract(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.tmp = Path(self._td.name)
        self.tasks = self.tmp / "tasks.json"
        self.events = self.tmp / "events.json"
        self.tasks.write_text(json.dumps(TASKS), encoding="utf-8")
        self.events.write_text(json.dumps(EVENTS), encoding="utf-8")

    def tearDown(self) -> None:
        self._td.cleanup()

    def test_json_output_to_file(self) -> None:
        out = self.tmp / "build" / "view.json"
        rc, stdout, _ = _run(
            [
                "--tasks", str(self.tasks),
                "--events", str(self.events),
                "--now", "2024-01-01T08:00",
                "--format", "json",
                "--out", str(out),
            ]
        )
        self.assertEqual(rc, 0)
        self.assertEqual(stdout.strip(), str(out))

        views = json.loads(out.read_text(encoding="utf-8"))
        self.assertEqual([v["start"] for v in views], ["2024-01-01", "2024-01-02"])
        today = views[0]
        self.assertTrue(today["is_today"])
        self.assertEqual(today["due"], ["c"])
        self.assertEqual([b["key"] for b in today["blocks"]], ["2024-01-01T09:00"])
        self.assertEqual(today["blocks"][0]["events"], ["e1"])
        self.assertEqual(today["all_day"][0]["headings"][0]["items"][0]["id"], "b")

    def test_text_output(self) -> None:
        rc, stdout, _ = _run(["--tasks", str(self.tasks), "--events", str(self.events), "--now", "2024-01-01T08:00"])
        self.assertEqual(rc, 0)
        self.assertIn("Mon, Jan 1", stdout)
        self.assertIn("9:00 AM  Standup", stdout)
        self.assertIn("Write report", stdout)
        self.assertIn("! Taxes (due 2024-01-02)", stdout)
        self.assertNotIn("Done", stdout)

    def test_start_and_dates_shown(self) -> None:
        rc, stdout, _ = _run(
            ["--tasks", str(self.tasks), "--now", "2024-01-01T08:00", "--start", "2024-01-03", "--dates-shown", "1", "--format", "json"]
        )
        self.assertEqual(rc, 0)
        views = json.loads(stdout)
        self.assertEqual(len(views), 5)
        self.assertFalse(views[0]["is_today"])

    def test_user_errors_exit_2(self) -> None:
        rc, _, err = _run(["--tasks", str(self.tmp / "missing.json")])
        self.assertEqual(rc, 2)
        self.assertIn("Missing task store JSON", err)

        rc, _, err = _run(["--tasks", str(self.tasks), "--tz", "No/Such_Zone"])
        self.assertEqual(rc, 2)
        self.assertIn("Invalid --tz value", err)

        rc, _, err = _run(["--tasks", str(self.tasks), "--now", "today"])
        self.assertEqual(rc, 2)

        rc, _, err = _run(["--tasks", str(self.tasks), "--now", "2024-01-01T08:00", "--start", "01/03/2024"])
        self.assertEqual(rc, 2)
        self.assertIn("Invalid --start value", err)

    def test_broken_json_exit_2(self) -> None:
        self.tasks.write_text("[1, 2]", encoding="utf-8")
        rc, _, err = _run(["--tasks", str(self.tasks), "--now", "2024-01-01T08:00"])
        self.assertEqual(rc, 2)
        self.assertIn("Failed to load JSON", err)


if __name__ == "__main__":
    unittest.main(verbosity=2)
