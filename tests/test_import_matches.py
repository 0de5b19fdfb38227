from __future__ import annotations

import importlib.util
import sys
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "import_matches.py"
_spec = importlib.util.spec_from_file_location("import_matches", SCRIPT)
assert _spec is not None and _spec.loader is not None
import_matches = importlib.util.module_from_spec(_spec)
sys.modules["import_matches"] = import_matches
_spec.loader.exec_module(import_matches)


class TestImportMatches(unittest.TestCase):
    def test_parse_timestamp_accepts_ledger_layouts(self) -> None:
        cases = {
            "2026-03-01T18:30:00": datetime(2026, 3, 1, 18, 30),
            "3/1/26 6:30 PM": datetime(2026, 3, 1, 18, 30),
            "03/01/2026 18:30:05": datetime(2026, 3, 1, 18, 30, 5),
            "03/01/2026": datetime(2026, 3, 1, 12, 0),
            " 2026-03-01 ": datetime(2026, 3, 1, 12, 0),
        }
        for text, expected in cases.items():
            self.assertEqual(import_matches.parse_timestamp(text), expected, text)
        with self.assertRaises(ValueError):
            import_matches.parse_timestamp("yesterday")

    def test_split_name(self) -> None:
        self.assertEqual(import_matches.split_name("W Huang"), ("W", "Huang"))
        self.assertEqual(import_matches.split_name("Ana Maria Lopez"), ("Ana", "Maria Lopez"))
        self.assertEqual(import_matches.split_name(" Chen "), ("Chen", ""))

    def test_read_ledger_sorts_rows_and_reports_bad_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "ledger.csv"
            path.write_text(
                "time,winner,loser\n"
                "3/2/26 9:00 AM,Alice Ng,Bruno Diaz\n"
                "3/1/26 6:30 PM,Bruno Diaz,Alice Ng\n"
                "someday,Alice Ng,Chen\n"
                "3/3/26 9:00 AM,Alice Ng\n",
                encoding="utf-8",
            )
            rows, skipped = import_matches.read_ledger(path)

        self.assertEqual([row.line for row in rows], [3, 2])
        self.assertEqual(rows[0].winner, "Bruno Diaz")
        self.assertEqual(rows[0].played_at, datetime(2026, 3, 1, 18, 30))
        self.assertEqual(len(skipped), 2)
        self.assertTrue(skipped[0].startswith("line 4:"))
        self.assertTrue(skipped[1].startswith("line 5:"))


if __name__ == "__main__":
    unittest.main()
