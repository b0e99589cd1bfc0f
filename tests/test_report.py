import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import datetime
from pathlib import Path

from catalog_dedupe.core.matching import Record, analyze_records
from catalog_dedupe.report import build_report, print_report, write_report


def _result():
    records = [
        Record(id=1, title="A Christmas Carol", order_key=datetime(2020, 1, 1)),
        Record(id=2, title="A CHRISTMAS CAROL", order_key=datetime(2021, 1, 1)),
        Record(id=3, title="A Tale of Two Cities", order_key=datetime(2020, 6, 1)),
    ]
    return analyze_records(records)


class TestBuildReport(unittest.TestCase):
    def test_group_entries(self) -> None:
        report = build_report(_result())
        self.assertEqual(report["total_records"], 3)
        self.assertEqual(report["duplicate_groups"], 1)
        self.assertEqual(report["total_duplicates"], 1)
        self.assertEqual(report["unique_records"], 2)

        group = report["groups"][0]
        self.assertEqual(group["group_id"], 1)
        self.assertEqual(group["title"], "A Christmas Carol")
        self.assertEqual(group["count"], 2)
        keep = [book["id"] for book in group["books"] if book["keep_this"]]
        drop = [book["id"] for book in group["books"] if book["mark_as_duplicate"]]
        self.assertEqual(keep, [1])
        self.assertEqual(drop, [2])

    def test_write_report_is_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out" / "report.json"
            write_report(build_report(_result(), strategy="transitive"), path)
            payload = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(payload["strategy"], "transitive")
            self.assertEqual(payload["groups"][0]["books"][0]["order_key"], "2020-01-01 00:00:00")


class TestPrintReport(unittest.TestCase):
    def test_summary_and_groups(self) -> None:
        buf = io.StringIO()
        with redirect_stdout(buf):
            print_report(_result())
        out = buf.getvalue()
        self.assertIn("=== Duplicate Detection Report ===", out)
        self.assertIn("Duplicate groups:   1", out)
        self.assertIn("Keep: A Christmas Carol [1]", out)
        self.assertIn("- A CHRISTMAS CAROL [2]", out)

    def test_zero_max_groups_hides_details(self) -> None:
        buf = io.StringIO()
        with redirect_stdout(buf):
            print_report(_result(), max_groups=0)
        self.assertNotIn("Keep:", buf.getvalue())


if __name__ == "__main__":
    unittest.main()
