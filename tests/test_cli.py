import io
import json
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from catalog_dedupe.cli import build_parser, main


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self._cwd = os.getcwd()
        os.chdir(self.tmp)
        root = logging.getLogger()
        self._handlers = list(root.handlers)
        self._level = root.level

        (self.tmp / "books.csv").write_text(
            "id,title\n1,Dune\n2,DUNE\n3,Emma\n", encoding="utf-8"
        )
        (self.tmp / "config.yaml").write_text(
            "source:\n  path: books.csv\nreport:\n  output: report.json\n",
            encoding="utf-8",
        )

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers:
            if handler not in self._handlers:
                handler.close()
        root.handlers[:] = self._handlers
        root.setLevel(self._level)
        os.chdir(self._cwd)
        self._tmp.cleanup()

    def _main(self, *argv: str) -> str:
        buf = io.StringIO()
        with redirect_stdout(buf):
            main(["--log-level", "ERROR", *argv])
        return buf.getvalue()

    def test_parser_requires_command(self) -> None:
        with self.assertRaises(SystemExit):
            build_parser().parse_args([])

    def test_detect_writes_report(self) -> None:
        self._main("detect", "--quiet")
        payload = json.loads((self.tmp / "report.json").read_text(encoding="utf-8"))
        self.assertEqual(payload["duplicate_groups"], 1)
        self.assertEqual(payload["strategy"], "greedy")

    def test_strategy_override(self) -> None:
        self._main("--strategy", "transitive", "detect", "--quiet")
        payload = json.loads((self.tmp / "report.json").read_text(encoding="utf-8"))
        self.assertEqual(payload["strategy"], "transitive")

    def test_import_mark_runs(self) -> None:
        out = self._main("import", "books.csv")
        self.assertIn("Imported 3 record(s)", out)
        out = self._main("mark")
        self.assertIn("Marked 1 book(s)", out)
        out = self._main("runs")
        self.assertIn("mark_complete", out)
        self.assertIn("import_complete", out)

    def test_missing_input_exits_nonzero(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            self._main("detect", "--quiet", "--input", "missing.csv")
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_config_exits_with_message(self) -> None:
        (self.tmp / "config.yaml").write_text(
            "matching:\n  strategy: fuzzy\n", encoding="utf-8"
        )
        with self.assertRaises(SystemExit) as ctx:
            self._main("detect", "--quiet")
        self.assertIn("Invalid configuration", str(ctx.exception.code))
        self.assertIn("strategy", str(ctx.exception.code))

    def test_missing_explicit_config(self) -> None:
        with self.assertRaises(SystemExit):
            self._main("--config", "nope.yaml", "doctor")


if __name__ == "__main__":
    unittest.main()
