import json
import logging
import tempfile
import unittest
from pathlib import Path

from housekeeper import cli
from housekeeper.models import Category
from housekeeper.planner import OrganizeMode


class CliTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name).resolve()
        self.src = self.root / "inbox"
        self.src.mkdir()
        (self.src / "notes.txt").write_text("hi", encoding="utf-8")
        self.addCleanup(self._reset_logging)

    def _reset_logging(self):
        log = logging.getLogger("housekeeper")
        for h in list(log.handlers):
            log.removeHandler(h)
            h.close()

    def _dest_args(self):
        return [
            "--documents", str(self.root / "docs"),
            "--photos", str(self.root / "photos"),
            "--music", str(self.root / "music"),
        ]

    def test_flags_build_config(self):
        args = cli.parse_args([str(self.src), "--mode", "preserve", "--workers", "3",
                               "--simulate", *self._dest_args()])
        cfg = cli.build_config(args)
        self.assertEqual(cfg.sources, [self.src])
        self.assertEqual(cfg.mode, OrganizeMode.PRESERVE)
        self.assertEqual(cfg.max_workers, 3)
        self.assertTrue(cfg.simulate)
        self.assertEqual(cfg.destinations[Category.PHOTO], self.root / "photos")

    def test_run_writes_report_and_exits_zero(self):
        report_path = self.root / "report.json"
        code = cli.main([str(self.src), *self._dest_args(), "--report", str(report_path)])
        self.assertEqual(code, 0)
        self.assertTrue((self.root / "docs" / "notes.txt").exists())
        data = json.loads(report_path.read_text(encoding="utf-8"))
        self.assertEqual(data["summary"]["moved"], 1)

    def test_fatal_run_exits_two(self):
        code = cli.main([str(self.root / "missing"), *self._dest_args()])
        self.assertEqual(code, 2)

    def test_bad_config_file_exits_two(self):
        code = cli.main(["--config", str(self.root / "nope.json")])
        self.assertEqual(code, 2)


if __name__ == "__main__":
    unittest.main()
