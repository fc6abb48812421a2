import json
import tempfile
import unittest
from pathlib import Path

from housekeeper.config import RunConfig, apply_env_overrides, load_config
from housekeeper.errors import ConfigError
from housekeeper.models import Category
from housekeeper.planner import OrganizeMode


class ConfigTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name).resolve()

    def _write(self, data) -> Path:
        path = self.root / "config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_file_values_merge_over_defaults(self):
        path = self._write({
            "sources": [str(self.root / "in")],
            "destinations": {"music": str(self.root / "lib")},
            "mode": "preserve",
            "timeout_seconds": 30,
            "simulate": "yes",
            "extension_overrides": {".txt": "music"},
        })
        cfg = load_config(path, environ={})
        self.assertEqual(cfg.sources, [self.root / "in"])
        self.assertEqual(cfg.destinations[Category.MUSIC], self.root / "lib")
        self.assertIn(Category.DOCUMENT, cfg.destinations)
        self.assertEqual(cfg.mode, OrganizeMode.PRESERVE)
        self.assertEqual(cfg.timeout_seconds, 30)
        self.assertTrue(cfg.simulate)
        self.assertEqual(cfg.extension_overrides, {".txt": "music"})

    def test_env_overrides_win(self):
        cfg = apply_env_overrides(RunConfig(), {"HOUSEKEEPER_MAX_WORKERS": "8",
                                                "HOUSEKEEPER_SIMULATE": "1"})
        self.assertEqual(cfg.max_workers, 8)
        self.assertTrue(cfg.simulate)

    def test_missing_file_and_bad_json(self):
        with self.assertRaises(ConfigError):
            load_config(self.root / "absent.json", environ={})
        bad = self.root / "bad.json"
        bad.write_text("{nope", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(bad, environ={})

    def test_bad_values_are_config_errors(self):
        with self.assertRaises(ConfigError):
            load_config(self._write({"mode": "sideways"}), environ={})
        with self.assertRaises(ConfigError):
            load_config(self._write({"destinations": {"videos": "/v"}}), environ={})

    def test_validate_rejects_out_of_range(self):
        dests = {c: self.root / c.value for c in (Category.DOCUMENT, Category.PHOTO, Category.MUSIC)}
        good = dict(sources=[self.root / "in"], destinations=dests)
        RunConfig(**good).validate()
        for bad in ({"timeout_seconds": 0}, {"timeout_seconds": 10 ** 9}, {"max_workers": 0},
                    {"max_workers": 1000}, {"sources": []}, {"report_format": "xml"},
                    {"duplicates_dir_name": "a/b"}):
            with self.subTest(bad=bad):
                with self.assertRaises(ConfigError):
                    RunConfig(**{**good, **bad}).validate()

    def test_validate_rejects_destination_equal_to_source(self):
        src = self.root / "in"
        dests = {Category.DOCUMENT: src, Category.PHOTO: self.root / "p", Category.MUSIC: self.root / "m"}
        with self.assertRaises(ConfigError):
            RunConfig(sources=[src], destinations=dests).validate()

    def test_validate_rejects_destination_overlapping_music_root(self):
        media = self.root / "media"
        inside = {Category.DOCUMENT: media / "docs", Category.PHOTO: self.root / "p",
                  Category.MUSIC: media}
        around = {Category.DOCUMENT: self.root / "d", Category.PHOTO: media,
                  Category.MUSIC: media / "music"}
        for dests in (inside, around):
            with self.subTest(dests=dests):
                with self.assertRaises(ConfigError):
                    RunConfig(sources=[self.root / "in"], destinations=dests).validate()

    def test_validate_rejects_source_inside_music_root(self):
        music = self.root / "Music"
        dests = {Category.DOCUMENT: self.root / "d", Category.PHOTO: self.root / "p",
                 Category.MUSIC: music}
        with self.assertRaises(ConfigError):
            RunConfig(sources=[music / "Inbox"], destinations=dests).validate()

    def test_music_root_inside_source_is_allowed(self):
        src = self.root / "home"
        dests = {Category.DOCUMENT: src / "Docs", Category.PHOTO: src / "Pics",
                 Category.MUSIC: src / "Music"}
        RunConfig(sources=[src], destinations=dests).validate()

    def test_validate_rejects_relative_destination(self):
        dests = {Category.DOCUMENT: Path("docs"), Category.PHOTO: self.root / "p",
                 Category.MUSIC: self.root / "m"}
        with self.assertRaises(ConfigError):
            RunConfig(sources=[self.root], destinations=dests).validate()


if __name__ == "__main__":
    unittest.main()
