import unittest
from pathlib import Path

from housekeeper.errors import InvalidRelativePath
from housekeeper.models import Category, FileEntry
from housekeeper.planner import OrganizeMode, PathPlanner

DESTS = {
    Category.MUSIC: Path("/dst"),
    Category.DOCUMENT: Path("/docs"),
    Category.PHOTO: Path("/photos"),
}


def entry(path: str) -> FileEntry:
    p = Path(path)
    return FileEntry(p, p.name, p.suffix.lower(), 1, p.parent)


class PathPlannerTests(unittest.TestCase):
    def test_flatten_drops_subfolders(self):
        planner = PathPlanner(DESTS, Path("/src"), OrganizeMode.FLATTEN)
        self.assertEqual(
            planner.plan_destination(entry("/src/a/b/song.mp3"), Category.MUSIC),
            Path("/dst/song.mp3"),
        )

    def test_preserve_mirrors_relative_path(self):
        planner = PathPlanner(DESTS, Path("/src"), OrganizeMode.PRESERVE)
        self.assertEqual(
            planner.plan_destination(entry("/src/a/b/song.mp3"), Category.MUSIC),
            Path("/dst/a/b/song.mp3"),
        )

    def test_preserve_at_source_root_collapses_to_flatten(self):
        planner = PathPlanner(DESTS, Path("/src"), OrganizeMode.PRESERVE)
        self.assertEqual(
            planner.plan_destination(entry("/src/report.pdf"), Category.DOCUMENT),
            Path("/docs/report.pdf"),
        )

    def test_file_outside_source_root_rejected(self):
        planner = PathPlanner(DESTS, Path("/src"), OrganizeMode.PRESERVE)
        with self.assertRaises(InvalidRelativePath):
            planner.plan_destination(entry("/elsewhere/pic.jpg"), Category.PHOTO)

    def test_flatten_also_rejects_file_outside_source_root(self):
        planner = PathPlanner(DESTS, Path("/src"), OrganizeMode.FLATTEN)
        with self.assertRaises(InvalidRelativePath):
            planner.plan_destination(entry("/elsewhere/song.mp3"), Category.MUSIC)

    def test_missing_destination_for_category(self):
        planner = PathPlanner(DESTS, Path("/src"))
        with self.assertRaises(KeyError):
            planner.plan_destination(entry("/src/x.bin"), Category.UNKNOWN)


if __name__ == "__main__":
    unittest.main()
