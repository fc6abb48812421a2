import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from housekeeper.config import RunConfig
from housekeeper.errors import HousekeeperError
from housekeeper.models import Category, FileEntry, OutcomeKind, RunPhase, RunStatus
from housekeeper.orchestrator import RunOrchestrator, exit_code
from housekeeper.planner import OrganizeMode, PathPlanner


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class OrchestratorTestBase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)
        self.src = self.root / "inbox"
        self.src.mkdir()
        self.dests = {
            Category.DOCUMENT: self.root / "out" / "docs",
            Category.PHOTO: self.root / "out" / "photos",
            Category.MUSIC: self.root / "out" / "music",
        }

    def put(self, rel: str, data: bytes = b"data") -> Path:
        p = self.src / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
        return p

    def config(self, **kw) -> RunConfig:
        base = dict(sources=[self.src], destinations=dict(self.dests))
        base.update(kw)
        return RunConfig(**base)

    def snapshot(self):
        return sorted(str(p.relative_to(self.root)) for p in self.root.rglob("*"))


class SequentialRunTests(OrchestratorTestBase):
    def test_files_are_sorted_by_category(self):
        self.put("report.PDF")
        self.put("trip/beach.jpg")
        self.put("song.mp3")
        self.put("README")
        self.put("blob.xyz")

        report = RunOrchestrator(self.config()).run()

        self.assertEqual(report.status, RunStatus.COMPLETED)
        self.assertEqual(report.phase, RunPhase.DONE)
        self.assertTrue((self.dests[Category.DOCUMENT] / "report.PDF").exists())
        self.assertTrue((self.dests[Category.PHOTO] / "beach.jpg").exists())
        self.assertTrue((self.dests[Category.MUSIC] / "song.mp3").exists())
        self.assertTrue((self.src / "README").exists())
        self.assertTrue((self.src / "blob.xyz").exists())
        self.assertEqual(report.outcome_count(OutcomeKind.SKIPPED_NO_EXTENSION), 1)
        self.assertEqual(report.outcome_count(OutcomeKind.SKIPPED_UNKNOWN_CATEGORY), 1)
        self.assertEqual(report.totals[Category.PHOTO].moved, 1)
        self.assertEqual(report.overall().bytes_moved, 12)
        # emptied "trip" folder is cleaned up
        self.assertFalse((self.src / "trip").exists())
        self.assertEqual(report.empty_dirs_removed, 1)
        self.assertEqual(exit_code(report), 0)

    def test_every_moved_file_lives_in_exactly_one_place(self):
        sources = [self.put(f"d{i}/file{i}.txt", b"x" * i) for i in range(5)]
        report = RunOrchestrator(self.config()).run()
        for entry in report.entries:
            self.assertEqual(entry.outcome.kind, OutcomeKind.MOVED)
            self.assertFalse(entry.source.exists())
            self.assertTrue(entry.outcome.destination.exists())
        self.assertEqual(len(report.entries), len(sources))

    def test_second_run_does_not_move_again(self):
        self.put("a.pdf")
        RunOrchestrator(self.config()).run()
        # a stale copy reappears in the inbox
        self.put("a.pdf", b"other")
        report = RunOrchestrator(self.config()).run()
        self.assertEqual([e.outcome.kind for e in report.entries], [OutcomeKind.SKIPPED_EXISTS])
        self.assertTrue((self.src / "a.pdf").exists())

    def test_preserve_mode_keeps_structure(self):
        self.put("a/b/song.mp3")
        report = RunOrchestrator(self.config(mode=OrganizeMode.PRESERVE, music_pass=False)).run()
        self.assertEqual(report.status, RunStatus.COMPLETED)
        self.assertTrue((self.dests[Category.MUSIC] / "a" / "b" / "song.mp3").exists())

    def test_music_pass_lifts_albums_after_preserve_move(self):
        self.put("Artist/Record/01.flac")
        report = RunOrchestrator(self.config(mode=OrganizeMode.PRESERVE)).run()
        music = self.dests[Category.MUSIC]
        self.assertTrue((music / "Record" / "01.flac").exists())
        self.assertFalse((music / "Artist").exists())
        self.assertEqual(report.folders_moved, 1)
        self.assertEqual(report.cruft_dirs_removed, 1)

    def test_simulate_touches_nothing(self):
        self.put("report.pdf")
        self.put("pics/cat.png")
        self.put("tunes/a.ogg")
        before = self.snapshot()
        report = RunOrchestrator(self.config(simulate=True)).run()
        self.assertEqual(self.snapshot(), before)
        self.assertEqual(report.status, RunStatus.COMPLETED)
        self.assertEqual(len(report.entries), 3)
        self.assertTrue(all(e.outcome.kind is OutcomeKind.SIMULATED_ONLY for e in report.entries))

    def test_timeout_stops_early_but_completes(self):
        for i in range(5):
            self.put(f"doc{i}.txt")
        clock = FakeClock()
        orch = RunOrchestrator(self.config(timeout_seconds=1.5), clock=clock)
        original = orch.process_entry

        def slow(entry, planner):
            clock.now += 1.0
            return original(entry, planner)

        with mock.patch.object(orch, "process_entry", side_effect=slow):
            report = orch.run()
        self.assertEqual(len(report.entries), 2)
        self.assertTrue(report.timed_out)
        self.assertEqual(report.status, RunStatus.COMPLETED)
        self.assertEqual(len(list(self.src.glob("*.txt"))), 3)
        self.assertTrue(any("budget" in w for w in report.warnings))

    def test_missing_source_is_fatal_before_any_move(self):
        self.put("a.pdf")
        cfg = self.config(sources=[self.src, self.root / "gone"])
        report = RunOrchestrator(cfg).run()
        self.assertEqual(report.status, RunStatus.FAILED)
        self.assertEqual(report.entries, [])
        self.assertTrue((self.src / "a.pdf").exists())
        self.assertEqual(exit_code(report), 2)

    def test_invalid_config_produces_failed_report(self):
        report = RunOrchestrator(self.config(timeout_seconds=0)).run()
        self.assertEqual(report.status, RunStatus.FAILED)
        self.assertIsNotNone(report.finished_at)

    def test_all_destinations_failing_is_fatal(self):
        self.put("a.pdf")
        blocker = self.root / "out"
        blocker.write_text("not a folder")
        report = RunOrchestrator(self.config()).run()
        self.assertEqual(report.status, RunStatus.FAILED)
        self.assertTrue((self.src / "a.pdf").exists())

    def test_unexpected_error_aborts_but_report_is_produced(self):
        self.put("a.pdf")
        self.put("b.pdf")
        orch = RunOrchestrator(self.config())
        with mock.patch.object(orch.mover, "move_safely", side_effect=RuntimeError("boom")):
            report = orch.run()
        self.assertEqual(report.status, RunStatus.FAILED)
        self.assertEqual(report.phase, RunPhase.DONE)
        self.assertTrue(any("boom" in e for e in report.errors))

    def test_destination_inside_source_is_not_rescanned(self):
        dests = {c: self.src / "Sorted" / c.value for c in self.dests}
        self.put("a.pdf")
        (dests[Category.DOCUMENT]).mkdir(parents=True)
        (dests[Category.DOCUMENT] / "old.pdf").write_bytes(b"x")
        report = RunOrchestrator(self.config(destinations=dests)).run()
        self.assertEqual([e.source.name for e in report.entries], ["a.pdf"])


    def test_documents_inside_music_root_rejected_before_any_move(self):
        media = self.root / "media"
        dests = {Category.DOCUMENT: media / "docs", Category.PHOTO: self.root / "photos",
                 Category.MUSIC: media}
        thesis = self.put("thesis.pdf")
        report = RunOrchestrator(self.config(destinations=dests)).run()
        self.assertEqual(report.status, RunStatus.FAILED)
        self.assertEqual(report.entries, [])
        self.assertTrue(thesis.exists())

    def test_source_inside_music_root_rejected_before_any_move(self):
        music = self.root / "Music"
        inbox = music / "Inbox"
        inbox.mkdir(parents=True)
        (inbox / "notes.xyz").write_bytes(b"?")
        dests = dict(self.dests)
        dests[Category.MUSIC] = music
        report = RunOrchestrator(self.config(sources=[inbox], destinations=dests)).run()
        self.assertEqual(report.status, RunStatus.FAILED)
        self.assertTrue((inbox / "notes.xyz").exists())

    def test_source_vanishing_during_run_does_not_fail_cleanup(self):
        self.put("a.pdf")
        orch = RunOrchestrator(self.config())
        with mock.patch.object(orch, "_process_files", side_effect=lambda work: shutil.rmtree(self.src)):
            report = orch.run()
        self.assertEqual(report.status, RunStatus.COMPLETED)
        self.assertTrue(any("disappeared" in w for w in report.warnings))
        self.assertEqual(exit_code(report), 0)

    def test_processing_before_preflight_is_an_error(self):
        p = self.put("a.pdf")
        orch = RunOrchestrator(self.config())
        with self.assertRaises(HousekeeperError):
            orch.process_entry(FileEntry.from_path(p), PathPlanner(self.dests, self.src))


class ConcurrentRunTests(OrchestratorTestBase):
    def test_parallel_moves_are_all_counted(self):
        for i in range(20):
            self.put(f"batch/file{i:02}.txt", b"abc")
        report = RunOrchestrator(self.config(max_workers=4)).run()
        self.assertEqual(report.status, RunStatus.COMPLETED)
        docs = self.dests[Category.DOCUMENT]
        self.assertEqual(len(list(docs.iterdir())), 20)
        self.assertEqual(report.totals[Category.DOCUMENT].moved, 20)
        self.assertEqual(report.totals[Category.DOCUMENT].bytes_moved, 60)

    def test_parallel_same_name_collisions_never_overwrite(self):
        for i in range(6):
            self.put(f"dir{i}/same.pdf", str(i).encode())
        report = RunOrchestrator(self.config(max_workers=3)).run()
        kinds = [e.outcome.kind for e in report.entries]
        self.assertEqual(kinds.count(OutcomeKind.MOVED), 1)
        self.assertEqual(kinds.count(OutcomeKind.SKIPPED_EXISTS), 5)
        self.assertEqual(len(list(self.src.rglob("same.pdf"))), 5)


if __name__ == "__main__":
    unittest.main()
