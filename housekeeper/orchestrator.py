"""
Run orchestration.

A run walks Idle -> Scanning -> Processing -> Finalizing and always ends
with a finalized RunReport, whether it completed, timed out or failed.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

from .classifier import CategoryTable
from .config import RunConfig
from .context import ExecutionContext
from .duplicates import DuplicateResolver
from .errors import (
    AccessDenied,
    ConfigError,
    FolderCreationError,
    HousekeeperError,
    InvalidPathError,
    InvalidRelativePath,
)
from .folders import FolderEnsurer
from .models import (
    Category,
    FileEntry,
    FolderAction,
    FolderActionKind,
    MoveOutcome,
    OutcomeKind,
    RunPhase,
    RunStatus,
)
from .mover import SafeMover
from .planner import PathPlanner
from .report import RunReport
from .scanner import FolderScanner
from .utils import validate_source_root

logger = logging.getLogger(__name__)

WorkItem = Tuple[FileEntry, PathPlanner]


class Budget:
    """Wall-clock budget, started when scanning begins."""
    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self.clock = clock
        self.started: Optional[float] = None

    def start(self) -> None:
        self.started = self.clock()

    def elapsed(self) -> float:
        if self.started is None:
            return 0.0
        return self.clock() - self.started

    def expired(self) -> bool:
        return self.started is not None and self.elapsed() > self.seconds


class RunOrchestrator:
    def __init__(self, config: RunConfig, report: RunReport | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.report = report or RunReport(simulate=config.simulate)
        self.budget = Budget(config.timeout_seconds, clock)
        self.ctx = ExecutionContext(simulate=config.simulate, allow_overwrite=config.allow_overwrite)
        self.ensurer = FolderEnsurer(self.ctx)
        self.mover = SafeMover(self.ctx, self.ensurer)
        self.table: CategoryTable | None = None

    def run(self) -> RunReport:
        report = self.report
        logger.info("Run %s started%s", report.run_id, " (simulate only)" if self.ctx.simulate else "")
        try:
            self._run()
        except Exception as e:
            # nothing escapes a run; the report is still produced
            logger.exception("Run aborted by unexpected error")
            report.fail(f"Run aborted: {type(e).__name__}: {e}")
        finally:
            report.enter(RunPhase.FINALIZING)
            report.finalize()
            logger.info("Run %s %s in %.2fs", report.run_id, report.status.value,
                        report.duration_seconds)
        return report

    # ------------------------------------------------------------------
    def _run(self) -> None:
        report = self.report
        if not self._preflight():
            return

        report.enter(RunPhase.SCANNING)
        self.budget.start()
        work = self._scan()
        if work is None:
            return

        report.enter(RunPhase.PROCESSING)
        try:
            self._process_files(work)
            if self.config.music_pass and not self._out_of_time():
                self._music_pass()
            if self.config.cleanup_empty_dirs and not self._out_of_time():
                self._cleanup_empty_dirs()
        except Exception as e:
            logger.exception("Processing aborted")
            report.fail(f"Processing aborted: {type(e).__name__}: {e}")

    def _preflight(self) -> bool:
        """Validate inputs and prepare destinations. False means a fatal condition."""
        cfg = self.config
        report = self.report
        try:
            cfg.validate()
            self.table = CategoryTable(overrides=cfg.extension_overrides)
        except ConfigError as e:
            logger.error("Invalid configuration: %s", e)
            report.fail(f"Invalid configuration: {e}")
            return False

        for src in cfg.sources:
            try:
                validate_source_root(src)
            except InvalidPathError as e:
                logger.error("%s", e)
                report.fail(str(e))
                return False

        failures = 0
        for category, dest in cfg.destinations.items():
            try:
                self.ensurer.ensure(dest)
            except FolderCreationError as e:
                failures += 1
                logger.error("Destination for %s unavailable: %s", category.value, e)
                report.error(str(e))
        if failures and failures == len(cfg.destinations):
            report.fail("No destination folder could be created")
            return False
        return True

    def _scan(self) -> Optional[List[WorkItem]]:
        cfg = self.config
        exclude = list(cfg.destinations.values())
        seen: Set[Path] = set()
        work: List[WorkItem] = []
        for src in cfg.sources:
            planner = PathPlanner(cfg.destinations, src, cfg.mode)
            scanner = FolderScanner(src, exclude=exclude, on_warning=self.report.warn)
            try:
                entries = scanner.scan()
            except AccessDenied as e:
                logger.error("%s", e)
                self.report.fail(str(e))
                return None
            for entry in entries:
                # overlapping source roots must not hand the same file out twice
                if entry.path in seen:
                    continue
                seen.add(entry.path)
                work.append((entry, planner))
        logger.info("Scanned %d file(s) in %d source folder(s)", len(work), len(cfg.sources))
        return work

    def _out_of_time(self) -> bool:
        if not self.budget.expired():
            return False
        message = f"Time budget of {self.config.timeout_seconds:g}s exceeded; remaining entries left untouched"
        if self.report.mark_timed_out(message):
            logger.warning(message)
        return True

    # ------------------------------------------------------------------
    def _prepared_table(self) -> CategoryTable:
        if self.table is None:
            raise HousekeeperError("Category table not loaded; run preflight first")
        return self.table

    def process_entry(self, entry: FileEntry, planner: PathPlanner) -> MoveOutcome:
        table = self._prepared_table()
        if not entry.ext:
            logger.warning("No extension, skipping: %s", entry.path)
            outcome = MoveOutcome.skipped(OutcomeKind.SKIPPED_NO_EXTENSION, reason="no extension")
            self.report.record_outcome(entry, Category.UNKNOWN, outcome)
            return outcome

        category = table.classify(entry.ext)
        if category is Category.UNKNOWN:
            logger.debug("Unknown extension %s, leaving %s", entry.ext, entry.path)
            outcome = MoveOutcome.skipped(OutcomeKind.SKIPPED_UNKNOWN_CATEGORY,
                                          reason=f"unmapped extension {entry.ext}")
            self.report.record_outcome(entry, category, outcome)
            return outcome

        try:
            destination = planner.plan_destination(entry, category)
        except InvalidRelativePath as e:
            logger.error("%s", e)
            outcome = MoveOutcome.failed(str(e))
        else:
            outcome = self.mover.move_safely(entry, destination.parent, category)
        self.report.record_outcome(entry, category, outcome)
        return outcome

    def _process_files(self, work: List[WorkItem]) -> None:
        if self.config.max_workers > 1 and len(work) > 1:
            self._process_concurrently(work)
            return
        for entry, planner in work:
            if self._out_of_time():
                break
            self.process_entry(entry, planner)

    def _process_concurrently(self, work: List[WorkItem]) -> None:
        abort = threading.Event()

        def task(item: WorkItem) -> None:
            # in-flight moves finish, but nothing new starts once time is up
            if abort.is_set() or self._out_of_time():
                return
            try:
                self.process_entry(*item)
            except Exception:
                abort.set()
                raise

        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = [pool.submit(task, item) for item in work]
            for future in as_completed(futures):
                exc = future.exception()
                if exc is not None and first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    # ------------------------------------------------------------------
    def _music_pass(self) -> None:
        table = self._prepared_table()
        music_root = self.config.music_root
        if music_root is None or not self.ctx.exists(music_root):
            return
        if not music_root.is_dir():
            # only "created" in simulate mode, nothing to consolidate yet
            return
        protected = [d for c, d in self.config.destinations.items() if c is not Category.MUSIC]
        protected.extend(self.config.sources)
        resolver = DuplicateResolver(self.ctx, music_root, table,
                                     self.config.duplicates_dir_name, self.ensurer,
                                     protected=protected)
        resolver.resolve(self.report.record_folder_action, should_stop=self._out_of_time,
                         on_warning=self.report.warn)

    def _cleanup_empty_dirs(self) -> None:
        exclude = list(self.config.destinations.values())
        for src in self.config.sources:
            if not src.is_dir():
                message = f"Source folder {src} disappeared during the run, not cleaned up"
                logger.warning(message)
                self.report.warn(message)
                continue
            scanner = FolderScanner(src, exclude=exclude, on_warning=self.report.warn)
            try:
                folders = scanner.scan_dirs()
            except AccessDenied as e:
                logger.warning("Skipping cleanup: %s", e)
                self.report.warn(f"Skipping cleanup: {e}")
                continue
            for folder in folders:
                if self._out_of_time():
                    return
                try:
                    if any(folder.iterdir()):
                        continue
                    self.ctx.remove_empty_dir(folder)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    self.report.record_folder_action(
                        FolderAction(FolderActionKind.FAILED, folder, reason=str(e))
                    )
                    continue
                logger.debug("Removed empty folder %s", folder)
                self.report.record_folder_action(
                    FolderAction(FolderActionKind.REMOVED_EMPTY, folder, simulated=self.ctx.simulate)
                )


def exit_code(report: RunReport) -> int:
    return 2 if report.status is RunStatus.FAILED else 0
