import logging
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from .context import ExecutionContext
from .default_rules import PARTIAL_PREFIX
from .errors import FolderCreationError, MoveError
from .folders import FolderEnsurer
from .models import Category, FileEntry, MoveOutcome, OutcomeKind
from .utils import has_free_space

logger = logging.getLogger(__name__)


class DestinationLocks:
    """Hands out one lock per destination path so two files aimed at the same
    target are never decided concurrently."""
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Path, threading.Lock] = {}

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(path, threading.Lock())
        with lock:
            yield


class SafeMover:
    def __init__(self, ctx: ExecutionContext, ensurer: FolderEnsurer | None = None,
                 locks: DestinationLocks | None = None):
        self.ctx = ctx
        self.ensurer = ensurer or FolderEnsurer(ctx)
        self.locks = locks or DestinationLocks()

    def move_safely(self, entry: FileEntry, destination_folder: Path,
                    category: Category) -> MoveOutcome:
        label = category.value
        # Files can disappear between the scan and now
        if not entry.path.is_file():
            logger.warning("[%s] source vanished, skipping: %s", label, entry.path)
            return MoveOutcome.skipped(OutcomeKind.SKIPPED_SOURCE_VANISHED, reason="source vanished")

        try:
            self.ensurer.ensure(destination_folder)
        except FolderCreationError as e:
            logger.error("[%s] %s", label, e)
            return MoveOutcome.failed(str(e))

        dest_file = destination_folder / entry.name
        if dest_file == entry.path:
            logger.warning("[%s] already in place: %s", label, entry.path)
            return MoveOutcome.skipped(OutcomeKind.SKIPPED_EXISTS, dest_file, reason="same location")

        with self.locks.hold(dest_file):
            if dest_file.exists() and not self.ctx.allow_overwrite:
                logger.warning("[%s] destination exists, skipping: %s", label, dest_file)
                return MoveOutcome.skipped(OutcomeKind.SKIPPED_EXISTS, dest_file, reason="destination exists")

            if self.ctx.simulate:
                logger.info("[%s] would move %s -> %s", label, entry.path, dest_file)
                return MoveOutcome.simulated(dest_file)

            try:
                self._copy_then_rename(entry, dest_file)
            except MoveError as e:
                logger.error("[%s] move failed for %s: %s", label, entry.path, e)
                return MoveOutcome.failed(str(e), dest_file)

        try:
            self.ctx.remove_file(entry.path)
        except FileNotFoundError:
            # removed externally after the copy landed; the file lives in one place
            pass
        except OSError as e:
            logger.error("[%s] copied to %s but could not delete source %s: %s",
                         label, dest_file, entry.path, e)
            return MoveOutcome.failed(f"source not deleted: {e}", dest_file, duplicate_risk=True)

        logger.info("[%s] moved %s -> %s", label, entry.path, dest_file)
        return MoveOutcome.moved(dest_file, entry.size)

    def _copy_then_rename(self, entry: FileEntry, dest_file: Path) -> None:
        """Copy into an in-flight sibling, verify it, then rename into place."""
        temp = dest_file.parent / f"{PARTIAL_PREFIX}{uuid.uuid4().hex[:8]}-{entry.name}"
        try:
            if not has_free_space(dest_file.parent, entry.size):
                raise MoveError("not enough free space at destination")
            self.ctx.copy_file(entry.path, temp)
            copied = temp.stat().st_size
            expected = entry.path.stat().st_size
            if copied != expected:
                raise MoveError(f"size mismatch after copy ({copied} != {expected} bytes)")
            self.ctx.replace(temp, dest_file)
        except MoveError:
            self._discard(temp)
            raise
        except OSError as e:
            self._discard(temp)
            raise MoveError(str(e)) from e

    def _discard(self, temp: Path) -> None:
        try:
            temp.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug("Could not remove partial file %s: %s", temp, e)

