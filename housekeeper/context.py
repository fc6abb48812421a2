"""
Execution context shared by every component of a run.

All filesystem mutations (create folder, copy, rename, delete, move tree)
go through an ExecutionContext. In simulate-only mode each primitive logs
what it would do and returns without touching the disk; folders that
"would" be created are remembered so later planning sees them as existing.
"""
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Set

logger = logging.getLogger(__name__)


class ExecutionContext:
    def __init__(self, simulate: bool = False, allow_overwrite: bool = False):
        self.simulate = simulate
        self.allow_overwrite = allow_overwrite
        self._simulated_dirs: Set[Path] = set()
        self._lock = threading.Lock()

    def _would(self, action: str, *paths: Path) -> None:
        logger.info("[simulate] would %s %s", action, " -> ".join(str(p) for p in paths))

    def exists(self, path: Path) -> bool:
        if path.exists():
            return True
        if self.simulate:
            with self._lock:
                return path in self._simulated_dirs
        return False

    def make_dir(self, path: Path) -> None:
        if self.simulate:
            self._would("create folder", path)
            with self._lock:
                self._simulated_dirs.add(path)
            return
        path.mkdir()

    def copy_file(self, src: Path, dst: Path) -> None:
        if self.simulate:
            self._would("copy", src, dst)
            return
        shutil.copy2(src, dst)

    def replace(self, src: Path, dst: Path) -> None:
        if self.simulate:
            self._would("rename", src, dst)
            return
        os.replace(src, dst)

    def remove_file(self, path: Path) -> None:
        if self.simulate:
            self._would("delete", path)
            return
        path.unlink()

    def remove_tree(self, path: Path) -> None:
        if self.simulate:
            self._would("delete folder", path)
            return
        shutil.rmtree(path)

    def remove_empty_dir(self, path: Path) -> None:
        if self.simulate:
            self._would("remove empty folder", path)
            return
        path.rmdir()

    def move_tree(self, src: Path, dst: Path) -> None:
        if self.simulate:
            self._would("move folder", src, dst)
            return
        shutil.move(str(src), str(dst))
