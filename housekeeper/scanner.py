import logging
import os
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .errors import AccessDenied
from .models import FileEntry
from .utils import is_within

logger = logging.getLogger(__name__)

OnWarning = Callable[[str], None]


class FolderScanner:
    """Scans a folder recursively. Unreadable subtrees are skipped with a warning."""

    def __init__(self, root: Path, ignore_hidden: bool = True,
                 exclude: Iterable[Path] = (), on_warning: Optional[OnWarning] = None):
        self.root = root
        self.ignore_hidden = ignore_hidden
        self.exclude = [Path(p) for p in exclude if is_within(Path(p), root) and Path(p) != root]
        self.on_warning = on_warning

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self.on_warning:
            self.on_warning(message)

    def _on_walk_error(self, err: OSError) -> None:
        if err.filename and Path(err.filename) == self.root:
            raise AccessDenied(f"Cannot read source root {self.root}: {err.strerror}") from err
        self._warn(f"Access denied, skipping {err.filename}: {err.strerror}")

    def _walk(self):
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_walk_error):
            current = Path(dirpath)
            kept = []
            for d in dirnames:
                child = current / d
                if self.ignore_hidden and d.startswith("."):
                    continue
                if child in self.exclude or os.path.islink(child):
                    continue
                kept.append(d)
            # prune in place so os.walk does not descend
            dirnames[:] = sorted(kept)
            yield current, dirnames, sorted(filenames)

    def scan(self) -> List[FileEntry]:
        files: List[FileEntry] = []
        for current, _, filenames in self._walk():
            for name in filenames:
                if self.ignore_hidden and name.startswith("."):
                    continue
                p = current / name
                if p.is_symlink():
                    continue
                try:
                    files.append(FileEntry.from_path(p))
                except FileNotFoundError:
                    continue
                except PermissionError as e:
                    self._warn(f"Access denied, skipping {p}: {e.strerror}")
        return files

    def scan_dirs(self) -> List[Path]:
        """Every directory below root (root excluded), deepest first."""
        dirs: List[Path] = []
        for current, dirnames, _ in self._walk():
            dirs.extend(current / d for d in dirnames)
        dirs.sort(key=lambda p: (-len(p.parts), str(p)))
        return dirs
