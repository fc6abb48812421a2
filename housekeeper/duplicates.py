"""
Music library consolidation.

Album folders found anywhere below the scanned root are lifted to sit
directly under the music root. When a folder with the same name is already
there, the incoming folder is diverted into the duplicates area instead of
being merged over it. Folders without any music are removed as cruft.
Directories are handled deepest first so nested albums are settled before
their parents are looked at.
"""
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .classifier import CategoryTable
from .context import ExecutionContext
from .default_rules import DEFAULT_DUPLICATES_DIR, MACOS_METADATA_DIR
from .errors import FolderCreationError
from .folders import FolderEnsurer
from .models import (
    Category,
    DuplicateGroup,
    FolderAction,
    FolderActionKind,
    Resolution,
)
from .scanner import FolderScanner
from .utils import is_within, timestamped_path

logger = logging.getLogger(__name__)

Recorder = Callable[[FolderAction], None]


class DuplicateResolver:
    def __init__(self, ctx: ExecutionContext, music_root: Path, table: CategoryTable,
                 duplicates_dir_name: str = DEFAULT_DUPLICATES_DIR,
                 ensurer: FolderEnsurer | None = None, protected: Iterable[Path] = ()):
        self.ctx = ctx
        self.music_root = music_root
        self.duplicates_root = music_root / duplicates_dir_name
        self.table = table
        self.ensurer = ensurer or FolderEnsurer(ctx)
        # folders owned by someone else (other destinations, sources); one that
        # holds the whole music root does not restrict the pass
        self.protected = [Path(p) for p in protected if not is_within(music_root, Path(p))]
        self.groups: List[DuplicateGroup] = []

    def contains_music(self, folder: Path) -> bool:
        for p in folder.rglob("*"):
            # macOS sidecars like __MACOSX/._01.mp3 are not music
            if MACOS_METADATA_DIR in p.relative_to(folder).parts:
                continue
            if p.is_file() and self.table.classify(p.suffix) is Category.MUSIC:
                return True
        return False

    def remove_metadata_dirs(self, root: Path, record: Recorder) -> None:
        found = sorted(
            (p for p in root.rglob(MACOS_METADATA_DIR) if p.is_dir()),
            key=lambda p: len(p.parts),
        )
        removed: List[Path] = []
        for folder in found:
            # nested inside one that is already gone
            if any(is_within(folder, r) for r in removed) or self._is_protected(folder):
                continue
            try:
                self.ctx.remove_tree(folder)
            except OSError as e:
                record(FolderAction(FolderActionKind.FAILED, folder, reason=str(e)))
                continue
            removed.append(folder)
            logger.info("Removed metadata folder %s", folder)
            record(FolderAction(FolderActionKind.REMOVED_METADATA, folder,
                                simulated=self.ctx.simulate))

    def _is_protected(self, folder: Path) -> bool:
        return any(is_within(folder, p) or is_within(p, folder) for p in self.protected)

    def _skip(self, folder: Path) -> bool:
        return folder == self.music_root or is_within(folder, self.duplicates_root) \
            or self._is_protected(folder)

    def resolve(self, record: Recorder, scan_root: Optional[Path] = None,
                should_stop: Callable[[], bool] = lambda: False,
                on_warning: Optional[Callable[[str], None]] = None) -> bool:
        """
        Consolidate folders below `scan_root` (the music root by default).
        Returns False when `should_stop` cut the pass short.
        """
        root = scan_root or self.music_root
        for base in {root, self.music_root}:
            if base.is_dir():
                self.remove_metadata_dirs(base, record)

        scanner = FolderScanner(root, exclude=[self.duplicates_root, self.music_root, *self.protected],
                                on_warning=on_warning)
        for folder in scanner.scan_dirs():
            if should_stop():
                return False
            if self._skip(folder) or not folder.is_dir():
                continue
            if self.ctx.simulate and MACOS_METADATA_DIR in folder.parts:
                continue
            action = self.resolve_folder(folder)
            if action is not None:
                record(action)
        return True

    def resolve_folder(self, folder: Path) -> Optional[FolderAction]:
        simulated = self.ctx.simulate
        try:
            if not self.contains_music(folder):
                self.ctx.remove_tree(folder)
                logger.info("Removed folder without music %s", folder)
                return FolderAction(FolderActionKind.REMOVED_NO_MUSIC, folder, simulated=simulated)

            existing = self.music_root / folder.name
            if existing.exists() and existing != folder:
                target = self.duplicates_root / folder.name
                if self.ctx.exists(target):
                    target = timestamped_path(target)
                self.ensurer.ensure(self.duplicates_root)
                self.ctx.move_tree(folder, target)
                self.groups.append(DuplicateGroup(folder, existing, Resolution.DIVERT, target))
                logger.warning("Duplicate album %s diverted to %s", folder, target)
                return FolderAction(FolderActionKind.DIVERTED, folder, target, simulated=simulated)

            if folder.parent != self.music_root:
                target = self.music_root / folder.name
                self.ensurer.ensure(self.music_root)
                self.ctx.move_tree(folder, target)
                self.groups.append(DuplicateGroup(folder, target, Resolution.MERGE, target))
                logger.info("Moved album %s -> %s", folder, target)
                return FolderAction(FolderActionKind.MOVED, folder, target, simulated=simulated)
        except (OSError, FolderCreationError) as e:
            logger.error("Could not resolve %s: %s", folder, e)
            return FolderAction(FolderActionKind.FAILED, folder, reason=str(e))

        # already a direct child of the music root
        return None
