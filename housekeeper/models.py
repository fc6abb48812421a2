from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

class Category(Enum):
    DOCUMENT = "document"
    MUSIC = "music"
    PHOTO = "photo"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "Category":
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown category: {name!r}") from None


class OutcomeKind(Enum):
    MOVED = "moved"
    SKIPPED_EXISTS = "skipped_exists"
    SKIPPED_NO_EXTENSION = "skipped_no_extension"
    SKIPPED_UNKNOWN_CATEGORY = "skipped_unknown_category"
    SKIPPED_SOURCE_VANISHED = "skipped_source_vanished"
    FAILED = "failed"
    SIMULATED_ONLY = "simulated_only"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped")


class RunPhase(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    DONE = "done"


class RunStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class FileEntry:
    path: Path
    name: str
    ext: str  # lower-cased, with leading dot, "" if none
    size: int
    directory: Path

    @classmethod
    def from_path(cls, path: Path) -> "FileEntry":
        stat = path.stat()
        return cls(
            path=path,
            name=path.name,
            ext=path.suffix.lower(),
            size=stat.st_size,
            directory=path.parent,
        )


@dataclass(frozen=True)
class MoveOutcome:
    kind: OutcomeKind
    destination: Optional[Path] = None
    bytes_moved: int = 0
    reason: str = ""
    # copy + rename succeeded but the source could not be deleted
    duplicate_risk: bool = False

    @classmethod
    def moved(cls, destination: Path, bytes_moved: int) -> "MoveOutcome":
        return cls(OutcomeKind.MOVED, destination, bytes_moved=bytes_moved)

    @classmethod
    def failed(cls, reason: str, destination: Optional[Path] = None,
               duplicate_risk: bool = False) -> "MoveOutcome":
        return cls(OutcomeKind.FAILED, destination, reason=reason, duplicate_risk=duplicate_risk)

    @classmethod
    def skipped(cls, kind: OutcomeKind, destination: Optional[Path] = None,
                reason: str = "") -> "MoveOutcome":
        return cls(kind, destination, reason=reason)

    @classmethod
    def simulated(cls, destination: Path) -> "MoveOutcome":
        return cls(OutcomeKind.SIMULATED_ONLY, destination, reason="would move")


class Resolution(Enum):
    MERGE = "merge"
    DIVERT = "divert"


@dataclass(frozen=True)
class DuplicateGroup:
    """A scanned folder and an existing music-root folder with the same name."""
    source: Path
    existing: Path
    resolution: Resolution
    target: Path


class FolderActionKind(Enum):
    MOVED = "moved"
    DIVERTED = "diverted"
    REMOVED_NO_MUSIC = "removed_no_music"
    REMOVED_METADATA = "removed_metadata"
    REMOVED_EMPTY = "removed_empty"
    FAILED = "failed"


@dataclass(frozen=True)
class FolderAction:
    kind: FolderActionKind
    path: Path
    target: Optional[Path] = None
    reason: str = ""
    simulated: bool = False
