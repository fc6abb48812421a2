from datetime import datetime
from pathlib import Path
import shutil

from .errors import InvalidPathError

def is_within(path: Path, root: Path) -> bool:
    """True if `path` is `root` or lies below it."""
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def timestamp_suffix(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S")


def timestamped_path(dest: Path, now: datetime | None = None) -> Path:
    """
    Append '_<timestamp>' to dest's name; if that exists too, add ' (1)', ' (2)', ...
    Returns a Path that does not exist.
    """
    base = dest.parent / f"{dest.name}_{timestamp_suffix(now)}"
    if not base.exists():
        return base
    i = 1
    while True:
        candidate = base.parent / f"{base.name} ({i})"
        if not candidate.exists():
            return candidate
        i += 1


def validate_source_root(src: Path) -> None:
    if not src.exists() or not src.is_dir():
        raise InvalidPathError(f"Source folder invalid: {src}")


def has_free_space(dest: Path, required_bytes: int) -> bool:
    # walk up to the nearest existing ancestor, disk_usage needs a real path
    existing = dest
    while not existing.exists() and existing.parent != existing:
        existing = existing.parent
    total, used, free = shutil.disk_usage(existing)
    return free >= required_bytes
