from enum import Enum
from pathlib import Path
from typing import Mapping

from .errors import InvalidRelativePath
from .models import Category, FileEntry

class OrganizeMode(Enum):
    FLATTEN = "flatten"
    PRESERVE = "preserve"


class PathPlanner:
    """Computes where a file should end up for a given source root."""
    def __init__(self, destination_roots: Mapping[Category, Path], source_root: Path,
                 mode: OrganizeMode = OrganizeMode.FLATTEN):
        self.destination_roots = dict(destination_roots)
        self.source_root = source_root
        self.mode = mode

    def relative_dir(self, directory: Path) -> Path:
        try:
            return directory.relative_to(self.source_root)
        except ValueError:
            raise InvalidRelativePath(directory, self.source_root) from None

    def plan_destination(self, entry: FileEntry, category: Category) -> Path:
        root = self.destination_roots.get(category)
        if root is None:
            raise KeyError(f"No destination configured for {category.value}")
        # files outside the source root are rejected in both modes
        rel = self.relative_dir(entry.directory)
        if self.mode is OrganizeMode.FLATTEN:
            return root / entry.name
        # rel is "." when the file sits in the source root itself
        return root / rel / entry.name
