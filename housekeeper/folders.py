import logging
from pathlib import Path

from .context import ExecutionContext
from .errors import FolderCreationError

logger = logging.getLogger(__name__)


class FolderEnsurer:
    """Makes sure a folder and its ancestors exist. Idempotent."""
    def __init__(self, ctx: ExecutionContext):
        self.ctx = ctx

    def ensure(self, path: Path) -> bool:
        if self.ctx.exists(path):
            if not self.ctx.simulate and not path.is_dir():
                raise FolderCreationError(path, NotADirectoryError("a file is in the way"))
            return True

        parent = path.parent
        if parent != path:
            self.ensure(parent)

        try:
            self.ctx.make_dir(path)
        except FileExistsError:
            # created by someone else in the meantime
            if not path.is_dir():
                raise FolderCreationError(path, NotADirectoryError("a file is in the way")) from None
        except OSError as e:
            raise FolderCreationError(path, e) from e
        if not self.ctx.simulate:
            logger.debug("Created folder %s", path)
        return True
