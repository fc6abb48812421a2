class HousekeeperError(Exception):
    """Base error for the project."""

class ConfigError(HousekeeperError):
    pass

class InvalidPathError(HousekeeperError):
    pass

class FolderCreationError(HousekeeperError):
    def __init__(self, path, cause: Exception):
        super().__init__(f"Could not create folder {path}: {cause}")
        self.path = path
        self.cause = cause

class InvalidRelativePath(HousekeeperError):
    def __init__(self, directory, source_root):
        super().__init__(f"{directory} is not under source root {source_root}")
        self.directory = directory
        self.source_root = source_root

class MoveError(HousekeeperError):
    pass

class AccessDenied(HousekeeperError):
    pass
