from pathlib import Path
from typing import Optional


class VicoError(Exception):
    """Base class for all vico errors."""


class TargetDirectoryError(VicoError):
    """Target directory is missing or not a directory. Aborts the run before any file is touched."""

    def __init__(self, directory: Path):
        self.directory = directory
        super().__init__(f"Directory {directory} does not exist")


class FileSkipped(VicoError):
    """Raised while planning when a file must not be encoded. Not a failure."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class RunInterrupted(VicoError):
    """User cancellation. Committed files stay committed."""

    def __init__(self, removed_temp: Optional[Path] = None):
        self.removed_temp = removed_temp
        super().__init__("Interrupted by user")
