import logging
import os
from pathlib import Path
from typing import List
from vico.config.models import TEMP_MARKER

class HousekeepingService:
    """Removes in-progress files left behind by crashed or killed runs."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def cleanup_temp_files(self, directory: Path, recursive: bool = True) -> List[Path]:
        """Removes all stale *.temp_vico.* files and returns what was removed."""
        removed = []
        for root, dirs, files in os.walk(directory):
            if not recursive:
                dirs[:] = []
            for file in sorted(files):
                path = Path(root) / file
                if not path.stem.lower().endswith(TEMP_MARKER):
                    continue
                try:
                    path.unlink()
                except OSError as e:
                    self.logger.warning(f"Could not remove stale temp file {path}: {e}")
                    continue
                removed.append(path)
                self.logger.info(f"Removed stale temp file: {path}")
        return removed
