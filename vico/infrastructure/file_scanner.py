import os
from pathlib import Path
from typing import List, Generator
from vico.config.models import OPTIMIZED_MARKER, TEMP_MARKER
from vico.domain.models import VideoFile


def is_generated_output(file_path: Path) -> bool:
    """True for in-progress temp files and keep-mode outputs written by earlier runs."""
    stem = file_path.stem.lower()
    return stem.endswith(TEMP_MARKER) or stem.endswith(OPTIMIZED_MARKER)


class FileScanner:
    """Scans a directory (optionally recursively) for candidate video files."""

    def __init__(self, extensions: List[str], recursive: bool = True):
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]
        self.recursive = recursive

    def scan(self, root_dir: Path) -> Generator[VideoFile, None, None]:
        """Yields VideoFile objects in deterministic order (sorted dirs, then sorted files)."""
        for root, dirs, files in os.walk(str(root_dir)):
            root_path = Path(root)

            if self.recursive:
                dirs.sort()
            else:
                dirs[:] = []
            files.sort()

            for file_name in files:
                file_path = root_path / file_name

                if file_path.suffix.lower() not in self.extensions:
                    continue
                if is_generated_output(file_path):
                    continue

                try:
                    file_size = file_path.stat().st_size
                except OSError:
                    # Skip files we can't access
                    continue
                yield VideoFile(path=file_path, size_bytes=file_size)
