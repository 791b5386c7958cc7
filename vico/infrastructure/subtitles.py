import logging
import subprocess
from pathlib import Path

class SubtitleFetcher:
    """Best-effort subtitle download through the subliminal CLI.

    Any outcome other than a quick, clean exit is logged and ignored.
    """

    def __init__(self, timeout_s: float = 20.0, subliminal_bin: str = "subliminal"):
        self.timeout_s = timeout_s
        self.subliminal_bin = subliminal_bin
        self.logger = logging.getLogger(__name__)

    def fetch(self, file_path: Path, language: str) -> bool:
        cmd = [self.subliminal_bin, "download", "-l", language, str(file_path)]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                stdin=subprocess.DEVNULL,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired:
            self.logger.debug(f"Subtitle fetch timed out after {self.timeout_s}s: {file_path.name}")
            return False
        except OSError as e:
            self.logger.debug(f"Subtitle fetch unavailable for {file_path.name}: {e}")
            return False

        if result.returncode != 0:
            self.logger.debug(f"Subtitle fetch failed for {file_path.name} (code {result.returncode})")
            return False
        self.logger.info(f"Subtitles fetched ({language}): {file_path.name}")
        return True
