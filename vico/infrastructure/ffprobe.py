import subprocess
import logging
from pathlib import Path
from typing import List, Optional, Tuple
from vico.domain.models import FileRecord, VideoFile

class FFprobeAdapter:
    """Wrapper around ffprobe answering the per-file questions the planner needs.

    Every probe is bounded by a timeout. A probe that hangs, fails or prints
    something unexpected gives the negative answer instead of raising.
    """

    def __init__(self, timeout_s: float = 30.0, ffprobe_bin: str = "ffprobe"):
        self.timeout_s = timeout_s
        self.ffprobe_bin = ffprobe_bin
        self.logger = logging.getLogger(__name__)

    def _probe(self, file_path: Path, selector: str, entries: str, writer: str = "csv=p=0") -> List[str]:
        """Runs ffprobe for one stream selector and returns non-empty output lines."""
        cmd = [
            self.ffprobe_bin,
            "-v", "error",
            "-select_streams", selector,
            "-show_entries", entries,
            "-of", writer,
            str(file_path),
        ]
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
            self.logger.warning(f"ffprobe timed out after {self.timeout_s}s: {file_path.name} ({selector})")
            return []
        except OSError as e:
            self.logger.warning(f"ffprobe could not run for {file_path.name}: {e}")
            return []

        if result.returncode != 0:
            self.logger.debug(f"ffprobe exited with {result.returncode} for {file_path.name}: {result.stderr.strip()}")
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def is_valid_video(self, file_path: Path) -> bool:
        lines = self._probe(file_path, "v:0", "stream=codec_type")
        return bool(lines) and lines[0].rstrip(",") == "video"

    def audio_channel_count(self, file_path: Path) -> Optional[int]:
        lines = self._probe(
            file_path, "a:0", "stream=channels", writer="default=noprint_wrappers=1:nokey=1"
        )
        if not lines:
            return None
        try:
            return int(lines[0])
        except ValueError:
            return None

    def has_subtitle_stream(self, file_path: Path) -> bool:
        return bool(self._probe(file_path, "s", "stream=index"))

    def video_dimensions(self, file_path: Path) -> Optional[Tuple[int, int]]:
        lines = self._probe(file_path, "v:0", "stream=width,height")
        if not lines:
            return None
        parts = lines[0].strip(",").split(",")
        if len(parts) < 2:
            return None
        try:
            width, height = int(parts[0]), int(parts[1])
        except ValueError:
            return None
        if width <= 0 or height <= 0:
            return None
        return width, height

    def inspect(self, video_file: VideoFile) -> FileRecord:
        """Builds the FileRecord. Stream probes are only run for valid videos."""
        path = video_file.path
        if not self.is_valid_video(path):
            return FileRecord(path=path, size_bytes=video_file.size_bytes, is_video=False)

        dimensions = self.video_dimensions(path)
        return FileRecord(
            path=path,
            size_bytes=video_file.size_bytes,
            is_video=True,
            audio_channels=self.audio_channel_count(path),
            has_subtitles=self.has_subtitle_stream(path),
            width=dimensions[0] if dimensions else None,
            height=dimensions[1] if dimensions else None,
        )
