from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

class FileStatus(str, Enum):
    OK = "OK"
    FAILED = "Failed"
    INVALID = "Invalid"
    SKIPPED = "Skipped"


# --- Hardware backends -------------------------------------------------------

class CpuBackend(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["cpu"] = "cpu"

    @property
    def label(self) -> str:
        return "CPU"


class NvencBackend(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["nvenc"] = "nvenc"

    @property
    def label(self) -> str:
        return "NVENC"


class QsvBackend(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["qsv"] = "qsv"
    device: Path

    @property
    def label(self) -> str:
        return f"QuickSync ({self.device})"


class VaapiBackend(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["vaapi"] = "vaapi"
    device: Path

    @property
    def label(self) -> str:
        return f"VAAPI ({self.device})"


HardwareBackend = Union[CpuBackend, NvencBackend, QsvBackend, VaapiBackend]


# --- Per-file data -----------------------------------------------------------

class VideoFile(BaseModel):
    path: Path
    size_bytes: int


class FileRecord(BaseModel):
    """Inspection facts for one candidate. audio_channels is None when no audio stream was found."""
    model_config = ConfigDict(frozen=True)

    path: Path
    size_bytes: int
    is_video: bool
    audio_channels: Optional[int] = None
    has_subtitles: bool = False
    width: Optional[int] = None
    height: Optional[int] = None


class EncodePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_path: Path
    temp_path: Path
    final_path: Path
    encoder: str
    hw_args: List[str] = Field(default_factory=list)
    filter_chain: str
    quality_flag: str
    quality_value: int
    video_args: List[str] = Field(default_factory=list)
    audio_args: List[str] = Field(default_factory=list)
    subtitle_args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    output_width: Optional[int] = None

    def to_ffmpeg_args(self) -> List[str]:
        """Full ffmpeg argument list, without the executable."""
        args = [
            "-hide_banner",
            "-nostdin",
            "-n",  # never overwrite an existing temp file
            "-v", "error",
            "-stats",
        ]
        args.extend(self.hw_args)
        args.extend(["-i", str(self.input_path), "-map", "0:v:0"])
        args.extend(["-vf", self.filter_chain])
        args.extend(["-c:v", self.encoder, self.quality_flag, str(self.quality_value)])
        args.extend(self.video_args)
        args.extend(self.audio_args)
        args.extend(self.subtitle_args)
        args.extend(["-movflags", "+faststart", "-f", "mp4", str(self.temp_path)])
        return args


class EncodeSuccess(BaseModel):
    kind: Literal["success"] = "success"
    final_size_bytes: int
    avg_fps: Optional[float] = None


class EncodeFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    reason: str
    return_code: Optional[int] = None


EncodeOutcome = Union[EncodeSuccess, EncodeFailure]


class FileReport(BaseModel):
    """One report row per discovered file."""
    filename: str
    path: Path
    original_size_bytes: int
    final_size_bytes: Optional[int] = None
    reduction_percent: Optional[float] = None
    avg_fps: Optional[float] = None
    status: FileStatus
    reason: Optional[str] = None

    @property
    def bytes_saved(self) -> int:
        if self.status != FileStatus.OK or self.final_size_bytes is None:
            return 0
        return self.original_size_bytes - self.final_size_bytes


class RunSummary(BaseModel):
    total_files_seen: int = 0
    total_files_processed: int = 0
    total_bytes_saved: int = 0
    duration_seconds: float = 0.0
    ok_count: int = 0
    failed_count: int = 0
    invalid_count: int = 0
    skipped_count: int = 0
    backend: str = "CPU"
