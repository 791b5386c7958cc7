import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

SUPPORTED_RESOLUTIONS = (720, 1080, 2160)
DEFAULT_RESOLUTION = 1080
DEFAULT_QUALITY = 23

VIDEO_EXTENSIONS = [".mp4", ".mkv", ".mov", ".avi"]

# Filename markers. Both are excluded from every scan.
TEMP_MARKER = ".temp_vico"
OPTIMIZED_MARKER = "_optimized"
OUTPUT_EXTENSION = ".mp4"

REPORT_FILENAME = "vico_report.html"


class VideoCodec(str, Enum):
    H264 = "264"
    H265 = "265"


class AudioMode(str, Enum):
    COPY = "copy"
    DOWNMIX = "downmix"
    REENCODE = "reencode"


_CODEC_ALIASES = {
    "264": VideoCodec.H264,
    "h264": VideoCodec.H264,
    "h.264": VideoCodec.H264,
    "avc": VideoCodec.H264,
    "x264": VideoCodec.H264,
    "265": VideoCodec.H265,
    "h265": VideoCodec.H265,
    "h.265": VideoCodec.H265,
    "hevc": VideoCodec.H265,
    "x265": VideoCodec.H265,
}


def language_from_locale(lang: Optional[str]) -> str:
    """'de_DE.UTF-8' -> 'de'. Falls back to 'en' for C/POSIX or empty locales."""
    if not lang:
        return "en"
    code = lang.split("_", 1)[0].split(".", 1)[0].strip().lower()
    if not code or code in {"c", "posix"}:
        return "en"
    return code


class AppConfig(BaseModel):
    """Run configuration. Frozen: build a new instance to change anything."""

    model_config = ConfigDict(frozen=True)

    directory: Path = Field(default_factory=Path.cwd)
    recursive: bool = True
    resolution: int = DEFAULT_RESOLUTION
    codec: VideoCodec = VideoCodec.H264
    quality: int = Field(default=DEFAULT_QUALITY, ge=0, le=63)
    audio_mode: AudioMode = AudioMode.COPY
    fetch_subtitles: bool = False
    subtitle_language: str = Field(default_factory=lambda: language_from_locale(os.environ.get("LANG")))
    subtitle_timeout_s: float = Field(default=20.0, gt=0)
    overwrite: bool = True
    disable_hardware: bool = False
    html_report: bool = False
    report_path: Optional[Path] = None
    probe_timeout_s: float = Field(default=30.0, gt=0)
    clean_temp_files: bool = True
    extensions: list[str] = Field(default_factory=lambda: list(VIDEO_EXTENSIONS))
    log_path: Optional[Path] = None
    debug: bool = False

    @field_validator("resolution", mode="before")
    @classmethod
    def normalize_resolution(cls, v: Any) -> int:
        try:
            value = int(str(v).strip().lower().rstrip("p"))
        except (TypeError, ValueError):
            value = None
        if value not in SUPPORTED_RESOLUTIONS:
            logger.warning(f"Unsupported resolution {v!r}, using {DEFAULT_RESOLUTION}")
            return DEFAULT_RESOLUTION
        return value

    @field_validator("codec", mode="before")
    @classmethod
    def normalize_codec(cls, v: Any) -> VideoCodec:
        if isinstance(v, VideoCodec):
            return v
        codec = _CODEC_ALIASES.get(str(v).strip().lower())
        if codec is None:
            logger.warning(f"Unsupported codec {v!r}, using H.264")
            return VideoCodec.H264
        return codec

    @field_validator("quality", mode="before")
    @classmethod
    def normalize_quality(cls, v: Any) -> int:
        try:
            return int(str(v).strip())
        except (TypeError, ValueError):
            logger.warning(f"Invalid quality value {v!r}, using {DEFAULT_QUALITY}")
            return DEFAULT_QUALITY

    @field_validator("audio_mode", mode="before")
    @classmethod
    def normalize_audio_mode(cls, v: Any) -> AudioMode:
        if isinstance(v, AudioMode):
            return v
        try:
            return AudioMode(str(v).strip().lower())
        except ValueError:
            logger.warning(f"Unsupported audio mode {v!r}, using copy")
            return AudioMode.COPY

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [(ext if ext.startswith(".") else f".{ext}").lower() for ext in v]

    @property
    def effective_report_path(self) -> Path:
        return self.report_path or (self.directory / REPORT_FILENAME)


def apply_overrides(config: AppConfig, **overrides: Any) -> AppConfig:
    """Returns a re-validated copy with non-None overrides applied."""
    data = config.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    return AppConfig(**data)
