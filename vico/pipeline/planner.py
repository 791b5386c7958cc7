"""Encode planning: turns config + backend + inspected file into an EncodePlan.

Planning is deterministic and has no side effects. The only filesystem access
is checking whether the final output already exists.
"""

from pathlib import Path
from typing import List, Optional, Tuple
from vico.config.models import AppConfig, AudioMode, VideoCodec, OPTIMIZED_MARKER, OUTPUT_EXTENSION, TEMP_MARKER
from vico.domain.errors import FileSkipped
from vico.domain.models import (
    CpuBackend,
    EncodePlan,
    FileRecord,
    HardwareBackend,
    NvencBackend,
    QsvBackend,
    VaapiBackend,
)

STEREO_BITRATE = "128k"
SURROUND_BITRATE = "384k"

_ENCODER_NAMES = {
    "cpu": {VideoCodec.H264: "libx264", VideoCodec.H265: "libx265"},
    "nvenc": {VideoCodec.H264: "h264_nvenc", VideoCodec.H265: "hevc_nvenc"},
    "qsv": {VideoCodec.H264: "h264_qsv", VideoCodec.H265: "hevc_qsv"},
    "vaapi": {VideoCodec.H264: "h264_vaapi", VideoCodec.H265: "hevc_vaapi"},
}


def temp_path_for(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}{TEMP_MARKER}{OUTPUT_EXTENSION}")


def final_path_for(input_path: Path, overwrite: bool) -> Path:
    if overwrite:
        return input_path.with_name(f"{input_path.stem}{OUTPUT_EXTENSION}")
    return input_path.with_name(f"{input_path.stem}{OPTIMIZED_MARKER}{OUTPUT_EXTENSION}")


def scale_filter(resolution: int) -> str:
    # -2 keeps aspect ratio and rounds width to an even number
    return f"scale=-2:{resolution}"


def planned_output_width(src_width: int, src_height: int, resolution: int) -> int:
    """Width ffmpeg's scale=-2:<resolution> produces: aspect-preserving, even, at least 2."""
    if src_width <= 0 or src_height <= 0:
        raise ValueError(f"Invalid source dimensions {src_width}x{src_height}")
    # Halves round away from zero, as ffmpeg's av_rescale does
    width = (src_width * resolution + src_height) // (2 * src_height) * 2
    return max(2, width)


def audio_args_for(mode: AudioMode, channels: Optional[int]) -> List[str]:
    """Audio policy, first match wins:

    no audio stream -> drop; copy -> passthrough; downmix of surround -> stereo
    AAC; anything else -> AAC with the channel count preserved.
    """
    if not channels:
        return ["-an"]
    if mode == AudioMode.COPY:
        return ["-map", "0:a?", "-c:a", "copy"]
    if mode == AudioMode.DOWNMIX and channels > 2:
        return ["-map", "0:a?", "-c:a", "aac", "-b:a", STEREO_BITRATE, "-ac", "2"]
    bitrate = SURROUND_BITRATE if channels > 2 else STEREO_BITRATE
    return ["-map", "0:a?", "-c:a", "aac", "-b:a", bitrate]


def subtitle_args_for(has_subtitles: bool) -> List[str]:
    if not has_subtitles:
        return []
    # MP4 only carries text subtitles as mov_text
    return ["-map", "0:s?", "-c:s", "mov_text"]


def _video_settings(
    backend: HardwareBackend, codec: VideoCodec, resolution: int
) -> Tuple[str, List[str], str, str, List[str], dict]:
    """(encoder, hw_args, filter_chain, quality_flag, extra video args, env) per backend."""
    scale = scale_filter(resolution)

    if isinstance(backend, CpuBackend):
        return (
            _ENCODER_NAMES["cpu"][codec], [], scale, "-crf", ["-preset", "medium"], {},
        )
    if isinstance(backend, NvencBackend):
        # Decode on the GPU but hand frames back to system memory for the software scaler
        return (
            _ENCODER_NAMES["nvenc"][codec], ["-hwaccel", "cuda"], scale, "-cq", ["-preset", "p4"], {},
        )
    if isinstance(backend, QsvBackend):
        hw_args = [
            "-init_hw_device", f"vaapi=va:{backend.device}",
            "-init_hw_device", "qsv=hw@va",
            "-filter_hw_device", "hw",
        ]
        chain = f"{scale},format=nv12,hwupload=extra_hw_frames=64,format=qsv"
        return (
            _ENCODER_NAMES["qsv"][codec], hw_args, chain, "-global_quality", ["-preset", "medium"],
            {"LIBVA_DRIVER_NAME": "iHD"},
        )
    if isinstance(backend, VaapiBackend):
        chain = f"{scale},format=nv12,hwupload"
        return (
            _ENCODER_NAMES["vaapi"][codec], ["-vaapi_device", str(backend.device)], chain, "-qp", [], {},
        )
    raise TypeError(f"Unsupported hardware backend: {backend!r}")


class EncodePlanner:
    """Derives the complete ffmpeg plan for one file."""

    def plan(self, config: AppConfig, backend: HardwareBackend, record: FileRecord) -> EncodePlan:
        input_path = record.path
        final_path = final_path_for(input_path, config.overwrite)

        if final_path.exists():
            if not config.overwrite:
                raise FileSkipped(f"Output already exists: {final_path.name}")
            if final_path != input_path and not final_path.samefile(input_path):
                raise FileSkipped(f"Output would replace another file: {final_path.name}")

        encoder, hw_args, chain, quality_flag, video_args, env = _video_settings(
            backend, config.codec, config.resolution
        )

        output_width = None
        if record.width and record.height:
            output_width = planned_output_width(record.width, record.height, config.resolution)

        return EncodePlan(
            input_path=input_path,
            temp_path=temp_path_for(input_path),
            final_path=final_path,
            encoder=encoder,
            hw_args=hw_args,
            filter_chain=chain,
            quality_flag=quality_flag,
            quality_value=config.quality,
            video_args=video_args,
            audio_args=audio_args_for(config.audio_mode, record.audio_channels),
            subtitle_args=subtitle_args_for(record.has_subtitles),
            env=env,
            output_width=output_width,
        )
