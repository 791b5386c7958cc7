from typing import Optional


def format_size(size: float) -> str:
    for unit in ["B", "KiB", "MiB", "GiB"]:
        if abs(size) < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}TiB"


def format_fps(fps: Optional[float]) -> str:
    return "unknown" if fps is None else f"{fps:g}"


def format_duration(seconds: float) -> str:
    """HH:MM:SS"""
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_saved(total_bytes: int) -> str:
    """'12.34 MB (0.01 GB)' as in the report footer."""
    return f"{total_bytes / 1048576:.2f} MB ({total_bytes / 1073741824:.2f} GB)"
