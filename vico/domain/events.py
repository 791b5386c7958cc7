"""Domain events for the compression run.

Events flow through the EventBus and decouple the orchestrator from the
console output and the HTML report. See `infrastructure/event_bus.py`.
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from .models import FileReport, HardwareBackend, RunSummary, VideoFile


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class DiscoveryStarted(Event):
    directory: Path


class DiscoveryFinished(Event):
    """Emitted once the candidate list is known."""

    directory: Path
    files_found: int


class BackendSelected(Event):
    backend: HardwareBackend = Field(discriminator="kind")


class JobStarted(Event):
    """Emitted before a file is inspected."""

    video_file: VideoFile
    index: int
    total: int


class JobProgressUpdated(Event):
    """Emitted for every ffmpeg progress line."""

    path: Path
    fps: Optional[float] = None
    frame: Optional[int] = None
    out_time_seconds: Optional[float] = None


class FileFinished(Event):
    """Exactly one per discovered file."""

    report: FileReport


class RunFinished(Event):
    summary: RunSummary


class RunCancelled(Event):
    """Emitted after the in-flight temp file has been cleaned up."""

    removed_temp: Optional[Path] = None
