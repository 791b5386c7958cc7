"""Run coordinator for one batch compression pass.

Validates the target directory, selects the hardware backend once, scans for
candidates and drives each file through inspect -> plan -> encode -> commit,
strictly one file at a time.

Key responsibilities:
- Fail fast when the target directory is missing (nothing is touched)
- Turn every per-file problem into a report record; only interrupts and a
  missing directory end the run early
- Keep the in-flight temp path in a single slot so cancellation can remove it
- Publish events for console output and the HTML report
"""

import threading
import logging
import time
from typing import List, Optional
from vico.config.models import AppConfig
from vico.domain.errors import FileSkipped, RunInterrupted, TargetDirectoryError
from vico.domain.events import (
    BackendSelected,
    DiscoveryFinished,
    DiscoveryStarted,
    FileFinished,
    JobStarted,
    RunCancelled,
    RunFinished,
)
from vico.domain.models import FileReport, FileStatus, HardwareBackend, RunSummary, VideoFile
from vico.infrastructure.event_bus import EventBus
from vico.infrastructure.ffmpeg import FFmpegAdapter
from vico.infrastructure.ffprobe import FFprobeAdapter
from vico.infrastructure.file_scanner import FileScanner
from vico.infrastructure.hardware import HardwareProbe
from vico.infrastructure.housekeeping import HousekeepingService
from vico.infrastructure.subtitles import SubtitleFetcher
from vico.pipeline.cancellation import InFlightSlot
from vico.pipeline.committer import ResultCommitter
from vico.pipeline.planner import EncodePlanner


class Orchestrator:
    """Sequential batch pipeline.

    Args:
        config: Frozen AppConfig for the whole run.
        event_bus: EventBus receiving discovery, per-file and summary events.
        file_scanner: FileScanner producing candidates in deterministic order.
        ffprobe_adapter: FFprobeAdapter used to inspect each candidate.
        ffmpeg_adapter: FFmpegAdapter running the encode.
        hardware_probe: HardwareProbe consulted once per run.
        subtitle_fetcher: Optional SubtitleFetcher (used when fetch_subtitles is on).
        housekeeper: Optional HousekeepingService for stale temp cleanup.
        cancel_event: Event set by signal handlers to request interruption.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        ffprobe_adapter: FFprobeAdapter,
        ffmpeg_adapter: FFmpegAdapter,
        hardware_probe: HardwareProbe,
        planner: Optional[EncodePlanner] = None,
        committer: Optional[ResultCommitter] = None,
        subtitle_fetcher: Optional[SubtitleFetcher] = None,
        housekeeper: Optional[HousekeepingService] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.ffprobe_adapter = ffprobe_adapter
        self.ffmpeg_adapter = ffmpeg_adapter
        self.hardware_probe = hardware_probe
        self.planner = planner or EncodePlanner()
        self.committer = committer or ResultCommitter()
        self.subtitle_fetcher = subtitle_fetcher
        self.housekeeper = housekeeper
        self.cancel_event = cancel_event or threading.Event()
        self.logger = logging.getLogger(__name__)

        self.backend: Optional[HardwareBackend] = None
        self.reports: List[FileReport] = []
        self._in_flight = InFlightSlot()

    @property
    def in_flight(self) -> InFlightSlot:
        return self._in_flight

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise RunInterrupted()

    def _validate_directory(self) -> None:
        directory = self.config.directory
        if not directory.is_dir():
            self.logger.error(f"Target directory does not exist: {directory}")
            raise TargetDirectoryError(directory)

    def _perform_discovery(self) -> List[VideoFile]:
        directory = self.config.directory
        self.event_bus.publish(DiscoveryStarted(directory=directory))
        files = list(self.file_scanner.scan(directory))
        self.logger.info(f"Discovery finished: {len(files)} candidate files in {directory}")
        self.event_bus.publish(DiscoveryFinished(directory=directory, files_found=len(files)))
        return files

    def _report(self, video_file: VideoFile, status: FileStatus, reason: Optional[str] = None) -> FileReport:
        return FileReport(
            filename=video_file.path.name,
            path=video_file.path,
            original_size_bytes=video_file.size_bytes,
            status=status,
            reason=reason,
        )

    def _process_file(self, video_file: VideoFile, backend: HardwareBackend) -> FileReport:
        """Inspect -> plan -> encode -> commit for one file."""
        filename = video_file.path.name

        record = self.ffprobe_adapter.inspect(video_file)
        self._check_cancelled()
        if not record.is_video:
            self.logger.info(f"Invalid video, skipping: {filename}")
            return self._report(video_file, FileStatus.INVALID, "No video stream")

        if self.config.fetch_subtitles and not record.has_subtitles and self.subtitle_fetcher:
            self.subtitle_fetcher.fetch(video_file.path, self.config.subtitle_language)
            self._check_cancelled()

        try:
            plan = self.planner.plan(self.config, backend, record)
        except FileSkipped as e:
            self.logger.info(f"Skipped {filename}: {e.reason}")
            return self._report(video_file, FileStatus.SKIPPED, e.reason)

        if self.config.debug:
            self.logger.debug(
                f"PLAN: {filename} encoder={plan.encoder} vf={plan.filter_chain} "
                f"audio={' '.join(plan.audio_args)} final={plan.final_path.name} width={plan.output_width}"
            )

        self._in_flight.set(plan.temp_path)
        outcome = self.ffmpeg_adapter.encode(plan, cancel_event=self.cancel_event)
        report = self.committer.commit(plan, outcome, self.config.overwrite, video_file.size_bytes)
        self._in_flight.clear()
        return report

    @staticmethod
    def _tally(summary: RunSummary, report: FileReport) -> None:
        if report.status == FileStatus.OK:
            summary.ok_count += 1
            summary.total_bytes_saved += report.bytes_saved
        elif report.status == FileStatus.FAILED:
            summary.failed_count += 1
        elif report.status == FileStatus.INVALID:
            summary.invalid_count += 1
        else:
            summary.skipped_count += 1
        summary.total_files_processed = summary.ok_count + summary.failed_count

    def run(self) -> RunSummary:
        """Runs the whole batch. Raises TargetDirectoryError or RunInterrupted."""
        self._validate_directory()
        start_time = time.monotonic()

        backend = self.hardware_probe.detect(self.config.disable_hardware)
        self.backend = backend
        self.event_bus.publish(BackendSelected(backend=backend))
        summary = RunSummary(backend=backend.label)

        if self.config.clean_temp_files and self.housekeeper:
            self.housekeeper.cleanup_temp_files(self.config.directory, recursive=self.config.recursive)

        files = self._perform_discovery()
        summary.total_files_seen = len(files)

        try:
            for index, video_file in enumerate(files, start=1):
                self._check_cancelled()
                filename = video_file.path.name
                file_start = time.monotonic()
                if self.config.debug:
                    self.logger.info(f"PROCESS_START: {filename} ({index}/{len(files)})")
                self.event_bus.publish(JobStarted(video_file=video_file, index=index, total=len(files)))

                try:
                    report = self._process_file(video_file, backend)
                except RunInterrupted:
                    raise
                except Exception as e:
                    # Log exception but keep the run going
                    self.logger.error(f"Exception processing {filename}: {e}")
                    self._in_flight.discard()
                    report = self._report(video_file, FileStatus.FAILED, f"Exception: {e}")

                if self.config.debug:
                    elapsed = time.monotonic() - file_start
                    self.logger.info(f"PROCESS_END: {filename} status={report.status.value} elapsed={elapsed:.2f}s")

                self.reports.append(report)
                self._tally(summary, report)
                self.event_bus.publish(FileFinished(report=report))
        except (RunInterrupted, KeyboardInterrupt) as e:
            removed = self._in_flight.discard()
            if removed is None and isinstance(e, RunInterrupted):
                removed = e.removed_temp
            self.logger.warning(
                f"Run interrupted after {len(self.reports)} of {len(files)} files"
                + (f", removed incomplete file {removed}" if removed else "")
            )
            self.event_bus.publish(RunCancelled(removed_temp=removed))
            raise RunInterrupted(removed_temp=removed) from e

        summary.duration_seconds = time.monotonic() - start_time
        self.logger.info(
            f"Run finished: seen={summary.total_files_seen} processed={summary.total_files_processed} "
            f"ok={summary.ok_count} failed={summary.failed_count} invalid={summary.invalid_count} "
            f"skipped={summary.skipped_count} saved={summary.total_bytes_saved} bytes "
            f"duration={summary.duration_seconds:.1f}s"
        )
        self.event_bus.publish(RunFinished(summary=summary))
        return summary
