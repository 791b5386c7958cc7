from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from vico.domain.events import (
    BackendSelected,
    DiscoveryFinished,
    FileFinished,
    JobProgressUpdated,
    JobStarted,
    RunCancelled,
    RunFinished,
)
from vico.domain.models import FileReport, FileStatus
from vico.infrastructure.event_bus import EventBus
from vico.pipeline.committer import format_reduction
from vico.reporting.formatting import format_duration, format_fps, format_saved

_STATUS_STYLES = {
    FileStatus.OK: "green",
    FileStatus.FAILED: "red",
    FileStatus.INVALID: "yellow",
    FileStatus.SKIPPED: "cyan",
}


def status_line(report: FileReport) -> str:
    """The single terminal line printed for each file."""
    if report.status == FileStatus.OK:
        saved = format_reduction(report.original_size_bytes, report.final_size_bytes or 0)
        return f"Done. Saved: {saved} ({format_fps(report.avg_fps)} fps)"
    if report.status == FileStatus.FAILED:
        return f"Failed. {report.reason}" if report.reason else "Failed."
    if report.status == FileStatus.INVALID:
        return "Invalid video. Skipping."
    return f"Skipped. {report.reason}" if report.reason else "Skipped."


class ConsoleReporter:
    """Subscribes to EventBus and prints progress, per-file results and the summary."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None, show_progress: bool = True):
        self.bus = bus
        self.console = console or Console()
        self.show_progress = show_progress
        self._status: Optional[Status] = None
        self._current_name = ""
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(BackendSelected, self.on_backend_selected)
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(JobStarted, self.on_job_started)
        self.bus.subscribe(JobProgressUpdated, self.on_job_progress)
        self.bus.subscribe(FileFinished, self.on_file_finished)
        self.bus.subscribe(RunFinished, self.on_run_finished)
        self.bus.subscribe(RunCancelled, self.on_run_cancelled)

    def _stop_status(self):
        if self._status is not None:
            self._status.stop()
            self._status = None

    def on_backend_selected(self, event: BackendSelected):
        self.console.print(f"HW:     [bold]{event.backend.label}[/bold]")

    def on_discovery_finished(self, event: DiscoveryFinished):
        self.console.print(f"Target: {event.directory} ({event.files_found} files)")

    def on_job_started(self, event: JobStarted):
        self._current_name = event.video_file.path.name
        self.console.print(f"[{event.index}/{event.total}] {self._current_name}", markup=False, highlight=False)
        if self.show_progress:
            self._status = self.console.status(f"Encoding {self._current_name}")
            self._status.start()

    def on_job_progress(self, event: JobProgressUpdated):
        if self._status is None:
            return
        parts = [f"Encoding {self._current_name}"]
        if event.out_time_seconds is not None:
            parts.append(f"time={format_duration(event.out_time_seconds)}")
        parts.append(f"fps={format_fps(event.fps)}")
        self._status.update(" ".join(parts))

    def on_file_finished(self, event: FileFinished):
        self._stop_status()
        style = _STATUS_STYLES[event.report.status]
        self.console.print(f"    > {status_line(event.report)}", style=style, markup=False, highlight=False)

    def on_run_finished(self, event: RunFinished):
        self._stop_status()
        summary = event.summary
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Files", str(summary.total_files_seen))
        table.add_row("Processed", str(summary.total_files_processed))
        table.add_row(
            "Results",
            f"{summary.ok_count} ok, {summary.failed_count} failed, "
            f"{summary.invalid_count} invalid, {summary.skipped_count} skipped",
        )
        table.add_row("Saved", format_saved(summary.total_bytes_saved))
        table.add_row("Time", format_duration(summary.duration_seconds))
        table.add_row("Backend", summary.backend)
        self.console.print(Panel(table, title="Finished", expand=False))

    def on_run_cancelled(self, event: RunCancelled):
        self._stop_status()
        self.console.print("!!! Process Interrupted !!!", style="bold yellow")
        if event.removed_temp:
            self.console.print(f"Removed incomplete file: {event.removed_temp}", markup=False)
