import io
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.table import Table
from rich.text import Text
from vico.domain.events import FileFinished, RunCancelled, RunFinished
from vico.domain.models import FileReport, FileStatus
from vico.infrastructure.event_bus import EventBus
from vico.pipeline.committer import format_reduction
from vico.reporting.formatting import format_fps, format_saved, format_size

# Formatted twice: {refresh} here, then {stylesheet}, {foreground}, {background} and {code} by rich.
_HTML_FORMAT = """\
<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
{refresh}<title>ViCo Report</title>
<style>
{{stylesheet}}
body {{{{
    color: {{foreground}};
    background-color: {{background}};
    padding: 20px;
}}}}
</style>
</head>
<body>
    <pre style="font-family:Menlo,'DejaVu Sans Mono',consolas,'Courier New',monospace"><code style="font-family:inherit">{{code}}</code></pre>
</body>
</html>
"""

_REFRESH_TAG = '<meta http-equiv="refresh" content="5">\n'


def _status_text(report: FileReport) -> Text:
    if report.status == FileStatus.OK:
        return Text("OK", style="green")
    if report.status == FileStatus.FAILED:
        return Text("Error", style="red")
    return Text(report.status.value, style="yellow")


class HtmlReport:
    """Incremental per-file HTML report.

    Rewritten after every FileFinished with an auto-refresh tag so it can be
    watched in a browser; the final write drops the refresh and adds the
    total saved.
    """

    def __init__(self, bus: EventBus, path: Path, width: int = 120):
        self.bus = bus
        self.path = path
        self.width = width
        self.reports: List[FileReport] = []
        self.started_at = datetime.now()
        self.logger = logging.getLogger(__name__)
        self.bus.subscribe(FileFinished, self.on_file_finished)
        self.bus.subscribe(RunFinished, self.on_run_finished)
        self.bus.subscribe(RunCancelled, self.on_run_cancelled)

    def build_table(self) -> Table:
        table = Table(title="ViCo Report", caption=self.started_at.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_column("File")
        table.add_column("Old", justify="right")
        table.add_column("New", justify="right")
        table.add_column("Red.", justify="right")
        table.add_column("FPS", justify="right")
        table.add_column("Stat")
        for report in self.reports:
            if report.status == FileStatus.OK:
                table.add_row(
                    report.filename,
                    format_size(report.original_size_bytes),
                    format_size(report.final_size_bytes or 0),
                    Text(format_reduction(report.original_size_bytes, report.final_size_bytes or 0), style="green"),
                    format_fps(report.avg_fps),
                    _status_text(report),
                )
            else:
                table.add_row(
                    report.filename,
                    format_size(report.original_size_bytes),
                    "-",
                    "-",
                    "-",
                    _status_text(report),
                )
        return table

    def render(self, final: bool = False, total_saved: Optional[int] = None) -> str:
        console = Console(record=True, file=io.StringIO(), width=self.width, force_terminal=True)
        console.print(self.build_table())
        if total_saved is not None:
            console.print()
            console.print(Text.assemble(("Total Saved: ", "bold"), format_saved(total_saved)))
        code_format = _HTML_FORMAT.format(refresh="" if final else _REFRESH_TAG)
        return console.export_html(code_format=code_format, inline_styles=False)

    def write(self, final: bool = False, total_saved: Optional[int] = None) -> None:
        try:
            self.path.write_text(self.render(final=final, total_saved=total_saved), encoding="utf-8")
        except OSError as e:
            self.logger.error(f"Failed to write HTML report {self.path}: {e}")

    def on_file_finished(self, event: FileFinished):
        self.reports.append(event.report)
        self.write()

    def on_run_finished(self, event: RunFinished):
        self.write(final=True, total_saved=event.summary.total_bytes_saved)
        self.logger.info(f"HTML report written: {self.path}")

    def on_run_cancelled(self, event: RunCancelled):
        self.write(final=True, total_saved=sum(r.bytes_saved for r in self.reports))
