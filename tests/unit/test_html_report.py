from pathlib import Path
from vico.domain.events import FileFinished, RunCancelled, RunFinished
from vico.domain.models import FileReport, FileStatus, RunSummary
from vico.reporting.formatting import format_duration, format_saved, format_size
from vico.reporting.html_report import HtmlReport


def report(name, status=FileStatus.OK):
    if status == FileStatus.OK:
        return FileReport(filename=name, path=Path(name), original_size_bytes=2048, final_size_bytes=1024,
                          reduction_percent=50.0, avg_fps=31.5, status=status)
    return FileReport(filename=name, path=Path(name), original_size_bytes=2048, status=status, reason="boom")


def test_formatting_helpers():
    assert format_size(512) == "512.0B"
    assert format_size(2048) == "2.0KiB"
    assert format_size(3 * 1024 ** 3) == "3.0GiB"
    assert format_duration(0) == "00:00:00"
    assert format_duration(3725.9) == "01:02:05"
    assert format_saved(1073741824) == "1024.00 MB (1.00 GB)"


def test_report_rewritten_after_each_file(tmp_path, event_bus):
    path = tmp_path / "vico_report.html"
    HtmlReport(event_bus, path)

    event_bus.publish(FileFinished(report=report("first.mp4")))
    html = path.read_text()
    assert "first.mp4" in html
    assert "50.00%" in html
    assert 'http-equiv="refresh"' in html

    event_bus.publish(FileFinished(report=report("second.mp4", FileStatus.FAILED)))
    html = path.read_text()
    assert "first.mp4" in html
    assert "second.mp4" in html
    assert "Error" in html


def test_final_report_has_total_and_no_refresh(tmp_path, event_bus):
    path = tmp_path / "vico_report.html"
    HtmlReport(event_bus, path)
    event_bus.publish(FileFinished(report=report("first.mp4")))

    event_bus.publish(RunFinished(summary=RunSummary(total_bytes_saved=1048576)))

    html = path.read_text()
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>ViCo Report</title>" in html
    assert 'http-equiv="refresh"' not in html
    assert "Total Saved:" in html
    assert "1.00 MB (0.00 GB)" in html


def test_cancelled_run_finalizes_report(tmp_path, event_bus):
    path = tmp_path / "vico_report.html"
    HtmlReport(event_bus, path)
    event_bus.publish(FileFinished(report=report("first.mp4")))

    event_bus.publish(RunCancelled())

    html = path.read_text()
    assert 'http-equiv="refresh"' not in html
    assert "0.00 MB (0.00 GB)" in html


def test_unwritable_report_path_is_logged_not_raised(tmp_path, event_bus):
    HtmlReport(event_bus, tmp_path / "missing_dir" / "report.html")
    event_bus.publish(FileFinished(report=report("first.mp4")))
