import typer
import yaml
import threading
from pathlib import Path
from typing import Optional
from rich.console import Console

from vico.config.loader import load_config
from vico.config.models import AudioMode, apply_overrides
from vico.domain.errors import RunInterrupted, TargetDirectoryError
from vico.infrastructure.logging import setup_logging
from vico.infrastructure.event_bus import EventBus
from vico.infrastructure.file_scanner import FileScanner
from vico.infrastructure.ffprobe import FFprobeAdapter
from vico.infrastructure.ffmpeg import FFmpegAdapter
from vico.infrastructure.hardware import HardwareProbe
from vico.infrastructure.housekeeping import HousekeepingService
from vico.infrastructure.subtitles import SubtitleFetcher
from vico.pipeline.cancellation import install_signal_handlers
from vico.pipeline.orchestrator import Orchestrator
from vico.reporting.html_report import HtmlReport
from vico.ui.console import ConsoleReporter

app = typer.Typer(help="ViCo - batch video compression with hardware encoder detection")


@app.command()
def compress(
    directory: Optional[Path] = typer.Argument(
        None,
        help="Directory to process (default: config value or current directory)"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    resolution: Optional[str] = typer.Option(None, "--res", "-r", help="Target height: 720, 1080 or 2160"),
    codec: Optional[str] = typer.Option(None, "--codec", help="Video codec family: 264 or 265"),
    quality: Optional[str] = typer.Option(None, "--crf", "-q", help="Quality value (CRF/CQ/QP, default 23)"),
    audio: Optional[str] = typer.Option(None, "--audio", help="Audio mode: copy, downmix or reencode"),
    downmix: bool = typer.Option(False, "--downmix", help="Shortcut for --audio downmix"),
    no_hw: bool = typer.Option(False, "--no-hw", help="Force the CPU encoder"),
    no_recursive: bool = typer.Option(False, "--no-recursive", help="Only process the top-level directory"),
    html: bool = typer.Option(False, "--html", help="Write vico_report.html into the target directory"),
    keep: bool = typer.Option(False, "--keep", "-k", help="Keep originals, write <name>_optimized.mp4"),
    subs: bool = typer.Option(False, "--subs", "-s", help="Download subtitles for files without any"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (default: <dir>/vico.log)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Compress every video in DIRECTORY to MP4, one file at a time."""
    try:
        config = load_config(config_path)
        # Flags only override when given
        config = apply_overrides(
            config,
            directory=directory.resolve() if directory is not None else None,
            resolution=resolution,
            codec=codec,
            quality=quality,
            audio_mode=AudioMode.DOWNMIX if downmix else audio,
            disable_hardware=True if no_hw else None,
            recursive=False if no_recursive else None,
            html_report=True if html else None,
            overwrite=False if keep else None,
            fetch_subtitles=True if subs else None,
            log_path=log_path,
            debug=True if debug else None,
        )
    except FileNotFoundError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except (ValueError, yaml.YAMLError) as exc:
        # pydantic's ValidationError is a ValueError
        typer.secho(f"Error: invalid configuration: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    # Nothing is created (not even the log) for a missing directory
    if not config.directory.is_dir():
        typer.secho(f"Error: Directory {config.directory} does not exist.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    logger = setup_logging(config.directory, debug=config.debug, log_path=config.log_path)
    logger.info(f"ViCo started: directory={config.directory}, recursive={config.recursive}")
    logger.info(
        f"Config: res={config.resolution}, codec={config.codec.value}, quality={config.quality}, "
        f"audio={config.audio_mode.value}, overwrite={config.overwrite}, subs={config.fetch_subtitles}, "
        f"no_hw={config.disable_hardware}, debug={config.debug}"
    )

    bus = EventBus()
    console = Console()
    ConsoleReporter(bus, console)
    if config.html_report:
        HtmlReport(bus, config.effective_report_path)

    cancel_event = threading.Event()
    orchestrator = Orchestrator(
        config=config,
        event_bus=bus,
        file_scanner=FileScanner(extensions=config.extensions, recursive=config.recursive),
        ffprobe_adapter=FFprobeAdapter(timeout_s=config.probe_timeout_s),
        ffmpeg_adapter=FFmpegAdapter(event_bus=bus, debug=config.debug),
        hardware_probe=HardwareProbe(),
        subtitle_fetcher=SubtitleFetcher(timeout_s=config.subtitle_timeout_s),
        housekeeper=HousekeepingService(),
        cancel_event=cancel_event,
    )
    install_signal_handlers(cancel_event)

    try:
        orchestrator.run()
    except TargetDirectoryError as exc:
        typer.secho(f"Error: {exc}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except (RunInterrupted, KeyboardInterrupt):
        typer.secho("Compression stopped by user", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)
    except Exception as exc:
        logger.exception(f"Fatal error: {exc}")
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if config.html_report:
        console.print(f"Report:   {config.effective_report_path}", markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
