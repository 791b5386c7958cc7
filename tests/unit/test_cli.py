import pytest
from unittest.mock import MagicMock
from typer.testing import CliRunner

from vico import main as vico_main
from vico.config.models import AudioMode, VideoCodec
from vico.domain.errors import RunInterrupted, TargetDirectoryError
from vico.domain.models import RunSummary


@pytest.fixture
def created(monkeypatch):
    """Replaces the orchestrator, logging and signal setup; records what main() built."""
    created = {"run_side_effect": None}

    class DummyOrchestrator:
        def __init__(self, config, event_bus, file_scanner, ffprobe_adapter, ffmpeg_adapter,
                     hardware_probe, subtitle_fetcher, housekeeper, cancel_event):
            created["config"] = config
            created["cancel_event"] = cancel_event
            created["file_scanner"] = file_scanner

        def run(self):
            created["ran"] = True
            if created["run_side_effect"] is not None:
                raise created["run_side_effect"]
            return RunSummary()

    def fake_setup_logging(log_dir, debug=False, log_path=None):
        created["log_dir"] = log_dir
        created["log_debug"] = debug
        created["log_path"] = log_path
        return MagicMock()

    monkeypatch.setattr(vico_main, "Orchestrator", DummyOrchestrator)
    monkeypatch.setattr(vico_main, "setup_logging", fake_setup_logging)
    monkeypatch.setattr(vico_main, "install_signal_handlers", lambda event: created.setdefault("signals", event))
    return created


def test_main_missing_directory_exits(tmp_path, created):
    runner = CliRunner()
    missing_dir = tmp_path / "missing"
    result = runner.invoke(vico_main.app, [str(missing_dir)])

    assert result.exit_code == 1
    assert "does not exist" in result.output
    assert "ran" not in created
    assert not missing_dir.exists()


def test_main_missing_config_file_exits(tmp_path, created):
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path), "--config", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_main_defaults(tmp_path, created):
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path)])

    assert result.exit_code == 0, result.output
    config = created["config"]
    assert config.directory == tmp_path.resolve()
    assert config.resolution == 1080
    assert config.codec == VideoCodec.H264
    assert config.quality == 23
    assert config.audio_mode == AudioMode.COPY
    assert config.overwrite is True
    assert config.recursive is True
    assert config.disable_hardware is False
    assert created["log_dir"] == tmp_path.resolve()
    assert created["signals"] is created["cancel_event"]


def test_main_applies_overrides(tmp_path, created):
    runner = CliRunner()
    log_file = tmp_path / "custom.log"
    result = runner.invoke(vico_main.app, [
        str(tmp_path), "-r", "720", "--codec", "265", "-q", "28", "--downmix", "--no-hw",
        "--no-recursive", "--keep", "--subs", "--html", "--log-path", str(log_file), "--debug",
    ])

    assert result.exit_code == 0, result.output
    config = created["config"]
    assert config.resolution == 720
    assert config.codec == VideoCodec.H265
    assert config.quality == 28
    assert config.audio_mode == AudioMode.DOWNMIX
    assert config.disable_hardware is True
    assert config.recursive is False
    assert config.overwrite is False
    assert config.fetch_subtitles is True
    assert config.html_report is True
    assert config.debug is True
    assert created["log_path"] == log_file
    assert created["log_debug"] is True
    assert created["file_scanner"].recursive is False
    assert "vico_report.html" in result.output


def test_main_invalid_values_fall_back_to_defaults(tmp_path, created):
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path), "--res", "480", "--codec", "av1", "--crf", "best"])

    assert result.exit_code == 0, result.output
    config = created["config"]
    assert config.resolution == 1080
    assert config.codec == VideoCodec.H264
    assert config.quality == 23


def test_main_config_file_is_overridden_by_flags(tmp_path, created, config_yaml_path):
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path), "--config", str(config_yaml_path), "-q", "19"])

    assert result.exit_code == 0, result.output
    config = created["config"]
    assert config.resolution == 720
    assert config.codec == VideoCodec.H265
    assert config.quality == 19


def test_main_interrupt_exits_130(tmp_path, created):
    created["run_side_effect"] = RunInterrupted()
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path)])

    assert result.exit_code == 130


def test_main_target_directory_error_exits_1(tmp_path, created):
    created["run_side_effect"] = TargetDirectoryError(tmp_path / "gone")
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path)])

    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_main_unexpected_error_exits_1(tmp_path, created):
    created["run_side_effect"] = RuntimeError("disk on fire")
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path)])

    assert result.exit_code == 1
    assert "disk on fire" in result.output


def test_main_out_of_range_quality_is_a_clean_error(tmp_path, created):
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path), "--crf", "99"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "invalid configuration" in result.output
    assert "ran" not in created


def test_main_unparsable_config_file_is_a_clean_error(tmp_path, created):
    conf = tmp_path / "broken.yaml"
    conf.write_text("recursive: [1, 2\n")
    runner = CliRunner()
    result = runner.invoke(vico_main.app, [str(tmp_path), "--config", str(conf)])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "invalid configuration" in result.output
    assert "ran" not in created
