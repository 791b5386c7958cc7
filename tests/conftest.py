import pytest
import yaml
from pathlib import Path
from vico.config.models import AppConfig
from vico.domain.models import FileRecord
from vico.infrastructure.event_bus import EventBus

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config(test_input_dir):
    """Returns an AppConfig pointing at the temporary input directory."""
    return AppConfig(
        directory=test_input_dir,
        recursive=True,
        resolution=1080,
        codec="264",
        quality=23,
        audio_mode="copy",
        overwrite=True,
        disable_hardware=True,
        subtitle_language="en",
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "vico.yaml"

    content = {
        'resolution': '720p',
        'codec': 'hevc',
        'quality': 28,
        'audio_mode': 'downmix',
        'recursive': False,
        'extensions': ['mp4', 'MKV'],
        'debug': False,
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def test_input_dir(tmp_path):
    """Creates a test input directory."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return input_dir

@pytest.fixture
def dummy_video_files(test_input_dir):
    """Creates dummy video files in test input directory."""
    files = []

    for i in range(3):
        f = test_input_dir / f"video{i}.mp4"
        f.write_bytes(b"dummy video content " * 100)  # ~2KB
        files.append(f)

    # Create a subdirectory with a file
    subdir = test_input_dir / "subdir"
    subdir.mkdir()
    f = subdir / "subvideo.mkv"
    f.write_bytes(b"dummy video content " * 100)
    files.append(f)

    return files

@pytest.fixture
def make_record():
    """Factory for FileRecord objects (defaults: 1080p stereo video)."""
    def _make(path: Path, size_bytes: int = 2000, **kwargs) -> FileRecord:
        values = dict(is_video=True, audio_channels=2, has_subtitles=False, width=1920, height=1080)
        values.update(kwargs)
        return FileRecord(path=path, size_bytes=size_bytes, **values)
    return _make

# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
