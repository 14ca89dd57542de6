"""Shared test fixtures."""

from pathlib import Path

import pytest

from audiocut.models import AudioFileInfo

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    """An existing file; its contents never reach a real decoder in unit tests."""
    path = tmp_path / "song.wav"
    path.write_bytes(b"RIFF----WAVEfmt ")
    return path


def make_info(path: Path, duration: float = 10.0, channels: int = 2) -> AudioFileInfo:
    return AudioFileInfo(
        file_path=path,
        file_name=path.name,
        duration=duration,
        format=path.suffix.lstrip(".").upper(),
        sample_rate=44100,
        channels=channels,
        bit_rate=1411,
    )
