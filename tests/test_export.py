"""Unit tests for the export editor."""

import shutil
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from audiocut import ffutil
from audiocut.analyzers.waveform import analyze
from audiocut.editors.export import export_audio, extract_segment
from audiocut.models import AudioFormat, AudioSegment, ExportOptions


class TestExtractSegment:
    @patch("audiocut.editors.export.ffutil.transcode")
    def test_seek_and_duration(self, mock_transcode, audio_file, tmp_path):
        out = tmp_path / "cut.mp3"
        opts = ExportOptions(output_path=out, bit_rate=192, sample_rate=44100)

        result = extract_segment(audio_file, out, AudioSegment(2.0, 5.0), opts)

        assert result == out
        kwargs = mock_transcode.call_args.kwargs
        assert kwargs["start"] == 2.0
        assert kwargs["duration"] == 3.0
        assert kwargs["bit_rate"] == 192
        assert kwargs["sample_rate"] == 44100
        assert kwargs["codec"] == "libmp3lame"

    @patch("audiocut.editors.export.ffutil.transcode")
    def test_codec_follows_output_extension_not_options(self, mock_transcode, audio_file, tmp_path):
        out = tmp_path / "cut.flac"
        opts = ExportOptions(output_path=out, format=AudioFormat.MP3)
        extract_segment(audio_file, out, AudioSegment(0.0, 1.0), opts)
        assert mock_transcode.call_args.kwargs["codec"] == "flac"

    @patch("audiocut.editors.export.ffutil.transcode")
    def test_unknown_extension_leaves_codec_to_ffmpeg(self, mock_transcode, audio_file, tmp_path):
        out = tmp_path / "cut.opus"
        extract_segment(audio_file, out, AudioSegment(0.0, 1.0), ExportOptions(output_path=out))
        assert mock_transcode.call_args.kwargs["codec"] is None

    def test_missing_input(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            extract_segment(
                tmp_path / "nope.wav", tmp_path / "out.mp3",
                AudioSegment(0.0, 1.0), ExportOptions(output_path=tmp_path / "out.mp3"),
            )


class TestExportAudio:
    @pytest.mark.parametrize(
        "fmt, codec",
        [(AudioFormat.OGG, "libvorbis"), (AudioFormat.M4A, "aac"), (AudioFormat.WAV, "pcm_s16le")],
    )
    @patch("audiocut.editors.export.ffutil.transcode")
    def test_codec_from_options(self, mock_transcode, fmt, codec, audio_file, tmp_path):
        out = tmp_path / "full.bin"
        export_audio(audio_file, out, ExportOptions(output_path=out, format=fmt))
        kwargs = mock_transcode.call_args.kwargs
        assert kwargs["codec"] == codec
        assert "start" not in kwargs
        assert "duration" not in kwargs

    def test_missing_input(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            export_audio(tmp_path / "nope.wav", tmp_path / "out.mp3",
                         ExportOptions(output_path=tmp_path / "out.mp3"))


def _have_encoder(name: str) -> bool:
    if shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None:
        return False
    result = subprocess.run(
        ["ffmpeg", "-hide_banner", "-encoders"], capture_output=True, text=True
    )
    return name in result.stdout


@pytest.fixture
def sine_wav(tmp_path: Path) -> Path:
    """Ten seconds of a 440 Hz stereo tone rendered by ffmpeg."""
    path = tmp_path / "sine.wav"
    subprocess.run(
        [
            "ffmpeg", "-y",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=10",
            "-ac", "2", "-ar", "44100", "-c:a", "pcm_s16le",
            str(path),
        ],
        capture_output=True,
        check=True,
    )
    return path


@pytest.mark.skipif(not _have_encoder("libmp3lame"), reason="ffmpeg with libmp3lame not installed")
class TestRealEncode:
    """Runs the actual ffmpeg command lines; duration checks allow one MP3 frame of slack."""

    def test_envelope_length(self, sine_wav):
        values = analyze(sine_wav, 1000)
        assert len(values) == 1000
        assert values.min() > 0.0

    def test_segment_duration(self, sine_wav, tmp_path):
        assert ffutil.probe(sine_wav).duration == pytest.approx(10.0, abs=0.05)
        out = tmp_path / "cut.mp3"
        opts = ExportOptions(output_path=out, bit_rate=192, sample_rate=44100)

        extract_segment(sine_wav, out, AudioSegment(2.0, 5.0), opts)

        info = ffutil.probe(out)
        assert abs(info.duration - 3.0) <= 0.05
        assert info.sample_rate == 44100

    def test_zero_length_segment(self, sine_wav, tmp_path):
        out = tmp_path / "empty.wav"
        extract_segment(sine_wav, out, AudioSegment(0.0, 0.0), ExportOptions(output_path=out))
        assert out.exists()
        assert ffutil.probe(out).duration <= 0.05

    def test_full_export(self, sine_wav, tmp_path):
        out = tmp_path / "full.mp3"
        export_audio(sine_wav, out, ExportOptions(output_path=out))
        assert abs(ffutil.probe(out).duration - 10.0) <= 0.05
