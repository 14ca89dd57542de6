"""Unit tests for ffutil — metadata parsing and subprocess wrappers."""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from audiocut.ffutil import (
    DecodeError,
    EncodingError,
    FFmpegNotFoundError,
    ProbeError,
    decode_pcm,
    ffplay_command,
    probe,
    transcode,
)

from conftest import make_info


# ---------------------------------------------------------------------------
# probe (mocked subprocess)
# ---------------------------------------------------------------------------

PROBE_JSON = {
    "format": {"duration": "10.000000", "bit_rate": "1411200"},
    "streams": [
        {
            "codec_type": "audio",
            "codec_name": "pcm_s16le",
            "sample_rate": "44100",
            "channels": 2,
            "bit_rate": "1411200",
        },
    ],
}


class TestProbe:
    @patch("audiocut.ffutil.subprocess.run")
    def test_basic(self, mock_run, audio_file):
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(PROBE_JSON))
        info = probe(audio_file)
        assert info.duration == 10.0
        assert info.sample_rate == 44100
        assert info.channels == 2
        assert info.bit_rate == 1411
        assert info.format == "WAV"
        assert info.file_name == "song.wav"

    @patch("audiocut.ffutil.subprocess.run")
    def test_missing_bitrate_is_zero(self, mock_run, audio_file):
        data = {
            "format": {"duration": "3.5"},
            "streams": [{"codec_type": "audio", "sample_rate": "48000", "channels": 1}],
        }
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(data))
        info = probe(audio_file)
        assert info.bit_rate == 0
        assert info.duration == 3.5

    @patch("audiocut.ffutil.subprocess.run")
    def test_container_bitrate_fallback(self, mock_run, audio_file):
        data = {
            "format": {"duration": "3.5", "bit_rate": "128000"},
            "streams": [{"codec_type": "audio", "sample_rate": "48000", "channels": 1}],
        }
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(data))
        assert probe(audio_file).bit_rate == 128

    @patch("audiocut.ffutil.subprocess.run")
    def test_no_audio_stream_reports_zeros(self, mock_run, audio_file):
        data = {"format": {}, "streams": [{"codec_type": "video"}]}
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(data))
        info = probe(audio_file)
        assert (info.duration, info.sample_rate, info.channels, info.bit_rate) == (0.0, 0, 0, 0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            probe(tmp_path / "nope.mp3")

    @patch("audiocut.ffutil.subprocess.run")
    def test_ffprobe_failure(self, mock_run, audio_file):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["ffprobe"])
        with pytest.raises(ProbeError, match="ffprobe failed"):
            probe(audio_file)

    @patch("audiocut.ffutil.subprocess.run")
    def test_ffprobe_missing(self, mock_run, audio_file):
        mock_run.side_effect = FileNotFoundError("ffprobe")
        with pytest.raises(ProbeError, match="not available"):
            probe(audio_file)

    @patch("audiocut.ffutil.subprocess.run")
    def test_garbage_output(self, mock_run, audio_file):
        mock_run.return_value = MagicMock(returncode=0, stdout="not json")
        with pytest.raises(ProbeError, match="unreadable"):
            probe(audio_file)


# ---------------------------------------------------------------------------
# decode_pcm (mocked probe + subprocess)
# ---------------------------------------------------------------------------

class TestDecodePcm:
    @patch("audiocut.ffutil.subprocess.run")
    @patch("audiocut.ffutil.probe")
    def test_reshapes_interleaved_frames(self, mock_probe, mock_run, audio_file):
        mock_probe.return_value = make_info(audio_file, channels=2)
        pcm = np.array([0.1, -0.1, 0.2, -0.2, 0.3, -0.3], dtype="<f4")
        mock_run.return_value = MagicMock(returncode=0, stdout=pcm.tobytes(), stderr=b"")

        samples, rate = decode_pcm(audio_file)

        assert rate == 44100
        assert samples.shape == (3, 2)
        assert samples[2, 1] == pytest.approx(-0.3)
        cmd = mock_run.call_args[0][0]
        assert cmd[cmd.index("-f") + 1] == "f32le"
        assert cmd[cmd.index("-ac") + 1] == "2"

    @patch("audiocut.ffutil.subprocess.run")
    @patch("audiocut.ffutil.probe")
    def test_partial_trailing_frame_dropped(self, mock_probe, mock_run, audio_file):
        mock_probe.return_value = make_info(audio_file, channels=2)
        pcm = np.array([0.1, 0.1, 0.2], dtype="<f4")
        mock_run.return_value = MagicMock(returncode=0, stdout=pcm.tobytes(), stderr=b"")
        samples, _ = decode_pcm(audio_file)
        assert samples.shape == (1, 2)

    @patch("audiocut.ffutil.subprocess.run")
    @patch("audiocut.ffutil.probe")
    def test_nonzero_exit(self, mock_probe, mock_run, audio_file):
        mock_probe.return_value = make_info(audio_file)
        mock_run.return_value = MagicMock(returncode=1, stdout=b"", stderr=b"Invalid data found")
        with pytest.raises(DecodeError, match="Invalid data found"):
            decode_pcm(audio_file)

    @patch("audiocut.ffutil.probe")
    def test_no_audio_stream(self, mock_probe, audio_file):
        mock_probe.return_value = make_info(audio_file, channels=0)
        with pytest.raises(DecodeError, match="No decodable audio"):
            decode_pcm(audio_file)


# ---------------------------------------------------------------------------
# transcode (mocked subprocess, command shape only)
# ---------------------------------------------------------------------------

class TestTranscode:
    @patch("audiocut.ffutil.subprocess.run")
    def test_segment_command(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stderr="")
        transcode(
            Path("in.wav"), Path("out.mp3"),
            bit_rate=192, sample_rate=44100, start=2.0, duration=3.0, codec="libmp3lame",
        )
        cmd = mock_run.call_args[0][0]
        assert cmd[:2] == ["ffmpeg", "-y"]
        # seek is an input option, so it must precede -i
        assert cmd.index("-ss") < cmd.index("-i")
        assert cmd[cmd.index("-ss") + 1] == "2.000"
        assert cmd[cmd.index("-t") + 1] == "3.000"
        assert cmd[cmd.index("-b:a") + 1] == "192k"
        assert cmd[cmd.index("-ar") + 1] == "44100"
        assert cmd[cmd.index("-acodec") + 1] == "libmp3lame"
        assert cmd[-1] == "out.mp3"

    @patch("audiocut.ffutil.subprocess.run")
    def test_full_export_omits_seek_and_limit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stderr="")
        transcode(Path("in.wav"), Path("out.ogg"), bit_rate=160, sample_rate=48000)
        cmd = mock_run.call_args[0][0]
        assert "-ss" not in cmd
        assert "-t" not in cmd
        assert "-acodec" not in cmd

    @patch("audiocut.ffutil.subprocess.run")
    def test_failure_carries_stderr(self, mock_run):
        stderr = "Unknown encoder 'libmp3lame'\n"
        mock_run.return_value = MagicMock(returncode=1, stderr=stderr)
        with pytest.raises(EncodingError, match="Unknown encoder") as excinfo:
            transcode(Path("in.wav"), Path("out.mp3"), bit_rate=192, sample_rate=44100)
        assert excinfo.value.stderr == stderr
        assert excinfo.value.returncode == 1

    @patch("audiocut.ffutil.subprocess.run")
    def test_missing_ffmpeg(self, mock_run):
        mock_run.side_effect = FileNotFoundError("ffmpeg")
        with pytest.raises(FFmpegNotFoundError):
            transcode(Path("in.wav"), Path("out.mp3"), bit_rate=192, sample_rate=44100)


class TestFfplayCommand:
    def test_flags_and_volume(self):
        cmd = ffplay_command(Path("song.wav"), 0.75)
        assert cmd[0] == "ffplay"
        assert "-nodisp" in cmd
        assert "-autoexit" in cmd
        assert cmd[cmd.index("-volume") + 1] == "75"
        assert cmd[-1] == "song.wav"
