"""FFmpeg/ffprobe/ffplay subprocess helpers."""

import json
import logging
import shutil
import subprocess
from pathlib import Path

import numpy as np

from audiocut.models import AudioFileInfo

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


class ProbeError(RuntimeError):
    """Raised when ffprobe cannot extract metadata from a file."""
    pass


class DecodeError(RuntimeError):
    """Raised when a file's sample stream cannot be decoded."""
    pass


class EncodingError(RuntimeError):
    """Raised when ffmpeg exits nonzero while encoding.

    ``stderr`` holds ffmpeg's diagnostic output verbatim.
    """

    def __init__(self, message: str, stderr: str = "", returncode: int | None = None):
        self.stderr = stderr
        self.returncode = returncode
        tail = stderr.strip()[-500:]
        super().__init__(f"{message}: {tail}" if tail else message)


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def have_ffplay() -> bool:
    return shutil.which("ffplay") is not None


def _int_field(value, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _float_field(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def probe(input_path: Path) -> AudioFileInfo:
    """Extract audio metadata via ffprobe."""
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Audio file not found: {input_path}")

    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        data = json.loads(result.stdout)
    except FileNotFoundError as e:
        raise ProbeError(f"ffprobe not available: {e}") from e
    except subprocess.CalledProcessError as e:
        raise ProbeError(
            f"ffprobe failed on {input_path.name} (rc={e.returncode})"
        ) from e
    except json.JSONDecodeError as e:
        raise ProbeError(f"ffprobe returned unreadable output for {input_path.name}") from e

    fmt = data.get("format") or {}
    audio_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "audio"), {}
    )

    duration = _float_field(fmt.get("duration"), _float_field(audio_stream.get("duration")))
    bit_rate = _int_field(audio_stream.get("bit_rate"), _int_field(fmt.get("bit_rate")))

    return AudioFileInfo(
        file_path=input_path,
        file_name=input_path.name,
        duration=max(duration, 0.0),
        format=input_path.suffix.lstrip(".").upper(),
        sample_rate=_int_field(audio_stream.get("sample_rate")),
        channels=_int_field(audio_stream.get("channels")),
        bit_rate=bit_rate // 1000,
    )


def decode_pcm(input_path: Path) -> tuple[np.ndarray, int]:
    """Decode the first audio stream to float32 PCM.

    Returns a ``(frames, channels)`` array and the native sample rate.
    """
    info = probe(input_path)
    if info.channels <= 0 or info.sample_rate <= 0:
        raise DecodeError(f"No decodable audio stream in {info.file_name}")

    cmd = [
        "ffmpeg",
        "-v", "error",
        "-i", str(input_path),
        "-vn",
        "-f", "f32le",
        "-acodec", "pcm_f32le",
        "-ac", str(info.channels),
        "-ar", str(info.sample_rate),
        "-",
    ]
    logger.debug("Decoding %s: %s", info.file_name, " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True)
    except OSError as e:
        raise DecodeError(f"Could not run ffmpeg: {e}") from e

    if result.returncode != 0:
        stderr = (result.stderr or b"").decode(errors="replace").strip()
        raise DecodeError(
            f"ffmpeg decode failed on {info.file_name} (rc={result.returncode}): {stderr[-300:]}"
        )

    raw = result.stdout or b""
    usable = len(raw) - len(raw) % (4 * info.channels)
    samples = np.frombuffer(raw[:usable], dtype="<f4").reshape(-1, info.channels)
    return samples, info.sample_rate


def transcode(
    input_path: Path,
    output_path: Path,
    *,
    bit_rate: int,
    sample_rate: int,
    start: float | None = None,
    duration: float | None = None,
    codec: str | None = None,
) -> None:
    """Re-encode *input_path* into *output_path*, overwriting it.

    ``start`` seeks the input before decoding; ``duration`` limits the output
    length. When ``codec`` is None ffmpeg picks one from the output extension.
    A half-written output file is left in place on failure.
    """
    cmd = ["ffmpeg", "-y"]
    if start is not None:
        cmd += ["-ss", f"{start:.3f}"]
    cmd += ["-i", str(input_path)]
    if duration is not None:
        cmd += ["-t", f"{duration:.3f}"]
    cmd += [
        "-vn",
        "-b:a", f"{bit_rate}k",
        "-ar", str(sample_rate),
    ]
    if codec:
        cmd += ["-acodec", codec]
    cmd.append(str(output_path))

    logger.debug("Encoding: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise FFmpegNotFoundError("ffmpeg not found on PATH") from e

    if result.returncode != 0:
        raise EncodingError(
            f"ffmpeg failed encoding {Path(output_path).name} (rc={result.returncode})",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )


def ffplay_command(input_path: Path, volume: float) -> list[str]:
    """Command line for a windowless ffplay run that exits at end of file."""
    return [
        "ffplay",
        "-nodisp",
        "-autoexit",
        "-loglevel", "quiet",
        "-volume", str(int(round(volume * 100))),
        str(input_path),
    ]
