"""Shared data types used across audiocut."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class AudioFormat(Enum):
    """Export container/codec choices."""

    MP3 = "mp3"
    WAV = "wav"
    FLAC = "flac"
    AAC = "aac"
    OGG = "ogg"
    M4A = "m4a"

    @property
    def codec(self) -> str:
        return _CODECS[self]

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "AudioFormat":
        """Look up a format by name, case-insensitively ("mp3", "FLAC", ".ogg")."""
        try:
            return cls(name.strip().lstrip(".").lower())
        except ValueError:
            raise ValueError(f"Unsupported audio format: {name!r}") from None

    @classmethod
    def from_path(cls, path: str | Path, default: "AudioFormat | None" = None) -> "AudioFormat | None":
        """Return the format implied by *path*'s extension, or *default*."""
        suffix = Path(path).suffix.lstrip(".").lower()
        try:
            return cls(suffix)
        except ValueError:
            return default


_CODECS = {
    AudioFormat.MP3: "libmp3lame",
    AudioFormat.AAC: "aac",
    AudioFormat.M4A: "aac",
    # ffmpeg's native "vorbis" encoder is experimental and needs -strict -2
    AudioFormat.OGG: "libvorbis",
    AudioFormat.WAV: "pcm_s16le",
    AudioFormat.FLAC: "flac",
}


@dataclass(frozen=True)
class AudioFileInfo:
    """Metadata extracted from an audio file via ffprobe.

    Fields the container does not carry are reported as 0.
    """

    file_path: Path
    file_name: str
    duration: float = 0.0
    format: str = ""
    sample_rate: int = 0
    channels: int = 0
    bit_rate: int = 0


@dataclass
class AudioSegment:
    """A start/end time pair in seconds."""

    start_time: float
    end_time: float

    def __post_init__(self) -> None:
        if self.start_time < 0:
            raise ValueError(f"Segment start must be >= 0, got {self.start_time}")
        if self.end_time < self.start_time:
            raise ValueError(
                f"Segment end ({self.end_time}) is before its start ({self.start_time})"
            )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @classmethod
    def full(cls, duration: float) -> "AudioSegment":
        return cls(start_time=0.0, end_time=max(duration, 0.0))

    def with_start(self, start: float, file_duration: float) -> "AudioSegment":
        """Move the start point; an end left behind the new start jumps to EOF."""
        start = max(start, 0.0)
        end = self.end_time
        if start > end:
            end = max(file_duration, start)
        return AudioSegment(start_time=start, end_time=end)

    def with_end(self, end: float, file_duration: float) -> "AudioSegment":
        """Move the end point; a start left after the new end resets to 0."""
        end = max(end, 0.0)
        if file_duration > 0:
            end = min(end, file_duration)
        start = self.start_time
        if end < start:
            start = 0.0
        return AudioSegment(start_time=start, end_time=end)


@dataclass
class ExportOptions:
    """Encoder settings for segment extraction and full exports."""

    output_path: Path
    format: AudioFormat = AudioFormat.MP3
    bit_rate: int = 192  # kbps
    sample_rate: int = 44100  # Hz


class PlaybackState(Enum):
    UNLOADED = "unloaded"
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class PositionSnapshot:
    """Playback position at the moment it was queried."""

    current_position: float
    total_duration: float


@dataclass
class ExportResult:
    output_path: Path
    duration_original: float = 0.0
    duration_final: float = 0.0
    segment: AudioSegment | None = None


def format_timestamp(seconds: float) -> str:
    """Format seconds as hh:mm:ss.fff for status lines."""
    seconds = max(seconds, 0.0)
    total_ms = int(round(seconds * 1000))
    h, rem = divmod(total_ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms = divmod(rem, 1000)
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def suggested_output_path(input_path: Path, fmt: AudioFormat = AudioFormat.MP3) -> Path:
    """Default export target: ``<stem>_cut.<ext>`` beside the input."""
    input_path = Path(input_path)
    return input_path.with_name(f"{input_path.stem}_cut.{fmt.extension}")
