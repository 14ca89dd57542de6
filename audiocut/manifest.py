"""JSON export manifest — the contract between CLI/API and the export engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from audiocut.models import AudioFormat, AudioSegment


@dataclass
class EncoderConfig:
    """Encoder settings; ``format`` None means "follow the output extension"."""

    format: AudioFormat | None = None
    bit_rate: int = 192
    sample_rate: int = 44100


@dataclass
class Manifest:
    """Top-level export manifest."""

    input: Path
    output: Path
    version: str = "1"
    segment: AudioSegment | None = None
    encoder: EncoderConfig = field(default_factory=EncoderConfig)

    @property
    def output_format(self) -> AudioFormat:
        return self.encoder.format or AudioFormat.from_path(self.output, AudioFormat.MP3)


def parse_encoder(data: dict) -> EncoderConfig:
    fmt = data.get("format")
    return EncoderConfig(
        format=AudioFormat.from_name(fmt) if fmt else None,
        bit_rate=int(data.get("bit_rate", 192)),
        sample_rate=int(data.get("sample_rate", 44100)),
    )


def parse_segment(data: dict) -> AudioSegment:
    if "start" not in data or "end" not in data:
        raise ValueError("Segment must contain 'start' and 'end' fields")
    return AudioSegment(start_time=float(data["start"]), end_time=float(data["end"]))


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    segment = parse_segment(data["segment"]) if data.get("segment") else None
    encoder = parse_encoder(data["export"]) if "export" in data else EncoderConfig()

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        segment=segment,
        encoder=encoder,
    )
