"""Export editor — trims and re-encodes audio through ffmpeg."""

import logging
from pathlib import Path

from audiocut import ffutil
from audiocut.models import AudioFormat, AudioSegment, ExportOptions

logger = logging.getLogger(__name__)


def _require_input(input_path: Path) -> Path:
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Audio file not found: {input_path}")
    return input_path


def extract_segment(
    input_path: Path,
    output_path: Path,
    segment: AudioSegment,
    options: ExportOptions,
) -> Path:
    """Write ``segment`` of *input_path* to *output_path*.

    The codec follows *output_path*'s extension, not ``options.format``; pass
    an output path whose extension matches the codec you want.
    """
    input_path = _require_input(input_path)
    output_path = Path(output_path)
    fmt = AudioFormat.from_path(output_path)

    logger.info(
        "Extracting %.3fs-%.3fs of %s -> %s",
        segment.start_time, segment.end_time, input_path.name, output_path.name,
    )
    ffutil.transcode(
        input_path,
        output_path,
        bit_rate=options.bit_rate,
        sample_rate=options.sample_rate,
        start=segment.start_time,
        duration=segment.duration,
        codec=fmt.codec if fmt else None,
    )
    return output_path


def export_audio(input_path: Path, output_path: Path, options: ExportOptions) -> Path:
    """Re-encode the whole of *input_path* using ``options.format``'s codec."""
    input_path = _require_input(input_path)
    output_path = Path(output_path)

    logger.info(
        "Exporting %s -> %s (%s, %dk, %d Hz)",
        input_path.name, output_path.name, options.format.name,
        options.bit_rate, options.sample_rate,
    )
    ffutil.transcode(
        input_path,
        output_path,
        bit_rate=options.bit_rate,
        sample_rate=options.sample_rate,
        codec=options.format.codec,
    )
    return output_path
