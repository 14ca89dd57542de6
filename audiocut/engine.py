"""Orchestrator — runs the export pipeline defined by a Manifest."""

import logging
from typing import Callable

from audiocut import ffutil
from audiocut.editors.export import export_audio, extract_segment
from audiocut.manifest import Manifest
from audiocut.models import ExportOptions, ExportResult

logger = logging.getLogger(__name__)

# Segments may overrun the probed duration by up to one encoder frame
DURATION_TOLERANCE = 0.05


def process(
    manifest: Manifest,
    on_progress: Callable[[str, float], None] | None = None,
) -> ExportResult:
    """Execute the export pipeline.

    Args:
        manifest: Validated export manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    ffutil.check_ffmpeg()

    _progress("Probing audio metadata", 0.0)
    info = ffutil.probe(manifest.input)
    _progress("Probing audio metadata", 0.1)

    segment = manifest.segment
    if segment is not None and segment.end_time > info.duration + DURATION_TOLERANCE:
        raise ValueError(
            f"Segment ends at {segment.end_time:.3f}s but {info.file_name} "
            f"is only {info.duration:.3f}s long"
        )

    options = ExportOptions(
        output_path=manifest.output,
        format=manifest.output_format,
        bit_rate=manifest.encoder.bit_rate,
        sample_rate=manifest.encoder.sample_rate,
    )

    if segment is not None:
        _progress("Extracting segment", 0.2)
        extract_segment(manifest.input, manifest.output, segment, options)
    else:
        _progress(f"Encoding {options.format.name}", 0.2)
        export_audio(manifest.input, manifest.output, options)

    _progress("Verifying result", 0.9)
    final = ffutil.probe(manifest.output)
    logger.info(
        "Exported %s (%.3fs -> %.3fs)", final.file_name, info.duration, final.duration
    )

    _progress("Done", 1.0)
    return ExportResult(
        output_path=manifest.output,
        duration_original=info.duration,
        duration_final=final.duration,
        segment=segment,
    )
