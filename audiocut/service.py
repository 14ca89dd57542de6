"""Non-blocking facade over probing, waveform analysis and export.

Every call runs on a worker thread and returns a ``concurrent.futures.Future``
so a UI loop never waits on ffmpeg. There is no cancellation; a submitted job
runs to completion.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from audiocut import ffutil
from audiocut.analyzers import waveform
from audiocut.editors import export
from audiocut.models import AudioSegment, ExportOptions


class AudioService:
    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="audiocut-worker"
        )

    def load_file(self, path: Path) -> Future:
        """Future resolving to the file's AudioFileInfo."""
        return self._executor.submit(ffutil.probe, Path(path))

    def generate_waveform(
        self, path: Path, sample_count: int = waveform.DEFAULT_SAMPLE_COUNT
    ) -> Future:
        return self._executor.submit(waveform.analyze, Path(path), sample_count)

    def extract_segment(
        self,
        input_path: Path,
        output_path: Path,
        segment: AudioSegment,
        options: ExportOptions,
    ) -> Future:
        return self._executor.submit(
            export.extract_segment, Path(input_path), Path(output_path), segment, options
        )

    def export_audio(self, input_path: Path, output_path: Path, options: ExportOptions) -> Future:
        return self._executor.submit(
            export.export_audio, Path(input_path), Path(output_path), options
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AudioService":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
