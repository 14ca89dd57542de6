"""Playback backends behind one capability interface.

``NativeBackend`` decodes the file itself and feeds an output device, so it
can pause, seek and report its position. ``ProcessBackend`` hands the file to
an ffplay process and can do none of those; the engine fills the gaps.
"""

import logging
import os
import subprocess
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

import numpy as np

from audiocut import ffutil
from audiocut.playback.clock import clamp

logger = logging.getLogger(__name__)

BACKEND_ENV = "AUDIOCUT_PLAYBACK_BACKEND"


class PlaybackBackend(ABC):
    name = "base"
    supports_pause = True
    supports_seek = True
    reports_position = True

    @abstractmethod
    def open(self, path: Path) -> None:
        ...

    @abstractmethod
    def start(self, volume: float, on_finished: Callable[[], None]) -> None:
        """Begin output; ``on_finished`` fires once if playback ends on its own."""

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def seek(self, seconds: float) -> None:
        ...

    @abstractmethod
    def position(self) -> float:
        ...

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class SoundDeviceOutput:
    """Opens PortAudio output streams through sounddevice."""

    def __init__(self, device: int | str | None = None):
        import sounddevice as sd

        self._sd = sd
        self.device = device
        self.CallbackStop = sd.CallbackStop

    def open_stream(self, samplerate: int, channels: int, callback, finished_callback):
        return self._sd.OutputStream(
            samplerate=samplerate,
            channels=channels,
            dtype="float32",
            device=self.device,
            callback=callback,
            finished_callback=finished_callback,
        )


class NativeBackend(PlaybackBackend):
    name = "native"

    def __init__(self, output: SoundDeviceOutput | None = None):
        self._output = output
        self._samples: np.ndarray | None = None
        self._sample_rate = 0
        self._cursor = 0
        self._volume = 1.0
        self._stream = None
        self._reached_end = False
        self._on_finished: Callable[[], None] | None = None
        self._lock = threading.Lock()

    def open(self, path: Path) -> None:
        samples, sample_rate = ffutil.decode_pcm(path)
        with self._lock:
            self._samples = np.ascontiguousarray(samples, dtype=np.float32)
            self._sample_rate = sample_rate
            self._cursor = 0
        logger.debug(
            "Decoded %s: %d frames x %d ch @ %d Hz",
            Path(path).name, self._samples.shape[0], self._samples.shape[1], sample_rate,
        )

    def start(self, volume: float, on_finished: Callable[[], None]) -> None:
        if self._samples is None:
            return
        self._close_stream()
        if self._output is None:
            self._output = SoundDeviceOutput()
        with self._lock:
            self._volume = volume
            self._reached_end = False
            self._on_finished = on_finished
        self._stream = self._output.open_stream(
            samplerate=self._sample_rate,
            channels=self._samples.shape[1],
            callback=self._callback,
            finished_callback=self._stream_finished,
        )
        self._stream.start()

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug("Output stream status: %s", status)
        with self._lock:
            start = self._cursor
            chunk = self._samples[start:start + frames]
            self._cursor = start + len(chunk)
            volume = self._volume
        n = len(chunk)
        outdata[:n] = chunk * volume
        outdata[n:] = 0
        if n < frames:
            self._reached_end = True
            raise self._output.CallbackStop

    def _stream_finished(self) -> None:
        # Runs on the audio thread; the engine reacts on its own thread so it
        # can close this stream without waiting on itself.
        if not self._reached_end or self._on_finished is None:
            return
        callback, self._on_finished = self._on_finished, None
        threading.Thread(target=callback, name="audiocut-native-eof", daemon=True).start()

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        self._on_finished = None
        stream.stop()
        stream.close()

    def pause(self) -> None:
        self._close_stream()

    def stop(self) -> None:
        self._close_stream()
        with self._lock:
            self._cursor = 0

    def seek(self, seconds: float) -> None:
        if self._samples is None:
            return
        frames = self._samples.shape[0]
        with self._lock:
            self._cursor = int(clamp(seconds * self._sample_rate, 0, frames))

    def position(self) -> float:
        if not self._sample_rate:
            return 0.0
        with self._lock:
            return self._cursor / self._sample_rate

    def set_volume(self, volume: float) -> None:
        with self._lock:
            self._volume = volume

    def close(self) -> None:
        self._close_stream()
        with self._lock:
            self._samples = None
            self._cursor = 0


class ProcessBackend(PlaybackBackend):
    """Plays through a detached ffplay process.

    ffplay offers no control channel here: every start plays the file from its
    beginning, volume is fixed for the life of the process, and pausing means
    stopping the process.
    """

    name = "process"
    supports_pause = False
    supports_seek = False
    reports_position = False

    def __init__(self, popen=subprocess.Popen, terminate_timeout: float = 1.0):
        self._popen = popen
        self._terminate_timeout = terminate_timeout
        self._path: Path | None = None
        self._process: subprocess.Popen | None = None
        self._lock = threading.Lock()

    @property
    def is_alive(self) -> bool:
        proc = self._process
        return proc is not None and proc.poll() is None

    def open(self, path: Path) -> None:
        self.stop()
        self._path = Path(path)

    def start(self, volume: float, on_finished: Callable[[], None]) -> None:
        if self._path is None:
            return
        self.stop()
        cmd = ffutil.ffplay_command(self._path, volume)
        logger.debug("Launching player: %s", " ".join(cmd))
        proc = self._popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        with self._lock:
            self._process = proc
        threading.Thread(
            target=self._watch,
            args=(proc, on_finished),
            name="audiocut-ffplay-watch",
            daemon=True,
        ).start()

    def _watch(self, proc, on_finished: Callable[[], None]) -> None:
        returncode = proc.wait()
        with self._lock:
            # stop() detaches the handle before terminating, so a missing
            # handle means the exit was requested
            if proc is not self._process:
                return
            self._process = None
        logger.debug("ffplay exited (rc=%s)", returncode)
        on_finished()

    def pause(self) -> None:
        self.stop()

    def stop(self) -> None:
        with self._lock:
            proc, self._process = self._process, None
        if proc is None:
            return
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=self._terminate_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("ffplay did not exit after terminate; killing it")
                proc.kill()
                proc.wait()

    def seek(self, seconds: float) -> None:
        pass

    def position(self) -> float:
        return 0.0

    def set_volume(self, volume: float) -> None:
        # The running process keeps its volume; the next start() picks up the new one
        pass

    def close(self) -> None:
        self.stop()
        self._path = None


def native_output_available() -> bool:
    """True when sounddevice loads and there is a default output device."""
    try:
        import sounddevice as sd
    except OSError as e:
        logger.debug("sounddevice unavailable: %s", e)
        return False
    try:
        sd.query_devices(kind="output")
    except (sd.PortAudioError, ValueError) as e:
        logger.debug("No audio output device: %s", e)
        return False
    return True


def select_backend() -> PlaybackBackend:
    """Pick a backend from $AUDIOCUT_PLAYBACK_BACKEND or platform capability."""
    choice = os.environ.get(BACKEND_ENV, "").strip().lower()
    if choice == "native":
        return NativeBackend()
    if choice == "process":
        return ProcessBackend()
    if choice:
        raise ValueError(f"{BACKEND_ENV} must be 'native' or 'process', got {choice!r}")
    if native_output_available():
        return NativeBackend()
    if not ffutil.have_ffplay():
        logger.warning("No audio output device and no ffplay on PATH; playback will fail")
    return ProcessBackend()
