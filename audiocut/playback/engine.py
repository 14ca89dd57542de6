"""Transport state machine over interchangeable playback backends.

States run ``UNLOADED -> STOPPED <-> PLAYING <-> PAUSED`` and ``stop()`` returns
to ``STOPPED`` at position 0 from anywhere. Transport calls are meant to come
from one caller at a time; notifications arrive on a separate dispatcher
thread.

With a ``ProcessBackend`` the engine fakes what ffplay cannot do:

* position is wall-clock time since ``play()`` plus the position play started
  from (see ``PositionClock``);
* ``pause()`` kills the player and freezes that position. The next ``play()``
  reports the frozen position, but the player itself restarts from the start
  of the file;
* ``seek()`` does nothing;
* a volume change only reaches the player at the next ``play()``.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from audiocut import ffutil
from audiocut.models import AudioFileInfo, PlaybackState, PositionSnapshot
from audiocut.playback.backends import PlaybackBackend, select_backend
from audiocut.playback.clock import PositionClock, clamp
from audiocut.playback.events import PLAYBACK_STOPPED, POSITION_CHANGED, Notifier

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.1
DEFAULT_VOLUME = 0.5


class _Ticker(threading.Thread):
    def __init__(self, interval: float, tick: Callable[["_Ticker"], None]):
        super().__init__(name="audiocut-ticker", daemon=True)
        self._interval = interval
        self._tick = tick
        self._cancelled = threading.Event()

    def run(self) -> None:
        while not self._cancelled.is_set():
            self._tick(self)
            self._cancelled.wait(self._interval)

    def cancel(self) -> None:
        self._cancelled.set()


class PlaybackEngine:
    def __init__(
        self,
        backend_factory: Callable[[], PlaybackBackend] = select_backend,
        clock: Callable[[], float] = time.monotonic,
        prober: Callable[[Path], AudioFileInfo] = ffutil.probe,
        tick_interval: float = TICK_INTERVAL,
    ):
        self._backend_factory = backend_factory
        self._clock = clock
        self._prober = prober
        self._tick_interval = tick_interval

        self._lock = threading.RLock()
        self._state = PlaybackState.UNLOADED
        self._path: Path | None = None
        self._duration = 0.0
        self._volume = DEFAULT_VOLUME
        self._backend: PlaybackBackend | None = None
        self._frozen_position = 0.0
        self._position_clock: PositionClock | None = None
        self._generation = 0
        self._ticker: _Ticker | None = None
        self._closed = False

        self._notifier = Notifier()
        self._loader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="audiocut-load")

    # -- notifications -----------------------------------------------------

    def on_position_changed(self, handler: Callable[[PositionSnapshot], None]) -> None:
        self._notifier.connect(POSITION_CHANGED, handler)

    def on_playback_stopped(self, handler: Callable[[], None]) -> None:
        self._notifier.connect(PLAYBACK_STOPPED, handler)

    def flush_notifications(self) -> None:
        self._notifier.flush()

    # -- read-only state ---------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    @property
    def file_path(self) -> Path | None:
        return self._path

    @property
    def backend(self) -> PlaybackBackend | None:
        return self._backend

    @property
    def total_duration(self) -> float:
        return self._duration

    @property
    def current_position(self) -> float:
        with self._lock:
            return self._position_locked()

    def snapshot(self) -> PositionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        value = clamp(float(value), 0.0, 1.0)
        with self._lock:
            self._volume = value
            if self._backend is not None:
                self._backend.set_volume(value)

    def _position_locked(self) -> float:
        if self._backend is None or self._state is PlaybackState.UNLOADED:
            return 0.0
        if self._backend.reports_position:
            position = self._backend.position()
        elif self._state is PlaybackState.PLAYING and self._position_clock is not None:
            position = self._position_clock.position_at(self._clock(), self._duration)
        else:
            position = self._frozen_position
        return clamp(position, 0.0, self._duration)

    def _snapshot_locked(self) -> PositionSnapshot:
        return PositionSnapshot(
            current_position=self._position_locked(),
            total_duration=self._duration,
        )

    # -- transport ---------------------------------------------------------

    def load(self, path: Path) -> None:
        """Stop whatever is playing and prepare *path* for playback.

        Duration comes from ffprobe and is 0 when probing fails. A missing
        file raises FileNotFoundError; a backend that cannot open the file
        raises its own error and leaves the engine unloaded.
        """
        path = Path(path)
        self._halt(notify=False)
        with self._lock:
            self._release_backend()

        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        try:
            duration = self._prober(path).duration
        except ffutil.ProbeError as e:
            logger.warning("Could not probe %s, duration unknown: %s", path.name, e)
            duration = 0.0

        backend = self._backend_factory()
        try:
            backend.open(path)
        except BaseException:
            backend.close()
            raise

        with self._lock:
            backend.set_volume(self._volume)
            self._backend = backend
            self._path = path
            self._duration = duration
            self._frozen_position = 0.0
            self._position_clock = None
            self._state = PlaybackState.STOPPED
        logger.info("Loaded %s (%.3fs) on %s backend", path.name, duration, backend.name)

    def load_async(self, path: Path) -> Future:
        """Run ``load`` on the engine's loader thread."""
        return self._loader.submit(self.load, path)

    def play(self) -> None:
        """Start or resume playback. Does nothing if unloaded or already playing."""
        with self._lock:
            if self._backend is None or self._state is PlaybackState.UNLOADED:
                logger.debug("play() ignored: nothing loaded")
                return
            if self._state is PlaybackState.PLAYING:
                return

            self._generation += 1
            generation = self._generation
            if not self._backend.reports_position:
                self._position_clock = PositionClock(
                    start_instant=self._clock(),
                    start_position=self._frozen_position,
                )
            try:
                self._backend.start(
                    self._volume, lambda: self._on_backend_finished(generation)
                )
            except Exception:
                self._position_clock = None
                raise
            self._state = PlaybackState.PLAYING
            self._ticker = _Ticker(self._tick_interval, self._tick)
            self._ticker.start()
        logger.debug("Playing %s", self._path)

    def pause(self) -> None:
        """Pause playback; only meaningful while playing."""
        with self._lock:
            if self._state is not PlaybackState.PLAYING:
                return
            self._frozen_position = self._position_locked()
            self._generation += 1
            self._position_clock = None
            # pause() on a backend without true pause stops the player outright
            self._backend.pause()
            self._state = PlaybackState.PAUSED
            ticker = self._detach_ticker()
        self._join_ticker(ticker)

    def stop(self) -> None:
        """Halt playback and rewind to 0."""
        self._halt(notify=True)

    def _halt(self, notify: bool) -> None:
        # load() and close() halt silently; only stop() reports playback_stopped
        with self._lock:
            if self._backend is None:
                return
            was_active = self._state in (PlaybackState.PLAYING, PlaybackState.PAUSED)
            self._generation += 1
            self._backend.stop()
            self._frozen_position = 0.0
            self._position_clock = None
            if self._state is not PlaybackState.UNLOADED:
                self._state = PlaybackState.STOPPED
            ticker = self._detach_ticker()
        self._join_ticker(ticker)
        if notify and was_active:
            self._notifier.emit(PLAYBACK_STOPPED)

    def seek(self, seconds: float) -> None:
        """Move to *seconds*; a no-op on backends that cannot seek."""
        with self._lock:
            if self._backend is None or self._state is PlaybackState.UNLOADED:
                return
            if not self._backend.supports_seek:
                logger.debug("seek() ignored: %s backend cannot seek", self._backend.name)
                return
            self._backend.seek(clamp(float(seconds), 0.0, self._duration))
            snapshot = self._snapshot_locked()
        self._notifier.emit(POSITION_CHANGED, snapshot)

    def close(self) -> None:
        """Stop playback and release the backend, ticker and worker threads."""
        if self._closed:
            return
        self._closed = True
        self._halt(notify=False)
        with self._lock:
            self._release_backend()
        self._loader.shutdown(wait=False)
        self._notifier.close()

    def __enter__(self) -> "PlaybackEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _release_backend(self) -> None:
        backend, self._backend = self._backend, None
        self._path = None
        self._duration = 0.0
        self._frozen_position = 0.0
        self._position_clock = None
        self._state = PlaybackState.UNLOADED
        if backend is not None:
            backend.close()

    def _on_backend_finished(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state is not PlaybackState.PLAYING:
                return
            self._generation += 1
            self._backend.stop()
            self._frozen_position = 0.0
            self._position_clock = None
            self._state = PlaybackState.STOPPED
            ticker = self._detach_ticker()
        self._join_ticker(ticker)
        logger.debug("Playback of %s finished", self._path)
        self._notifier.emit(PLAYBACK_STOPPED)

    def _tick(self, ticker: _Ticker) -> None:
        with self._lock:
            if ticker is not self._ticker or self._state is not PlaybackState.PLAYING:
                return
            snapshot = self._snapshot_locked()
        self._notifier.emit(POSITION_CHANGED, snapshot)

    def _detach_ticker(self) -> _Ticker | None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.cancel()
        return ticker

    def _join_ticker(self, ticker: _Ticker | None) -> None:
        if ticker is not None and ticker is not threading.current_thread():
            ticker.join(timeout=1.0)
