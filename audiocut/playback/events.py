"""Observer lists fed through a queue and delivered on a dispatcher thread.

Handlers never run on the thread that emitted the notification, so they can
call back into the playback engine without re-entering its lock.
"""

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger(__name__)

POSITION_CHANGED = "position_changed"
PLAYBACK_STOPPED = "playback_stopped"

_SENTINEL = object()


class Notifier:
    def __init__(self, kinds: tuple[str, ...] = (POSITION_CHANGED, PLAYBACK_STOPPED)):
        self._handlers: dict[str, list[Callable]] = {kind: [] for kind in kinds}
        self._handlers_lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(
            target=self._run, name="audiocut-notifier", daemon=True
        )
        self._thread.start()

    def connect(self, kind: str, handler: Callable) -> None:
        with self._handlers_lock:
            if kind not in self._handlers:
                raise ValueError(f"Unknown notification kind: {kind!r}")
            self._handlers[kind].append(handler)

    def disconnect(self, kind: str, handler: Callable) -> None:
        with self._handlers_lock:
            if handler in self._handlers.get(kind, []):
                self._handlers[kind].remove(handler)

    def emit(self, kind: str, *args) -> None:
        if self._closed:
            return
        self._queue.put((kind, args))

    def flush(self) -> None:
        """Block until every notification emitted so far has been delivered."""
        if self._thread.is_alive():
            self._queue.join()

    def close(self, timeout: float = 1.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_SENTINEL)
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _SENTINEL:
                    return
                kind, args = item
                with self._handlers_lock:
                    handlers = list(self._handlers.get(kind, []))
                for handler in handlers:
                    try:
                        handler(*args)
                    except Exception:
                        logger.exception("%s handler %r failed", kind, handler)
            finally:
                self._queue.task_done()
