"""Preview playback: transport state machine and its backends."""

from audiocut.playback.backends import NativeBackend, PlaybackBackend, ProcessBackend, select_backend
from audiocut.playback.clock import PositionClock
from audiocut.playback.engine import PlaybackEngine

__all__ = [
    "NativeBackend",
    "PlaybackBackend",
    "PlaybackEngine",
    "PositionClock",
    "ProcessBackend",
    "select_backend",
]
