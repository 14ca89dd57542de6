"""Wall-clock position tracking for backends that cannot report position."""

from dataclasses import dataclass


def clamp(value: float, low: float, high: float) -> float:
    if high < low:
        return low
    return min(max(value, low), high)


@dataclass(frozen=True)
class PositionClock:
    """Where playback started, in both wall-clock and media time.

    The position is recomputed from these two values on every query, so there
    is no counter to drift.
    """

    start_instant: float
    start_position: float

    def position_at(self, now: float, total_duration: float) -> float:
        return clamp(self.start_position + (now - self.start_instant), 0.0, total_duration)
