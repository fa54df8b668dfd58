"""Delta clock for the tether tick loop."""

import time

from stretchlink.constants import MAX_DELTA_TIME


class DeltaClock:
    """Tracks elapsed time and tick count between frames."""

    def __init__(self):
        self._last_time = time.perf_counter()
        self.frame = 0
        self.elapsed = 0.0

    def get_delta(self) -> float:
        """Advance one tick; return seconds since the last tick, clamped to MAX_DELTA_TIME."""
        now = time.perf_counter()
        dt = min(now - self._last_time, MAX_DELTA_TIME)
        self._last_time = now
        self.frame += 1
        self.elapsed += dt
        return dt

    def reset(self) -> None:
        self._last_time = time.perf_counter()
        self.frame = 0
        self.elapsed = 0.0
