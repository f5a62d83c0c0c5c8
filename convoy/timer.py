"""Elapsed time measurement for a test run."""

import time
from typing import Optional


class Timer:
    """Stopwatch measuring the run's execution time."""

    def __init__(self):
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

    def start(self) -> "Timer":
        """Start (or restart) the stopwatch."""
        self._start_time = time.monotonic()
        self._end_time = None
        return self

    def stop(self) -> "Timer":
        """Stop the stopwatch."""
        self._end_time = time.monotonic()
        return self

    @property
    def elapsed(self) -> float:
        """Seconds between start and stop (or now, if still running)."""
        if self._start_time is None:
            return 0.0
        end = self._end_time if self._end_time is not None else time.monotonic()
        return end - self._start_time

    def elapsed_formatted(self) -> str:
        """Elapsed time as ``"3.50 sec"`` or ``"1 min 3.50 sec"``."""
        minutes, seconds = divmod(self.elapsed, 60)
        if minutes >= 1:
            return f"{int(minutes)} min {seconds:.2f} sec"
        return f"{seconds:.2f} sec"
