"""Elapsed-time measurement that formats like a float number of seconds."""

from __future__ import annotations

import time

#: Version of the logging subsystem's formatting conventions.
LOGGING_VERSION_INFO = (1, 8, 0)
LOGGING_VERSION = (
    LOGGING_VERSION_INFO[0] * 10000 + LOGGING_VERSION_INFO[1] * 100 + LOGGING_VERSION_INFO[2]
)


class Stopwatch:
    """Measures seconds elapsed since construction or the last reset."""

    def __init__(self) -> None:
        self._start = time.perf_counter()

    def elapsed(self) -> float:
        """Return the seconds elapsed since the start point."""
        return time.perf_counter() - self._start

    def reset(self) -> None:
        """Move the start point to now."""
        self._start = time.perf_counter()

    def __format__(self, spec: str) -> str:
        return format(self.elapsed(), spec)

    def __str__(self) -> str:
        return format(self, "")