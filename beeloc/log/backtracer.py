"""Bounded store of recent log messages, kept for dumping on demand."""

from __future__ import annotations

import dataclasses
import threading
from collections import deque
from collections.abc import Callable

from beeloc.log.formatter import LogMessage


class Backtracer:
    """Keeps the last ``size`` messages while enabled; thread safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._messages: deque[LogMessage] = deque(maxlen=0)

    def __copy__(self) -> Backtracer:
        other = Backtracer()
        with self._lock:
            other._enabled = self._enabled
            other._messages = deque(self._messages, maxlen=self._messages.maxlen)
        return other

    def enable(self, size: int) -> None:
        """Start keeping messages, at most ``size`` of them; discards what was kept."""
        if size < 0:
            raise ValueError("size must not be negative")
        with self._lock:
            self._enabled = True
            self._messages = deque(maxlen=size)

    def disable(self) -> None:
        """Stop keeping messages."""
        with self._lock:
            self._enabled = False

    def enabled(self) -> bool:
        """Return whether messages are being kept."""
        return self._enabled

    def push_back(self, msg: LogMessage) -> None:
        """Store a copy of ``msg``, dropping the oldest one when full."""
        with self._lock:
            self._messages.append(dataclasses.replace(msg))

    def foreach_pop(self, fun: Callable[[LogMessage], object]) -> None:
        """Remove every stored message, oldest first, passing each to ``fun``."""
        with self._lock:
            while self._messages:
                fun(self._messages.popleft())