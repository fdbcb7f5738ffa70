"""Sinks: destinations that write formatted log messages."""

from __future__ import annotations

import os
import sys
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from typing import IO, Any

from beeloc.log.formatter import Formatter, LogMessage, SimpleFormatter
from beeloc.log.levels import Level

#: One lock shared by every sink that writes to the process's console streams.
_CONSOLE_LOCK = threading.Lock()

RESET = "\033[m"
BOLD = "\033[1m"
WHITE = "\033[37m"
CYAN = "\033[36m"
GREEN = "\033[32m"
YELLOW_BOLD = "\033[33m\033[1m"
RED_BOLD = "\033[31m\033[1m"
BOLD_ON_RED = "\033[1m\033[41m"

_COLOR_TERMS = (
    "ansi",
    "color",
    "console",
    "cygwin",
    "gnome",
    "konsole",
    "kterm",
    "linux",
    "msys",
    "putty",
    "rxvt",
    "screen",
    "vt100",
    "xterm",
    "alacritty",
    "tmux",
)


class Sink(ABC):
    """Base of all sinks: a level filter, a formatter and a lock around writes."""

    def __init__(
        self,
        formatter: Formatter | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        self._formatter: Formatter = formatter if formatter is not None else SimpleFormatter()
        self._lock = lock if lock is not None else threading.Lock()
        self._level = Level.TRACE

    @property
    def formatter(self) -> Formatter:
        return self._formatter

    @property
    def level(self) -> Level:
        return self._level

    def log(self, msg: LogMessage) -> None:
        """Format and write ``msg``."""
        with self._lock:
            self._sink_it(msg)

    def flush(self) -> None:
        """Flush whatever the sink buffers."""
        with self._lock:
            self._flush()

    def set_formatter(self, formatter: Formatter) -> None:
        """Replace the formatter used by this sink."""
        with self._lock:
            self._set_formatter(formatter)

    def should_log(self, level: Level) -> bool:
        """Return whether a message at ``level`` passes this sink's level."""
        return level >= self._level

    def set_level(self, level: Level) -> None:
        self._level = Level(level)

    @abstractmethod
    def _sink_it(self, msg: LogMessage) -> None:
        """Write ``msg``; called with the lock held."""

    @abstractmethod
    def _flush(self) -> None:
        """Flush; called with the lock held."""

    def _set_formatter(self, formatter: Formatter) -> None:
        self._formatter = formatter


class StreamSink(Sink):
    """Writes formatted messages to a text stream."""

    def __init__(self, stream: IO[str], force_flush: bool = False) -> None:
        super().__init__()
        self._stream = stream
        self._force_flush = force_flush

    def _sink_it(self, msg: LogMessage) -> None:
        self._stream.write(self._formatter.format(msg))
        if self._force_flush:
            self._stream.flush()

    def _flush(self) -> None:
        self._stream.flush()


class DistSink(Sink):
    """Forwards every message to a list of other sinks."""

    def __init__(self, sinks: Iterable[Sink] | None = None) -> None:
        super().__init__()
        self._sinks: list[Sink] = list(sinks) if sinks is not None else []

    @property
    def sinks(self) -> list[Sink]:
        return self._sinks

    def add_sink(self, sink: Sink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        """Remove every occurrence of ``sink``."""
        with self._lock:
            self._sinks = [s for s in self._sinks if s is not sink]

    def set_sinks(self, sinks: Iterable[Sink]) -> None:
        with self._lock:
            self._sinks = list(sinks)

    def _sink_it(self, msg: LogMessage) -> None:
        for sink in self._sinks:
            if sink.should_log(msg.level):
                sink.log(msg)

    def _flush(self) -> None:
        for sink in self._sinks:
            sink.flush()

    def _set_formatter(self, formatter: Formatter) -> None:
        self._formatter = formatter
        for sink in self._sinks:
            sink.set_formatter(formatter.clone())


class _ConsoleSink(Sink):
    """Writes to a console stream and flushes after every message."""

    def __init__(self, stream: IO[str]) -> None:
        super().__init__(lock=_CONSOLE_LOCK)
        self._stream = stream

    def _sink_it(self, msg: LogMessage) -> None:
        self._stream.write(self._formatter.format(msg))
        self._stream.flush()

    def _flush(self) -> None:
        self._stream.flush()


class StdoutSink(_ConsoleSink):
    """Writes to standard output."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)


class StderrSink(_ConsoleSink):
    """Writes to standard error."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)


class ColorMode(Enum):
    """When a colour sink emits ANSI colour codes."""

    ALWAYS = "always"
    AUTOMATIC = "automatic"
    NEVER = "never"


def _in_terminal(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False


def _is_color_terminal() -> bool:
    if os.environ.get("COLORTERM"):
        return True
    term = os.environ.get("TERM", "")
    return any(name in term for name in _COLOR_TERMS)


class AnsiColorSink(Sink):
    """Console sink that colours the formatter's colour range by message level."""

    def __init__(self, stream: IO[str] | None = None, mode: ColorMode = ColorMode.AUTOMATIC) -> None:
        super().__init__(lock=_CONSOLE_LOCK)
        self._stream = stream if stream is not None else sys.stdout
        self._should_do_colors = False
        self.set_color_mode(mode)
        self._colors: dict[Level, str] = {
            Level.TRACE: WHITE,
            Level.DEBUG: CYAN,
            Level.INFO: GREEN,
            Level.WARN: YELLOW_BOLD,
            Level.ERROR: RED_BOLD,
            Level.CRITICAL: BOLD_ON_RED,
            Level.OFF: RESET,
        }

    def set_color(self, level: Level, color: str) -> None:
        """Use ``color`` (an escape sequence) for messages at ``level``."""
        with self._lock:
            self._colors[Level(level)] = color

    def set_color_mode(self, mode: ColorMode) -> None:
        if mode is ColorMode.ALWAYS:
            self._should_do_colors = True
        elif mode is ColorMode.AUTOMATIC:
            self._should_do_colors = _in_terminal(self._stream) and _is_color_terminal()
        else:
            self._should_do_colors = False

    def should_color(self) -> bool:
        return self._should_do_colors

    def _sink_it(self, msg: LogMessage) -> None:
        msg.color_range_start = 0
        msg.color_range_end = 0
        formatted = self._formatter.format(msg)
        start, end = msg.color_range_start, msg.color_range_end
        if self._should_do_colors and end > start:
            self._stream.write(formatted[:start])
            self._stream.write(self._colors[Level(msg.level)])
            self._stream.write(formatted[start:end])
            self._stream.write(RESET)
            self._stream.write(formatted[end:])
        else:
            self._stream.write(formatted)
        self._stream.flush()

    def _flush(self) -> None:
        self._stream.flush()