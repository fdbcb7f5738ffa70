"""Log message record and the formatters that turn it into text."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from beeloc.log.formatting import pad2, pad3, time_fraction
from beeloc.log.levels import Level

#: Names printed for each level.
LEVEL_NAMES: dict[Level, str] = {
    Level.TRACE: "trace",
    Level.DEBUG: "debug",
    Level.INFO: "info",
    Level.WARN: "warning",
    Level.ERROR: "error",
    Level.CRITICAL: "critical",
    Level.OFF: "off",
}

_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MILLI = 1_000_000


@dataclass
class LogMessage:
    """One log record on its way from a logger to its sinks.

    ``color_range_start`` and ``color_range_end`` are filled in by a formatter
    to mark the part of the formatted text that a colouring sink may highlight.
    """

    logger_name: str
    level: Level
    payload: str
    timestamp_ns: int = field(default_factory=time.time_ns)
    color_range_start: int = 0
    color_range_end: int = 0


class Formatter(ABC):
    """Turns a :class:`LogMessage` into the text a sink writes."""

    @abstractmethod
    def format(self, msg: LogMessage) -> str:
        """Return the formatted text of ``msg``."""

    @abstractmethod
    def clone(self) -> Formatter:
        """Return an independent formatter with the same configuration."""


class SimpleFormatter(Formatter):
    """Formats as ``[date time.millis] [name] [level] payload`` plus an end of line.

    The logger name part is left out when the name is empty. The level name is
    marked as the colour range of the message.
    """

    def __init__(self, eol: str = "\n", utc: bool = False) -> None:
        self.eol = eol
        self.utc = utc

    def format(self, msg: LogMessage) -> str:
        seconds = msg.timestamp_ns // _NANOS_PER_SECOND
        tm = time.gmtime(seconds) if self.utc else time.localtime(seconds)
        millis = time_fraction(msg.timestamp_ns, _NANOS_PER_MILLI)
        parts = [
            f"[{tm.tm_year}-{pad2(tm.tm_mon)}-{pad2(tm.tm_mday)} "
            f"{pad2(tm.tm_hour)}:{pad2(tm.tm_min)}:{pad2(tm.tm_sec)}.{pad3(millis)}] "
        ]
        if msg.logger_name:
            parts.append(f"[{msg.logger_name}] ")
        parts.append("[")
        prefix = "".join(parts)
        level_name = LEVEL_NAMES[Level(msg.level)]
        msg.color_range_start = len(prefix)
        msg.color_range_end = len(prefix) + len(level_name)
        return f"{prefix}{level_name}] {msg.payload}{self.eol}"

    def clone(self) -> SimpleFormatter:
        return SimpleFormatter(self.eol, self.utc)