"""Log severity levels and per-logger level configuration."""

from __future__ import annotations

from enum import IntEnum


class Level(IntEnum):
    """Message severity, ordered from most to least verbose."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    CRITICAL = 5
    OFF = 6


class LogLevels:
    """Maps logger names to levels, with a fallback default level."""

    def __init__(self) -> None:
        self._levels: dict[str, Level] = {}
        self._default = Level.INFO

    def set(self, logger_name: str, level: Level) -> None:
        """Set the level of a named logger; an empty name sets the default."""
        if not logger_name:
            self._default = level
        else:
            self._levels[logger_name] = level

    def set_default(self, level: Level) -> None:
        """Set the level used for loggers with no level of their own."""
        self._default = level

    def get(self, logger_name: str) -> Level:
        """Return the level for ``logger_name``, or the default if it has none."""
        return self._levels.get(logger_name, self._default)

    def default_level(self) -> Level:
        """Return the default level."""
        return self._default