"""Named logger that filters by level and hands messages to its sinks."""

from __future__ import annotations

import copy
import sys
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

from beeloc.log.backtracer import Backtracer
from beeloc.log.formatter import Formatter, LogMessage
from beeloc.log.levels import Level

ErrorHandler = Callable[[str], object]

_BACKTRACE_START = "****************** Backtrace Start ******************"
_BACKTRACE_END = "****************** Backtrace End ********************"


class _ErrorReporter:
    """Shared default error reporting, at most one line a second to stderr."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_report = 0.0
        self._counter = 0

    def report(self, logger_name: str, msg: str) -> None:
        with self._lock:
            now = time.time()
            self._counter += 1
            if now - self._last_report < 1.0:
                return
            self._last_report = now
            date = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now))
            print(
                f"[*** LOG ERROR #{self._counter:04d} ***] [{date}] [{logger_name}] {{{msg}}}",
                file=sys.stderr,
            )


_default_reporter = _ErrorReporter()


class Logger:
    """A named logger with a level, a flush level, sinks and an optional backtrace.

    Sinks are objects with ``should_log(level)``, ``log(msg)``, ``flush()`` and
    ``set_formatter(formatter)``. Errors raised while formatting or writing are
    passed to the error handler instead of propagating.
    """

    def __init__(self, name: str, sinks: Iterable[Any] | None = None) -> None:
        self._name = name
        self._sinks: list[Any] = list(sinks) if sinks is not None else []
        self._level = Level.INFO
        self._flush_level = Level.OFF
        self._error_handler: ErrorHandler | None = None
        self._tracer = Backtracer()

    @property
    def name(self) -> str:
        return self._name

    @property
    def level(self) -> Level:
        return self._level

    @property
    def flush_level(self) -> Level:
        return self._flush_level

    @property
    def sinks(self) -> list[Any]:
        return self._sinks

    def log(self, level: Level, fmt: Any, *args: Any) -> None:
        """Log ``fmt`` at ``level``; with ``args`` it is a ``str.format`` template."""
        log_enabled = self.should_log(level)
        traceback_enabled = self._tracer.enabled()
        if not log_enabled and not traceback_enabled:
            return
        try:
            payload = fmt.format(*args) if args else (fmt if isinstance(fmt, str) else format(fmt))
        except Exception as exc:  # noqa: BLE001 - reported through the error handler
            self._handle_error(str(exc))
            return
        self._log_it(LogMessage(self._name, Level(level), payload), log_enabled, traceback_enabled)

    def trace(self, fmt: Any, *args: Any) -> None:
        self.log(Level.TRACE, fmt, *args)

    def debug(self, fmt: Any, *args: Any) -> None:
        self.log(Level.DEBUG, fmt, *args)

    def info(self, fmt: Any, *args: Any) -> None:
        self.log(Level.INFO, fmt, *args)

    def warn(self, fmt: Any, *args: Any) -> None:
        self.log(Level.WARN, fmt, *args)

    def error(self, fmt: Any, *args: Any) -> None:
        self.log(Level.ERROR, fmt, *args)

    def critical(self, fmt: Any, *args: Any) -> None:
        self.log(Level.CRITICAL, fmt, *args)

    def should_log(self, level: Level) -> bool:
        """Return whether a message at ``level`` passes this logger's level."""
        return level >= self._level

    def should_backtrace(self) -> bool:
        """Return whether backtrace collection is enabled."""
        return self._tracer.enabled()

    def set_level(self, level: Level) -> None:
        self._level = Level(level)

    def set_formatter(self, formatter: Formatter) -> None:
        """Give each sink its own formatter; the last sink receives ``formatter`` itself."""
        if not self._sinks:
            return
        for sink in self._sinks[:-1]:
            sink.set_formatter(formatter.clone())
        self._sinks[-1].set_formatter(formatter)

    def enable_backtrace(self, n_messages: int) -> None:
        """Keep the last ``n_messages`` messages of any level for :meth:`dump_backtrace`."""
        self._tracer.enable(n_messages)

    def disable_backtrace(self) -> None:
        self._tracer.disable()

    def dump_backtrace(self) -> None:
        """Send the kept messages to the sinks, framed by start and end markers."""
        if not self._tracer.enabled():
            return
        self._sink_it(LogMessage(self._name, Level.INFO, _BACKTRACE_START))
        self._tracer.foreach_pop(self._sink_it)
        self._sink_it(LogMessage(self._name, Level.INFO, _BACKTRACE_END))

    def flush(self) -> None:
        self._flush()

    def flush_on(self, level: Level) -> None:
        """Flush the sinks after every message at ``level`` or above."""
        self._flush_level = Level(level)

    def set_error_handler(self, handler: ErrorHandler | None) -> None:
        self._error_handler = handler

    def clone(self, logger_name: str) -> Logger:
        """Return a new logger with the same sinks and settings under another name."""
        cloned = copy.copy(self)
        cloned._name = logger_name
        cloned._sinks = list(self._sinks)
        cloned._tracer = copy.copy(self._tracer)
        return cloned

    def _log_it(self, msg: LogMessage, log_enabled: bool, traceback_enabled: bool) -> None:
        if log_enabled:
            self._sink_it(msg)
        if traceback_enabled:
            self._tracer.push_back(msg)

    def _sink_it(self, msg: LogMessage) -> None:
        for sink in self._sinks:
            if sink.should_log(msg.level):
                try:
                    sink.log(msg)
                except Exception as exc:  # noqa: BLE001 - reported through the error handler
                    self._handle_error(str(exc))
        if self._should_flush(msg):
            self._flush()

    def _flush(self) -> None:
        for sink in self._sinks:
            try:
                sink.flush()
            except Exception as exc:  # noqa: BLE001 - reported through the error handler
                self._handle_error(str(exc))

    def _should_flush(self, msg: LogMessage) -> bool:
        return msg.level >= self._flush_level and msg.level != Level.OFF

    def _handle_error(self, msg: str) -> None:
        if self._error_handler is not None:
            self._error_handler(msg)
        else:
            _default_reporter.report(self._name, msg)