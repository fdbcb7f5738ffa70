"""Logger registry, logger factories and the thread pool behind asynchronous loggers."""

from __future__ import annotations

import dataclasses
import threading
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from beeloc.log.formatter import Formatter, LogMessage, SimpleFormatter
from beeloc.log.levels import Level, LogLevels
from beeloc.log.logger import ErrorHandler, Logger
from beeloc.log.sinks import AnsiColorSink

#: Queue size of the thread pool created on demand by :func:`create_async`.
DEFAULT_ASYNC_Q_SIZE = 8192

_MAX_THREADS = 1000
_DEQUEUE_TIMEOUT = 10.0
_POOL_GONE = "async log: thread pool doesn't exist anymore"


class OverflowPolicy(Enum):
    """What posting does when the thread pool's queue is full."""

    BLOCK = "block"
    OVERRUN_OLDEST = "overrun_oldest"


class _MsgType(Enum):
    LOG = "log"
    FLUSH = "flush"
    TERMINATE = "terminate"


@dataclass
class _AsyncMsg:
    kind: _MsgType
    logger: AsyncLogger | None = None
    msg: LogMessage | None = None


class _BoundedQueue:
    """A fixed-capacity queue that can block or overwrite the oldest item when full."""

    def __init__(self, max_items: int) -> None:
        if max_items < 1:
            raise ValueError("queue size must be at least 1")
        self._max_items = max_items
        self._items: deque[_AsyncMsg] = deque()
        self._cond = threading.Condition()
        self.overrun = 0

    def put(self, item: _AsyncMsg) -> None:
        with self._cond:
            while len(self._items) >= self._max_items:
                self._cond.wait()
            self._items.append(item)
            self._cond.notify_all()

    def put_nowait(self, item: _AsyncMsg) -> None:
        with self._cond:
            if len(self._items) >= self._max_items:
                self._items.popleft()
                self.overrun += 1
            self._items.append(item)
            self._cond.notify_all()

    def get(self, timeout: float) -> _AsyncMsg | None:
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._items), timeout):
                return None
            item = self._items.popleft()
            self._cond.notify_all()
            return item


class ThreadPool:
    """Worker threads that take log and flush requests from a shared bounded queue."""

    def __init__(
        self,
        q_max_items: int,
        threads_n: int = 1,
        on_thread_start: Callable[[], object] | None = None,
    ) -> None:
        if not 1 <= threads_n <= _MAX_THREADS:
            raise ValueError("ThreadPool: invalid threads_n param (valid range is 1-1000)")
        self._queue = _BoundedQueue(q_max_items)
        self._closed = False
        self._close_lock = threading.Lock()
        self._threads = [
            threading.Thread(target=self._worker, args=(on_thread_start,), daemon=True)
            for _ in range(threads_n)
        ]
        for thread in self._threads:
            thread.start()

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def post_log(
        self, logger: AsyncLogger, msg: LogMessage, policy: OverflowPolicy = OverflowPolicy.BLOCK
    ) -> None:
        """Queue ``msg`` to be written by ``logger``'s sinks on a worker thread."""
        self._post(_AsyncMsg(_MsgType.LOG, logger, dataclasses.replace(msg)), policy)

    def post_flush(self, logger: AsyncLogger, policy: OverflowPolicy = OverflowPolicy.BLOCK) -> None:
        """Queue a flush of ``logger``'s sinks."""
        self._post(_AsyncMsg(_MsgType.FLUSH, logger), policy)

    def overrun_counter(self) -> int:
        """Return how many queued messages were overwritten because the queue was full."""
        return self._queue.overrun

    def shutdown(self) -> None:
        """Let the workers finish what is queued, then stop and join them."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._threads:
            self._queue.put(_AsyncMsg(_MsgType.TERMINATE))
        for thread in self._threads:
            thread.join()

    def _post(self, item: _AsyncMsg, policy: OverflowPolicy) -> None:
        if self._closed:
            raise RuntimeError(_POOL_GONE)
        if policy is OverflowPolicy.BLOCK:
            self._queue.put(item)
        else:
            self._queue.put_nowait(item)

    def _worker(self, on_thread_start: Callable[[], object] | None) -> None:
        if on_thread_start is not None:
            on_thread_start()
        while self._process_next():
            pass

    def _process_next(self) -> bool:
        item = self._queue.get(_DEQUEUE_TIMEOUT)
        if item is None:
            return True
        if item.kind is _MsgType.TERMINATE:
            return False
        assert item.logger is not None
        if item.kind is _MsgType.LOG:
            assert item.msg is not None
            item.logger._backend_sink_it(item.msg)
        else:
            item.logger._backend_flush()
        return True


class AsyncLogger(Logger):
    """A logger whose sinks are written by a :class:`ThreadPool` instead of the caller."""

    def __init__(
        self,
        name: str,
        sinks: Iterable[Any] | None,
        pool: ThreadPool,
        policy: OverflowPolicy = OverflowPolicy.BLOCK,
    ) -> None:
        super().__init__(name, sinks)
        self._pool = pool
        self._policy = policy

    def _sink_it(self, msg: LogMessage) -> None:
        try:
            self._pool.post_log(self, msg, self._policy)
        except Exception as exc:  # noqa: BLE001 - reported through the error handler
            self._handle_error(str(exc))

    def _flush(self) -> None:
        try:
            self._pool.post_flush(self, self._policy)
        except Exception as exc:  # noqa: BLE001 - reported through the error handler
            self._handle_error(str(exc))

    def _backend_sink_it(self, msg: LogMessage) -> None:
        for sink in self.sinks:
            if sink.should_log(msg.level):
                try:
                    sink.log(msg)
                except Exception as exc:  # noqa: BLE001 - reported through the error handler
                    self._handle_error(str(exc))
        if self._should_flush(msg):
            self._backend_flush()

    def _backend_flush(self) -> None:
        for sink in self.sinks:
            try:
                sink.flush()
            except Exception as exc:  # noqa: BLE001 - reported through the error handler
                self._handle_error(str(exc))


class Registry:
    """Named loggers plus the settings applied to every logger it initializes."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._loggers: dict[str, Logger] = {}
        self._levels = LogLevels()
        self._formatter: Formatter = SimpleFormatter()
        self._flush_level = Level.OFF
        self._error_handler: ErrorHandler | None = None
        self._backtrace_n = 0
        self._automatic_registration = True
        self._tp: ThreadPool | None = None
        self.tp_lock = threading.RLock()
        self._default: Logger | None = Logger("", [AnsiColorSink()])
        self._loggers[""] = self._default

    @property
    def thread_pool(self) -> ThreadPool | None:
        with self.tp_lock:
            return self._tp

    @thread_pool.setter
    def thread_pool(self, pool: ThreadPool | None) -> None:
        with self.tp_lock:
            self._tp = pool

    def register_logger(self, logger: Logger) -> None:
        """Add ``logger`` under its name; a name may be registered only once."""
        with self._lock:
            self._register(logger)

    def initialize_logger(self, logger: Logger) -> None:
        """Apply the registry's settings to ``logger`` and register it if automatic."""
        with self._lock:
            logger.set_formatter(self._formatter.clone())
            if self._error_handler is not None:
                logger.set_error_handler(self._error_handler)
            logger.set_level(self._levels.get(logger.name))
            logger.flush_on(self._flush_level)
            if self._backtrace_n > 0:
                logger.enable_backtrace(self._backtrace_n)
            if self._automatic_registration:
                self._register(logger)

    def get(self, name: str) -> Logger | None:
        """Return the logger registered as ``name``, or ``None``."""
        with self._lock:
            return self._loggers.get(name)

    def drop(self, name: str) -> None:
        """Forget the logger named ``name``; dropping the default clears the default."""
        with self._lock:
            self._loggers.pop(name, None)
            if self._default is not None and self._default.name == name:
                self._default = None

    def drop_all(self) -> None:
        with self._lock:
            self._loggers.clear()
            self._default = None

    def set_level(self, level: Level) -> None:
        """Set the level of every registered logger and of loggers initialized later."""
        with self._lock:
            for logger in self._loggers.values():
                logger.set_level(level)
            self._levels.set_default(Level(level))

    def flush_on(self, level: Level) -> None:
        with self._lock:
            for logger in self._loggers.values():
                logger.flush_on(level)
            self._flush_level = Level(level)

    def set_formatter(self, formatter: Formatter) -> None:
        """Give every registered logger, and later ones, a copy of ``formatter``."""
        with self._lock:
            self._formatter = formatter
            for logger in self._loggers.values():
                logger.set_formatter(formatter.clone())

    def set_error_handler(self, handler: ErrorHandler | None) -> None:
        with self._lock:
            for logger in self._loggers.values():
                logger.set_error_handler(handler)
            self._error_handler = handler

    def enable_backtrace(self, n_messages: int) -> None:
        with self._lock:
            self._backtrace_n = n_messages
            for logger in self._loggers.values():
                logger.enable_backtrace(n_messages)

    def disable_backtrace(self) -> None:
        with self._lock:
            self._backtrace_n = 0
            for logger in self._loggers.values():
                logger.disable_backtrace()

    def set_automatic_registration(self, automatic_registration: bool) -> None:
        with self._lock:
            self._automatic_registration = automatic_registration

    def apply_all(self, fun: Callable[[Logger], object]) -> None:
        """Call ``fun`` on every registered logger."""
        with self._lock:
            for logger in list(self._loggers.values()):
                fun(logger)

    def default_logger(self) -> Logger | None:
        with self._lock:
            return self._default

    def set_default_logger(self, logger: Logger | None) -> None:
        """Replace the default logger; the old one is unregistered, the new one registered."""
        with self._lock:
            if self._default is not None:
                self._loggers.pop(self._default.name, None)
            if logger is not None:
                self._loggers[logger.name] = logger
            self._default = logger

    def shutdown(self) -> None:
        """Drop every logger and stop the thread pool."""
        self.drop_all()
        with self.tp_lock:
            pool, self._tp = self._tp, None
        if pool is not None:
            pool.shutdown()

    def _register(self, logger: Logger) -> None:
        if logger.name in self._loggers:
            raise ValueError(f"logger with name '{logger.name}' already exists")
        self._loggers[logger.name] = logger


_registry = Registry()


def instance() -> Registry:
    """Return the process-wide registry."""
    return _registry


def get(name: str) -> Logger | None:
    return _registry.get(name)


def register_logger(logger: Logger) -> None:
    _registry.register_logger(logger)


def drop(name: str) -> None:
    _registry.drop(name)


def drop_all() -> None:
    _registry.drop_all()


def set_level(level: Level) -> None:
    _registry.set_level(level)


def default_logger() -> Logger | None:
    return _registry.default_logger()


def set_default_logger(logger: Logger | None) -> None:
    _registry.set_default_logger(logger)


def create(logger_name: str, sink_factory: Callable[..., Any], *args: Any, **kwargs: Any) -> Logger:
    """Build a sink with ``sink_factory`` and a synchronous logger around it, then register it."""
    sink = sink_factory(*args, **kwargs)
    logger = Logger(logger_name, [sink])
    _registry.initialize_logger(logger)
    return logger


def _create_async(
    policy: OverflowPolicy,
    logger_name: str,
    sink_factory: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> AsyncLogger:
    with _registry.tp_lock:
        pool = _registry.thread_pool
        if pool is None:
            pool = ThreadPool(DEFAULT_ASYNC_Q_SIZE, 1)
            _registry.thread_pool = pool
    sink = sink_factory(*args, **kwargs)
    logger = AsyncLogger(logger_name, [sink], pool, policy)
    _registry.initialize_logger(logger)
    return logger


def create_async(
    logger_name: str, sink_factory: Callable[..., Any], *args: Any, **kwargs: Any
) -> AsyncLogger:
    """Like :func:`create`, but the logger writes through the global thread pool, blocking when full."""
    return _create_async(OverflowPolicy.BLOCK, logger_name, sink_factory, *args, **kwargs)


def create_async_nb(
    logger_name: str, sink_factory: Callable[..., Any], *args: Any, **kwargs: Any
) -> AsyncLogger:
    """Like :func:`create_async`, but overwrites the oldest queued message when full."""
    return _create_async(OverflowPolicy.OVERRUN_OLDEST, logger_name, sink_factory, *args, **kwargs)


def init_thread_pool(
    q_size: int, thread_count: int, on_thread_start: Callable[[], object] | None = None
) -> None:
    """Replace the global thread pool used by asynchronous loggers created later."""
    _registry.thread_pool = ThreadPool(q_size, thread_count, on_thread_start)


def thread_pool() -> ThreadPool | None:
    """Return the global thread pool, if one exists."""
    return _registry.thread_pool