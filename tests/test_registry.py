import io
import threading

import pytest

from beeloc.log import registry
from beeloc.log.formatter import Formatter, LogMessage
from beeloc.log.levels import Level
from beeloc.log.logger import Logger
from beeloc.log.registry import AsyncLogger, OverflowPolicy, Registry, ThreadPool
from beeloc.log.sinks import StreamSink


class PayloadFormatter(Formatter):
    def format(self, msg: LogMessage) -> str:
        return f"X:{msg.payload}\n"

    def clone(self) -> "PayloadFormatter":
        return PayloadFormatter()


def stream_logger(name):
    buf = io.StringIO()
    return Logger(name, [StreamSink(buf)]), buf


def test_register_duplicate_name_raises():
    reg = Registry()
    logger, _ = stream_logger("dup")
    reg.register_logger(logger)
    with pytest.raises(ValueError, match="already exists"):
        reg.register_logger(Logger("dup"))


def test_get_returns_registered_logger_or_none():
    reg = Registry()
    logger, _ = stream_logger("known")
    reg.register_logger(logger)
    assert reg.get("known") is logger
    assert reg.get("unknown") is None


def test_initialize_applies_level_and_registers():
    reg = Registry()
    reg.set_level(Level.WARN)
    logger, buf = stream_logger("init")
    reg.initialize_logger(logger)
    assert logger.level == Level.WARN
    assert reg.get("init") is logger
    logger.info("hidden")
    logger.error("shown")
    assert "hidden" not in buf.getvalue()
    assert "shown" in buf.getvalue()


def test_set_level_reaches_existing_loggers():
    reg = Registry()
    logger, _ = stream_logger("existing")
    reg.initialize_logger(logger)
    reg.set_level(Level.CRITICAL)
    assert logger.level == Level.CRITICAL


def test_automatic_registration_can_be_disabled():
    reg = Registry()
    reg.set_automatic_registration(False)
    logger, _ = stream_logger("quiet")
    reg.initialize_logger(logger)
    assert reg.get("quiet") is None


def test_formatter_applies_to_existing_and_new_loggers():
    reg = Registry()
    first, first_buf = stream_logger("first")
    reg.initialize_logger(first)
    reg.set_formatter(PayloadFormatter())
    second, second_buf = stream_logger("second")
    reg.initialize_logger(second)
    first.info("one")
    second.info("two")
    assert first_buf.getvalue() == "X:one\n"
    assert second_buf.getvalue() == "X:two\n"


def test_flush_on_and_backtrace_apply_to_new_loggers():
    reg = Registry()
    reg.flush_on(Level.ERROR)
    reg.enable_backtrace(4)
    logger, _ = stream_logger("bt")
    reg.initialize_logger(logger)
    assert logger.flush_level == Level.ERROR
    assert logger.should_backtrace() is True
    reg.disable_backtrace()
    assert logger.should_backtrace() is False


def test_error_handler_applies_to_loggers():
    reg = Registry()
    errors = []
    reg.set_error_handler(errors.append)
    logger, _ = stream_logger("errs")
    reg.initialize_logger(logger)
    logger.info("{} {}", "only one")
    assert len(errors) == 1


def test_dropping_default_clears_it():
    reg = Registry()
    assert reg.default_logger() is reg.get("")
    reg.drop("")
    assert reg.default_logger() is None


def test_set_default_logger_replaces_registration():
    reg = Registry()
    main = Logger("main")
    reg.set_default_logger(main)
    assert reg.default_logger() is main
    assert reg.get("") is None
    assert reg.get("main") is main


def test_drop_and_drop_all():
    reg = Registry()
    a, _ = stream_logger("a")
    b, _ = stream_logger("b")
    reg.register_logger(a)
    reg.register_logger(b)
    reg.drop("a")
    assert reg.get("a") is None
    assert reg.get("b") is b
    reg.drop_all()
    assert reg.get("b") is None
    assert reg.default_logger() is None


def test_apply_all_visits_every_logger():
    reg = Registry()
    reg.drop_all()
    for name in ("p", "q"):
        reg.register_logger(Logger(name))
    seen = []
    reg.apply_all(lambda logger: seen.append(logger.name))
    assert sorted(seen) == ["p", "q"]


@pytest.mark.parametrize("threads", [0, 1001])
def test_thread_pool_rejects_bad_thread_counts(threads):
    with pytest.raises(ValueError, match="1-1000"):
        ThreadPool(8, threads)


def test_async_logger_writes_before_shutdown_returns():
    pool = ThreadPool(16, 2)
    buf = io.StringIO()
    logger = AsyncLogger("async", [StreamSink(buf)], pool)
    for i in range(5):
        logger.info("line {}", i)
    logger.flush()
    pool.shutdown()
    out = buf.getvalue()
    assert all(f"line {i}" in out for i in range(5))


def test_overrun_oldest_drops_oldest_messages():
    gate = threading.Event()
    pool = ThreadPool(2, 1, gate.wait)
    buf = io.StringIO()
    logger = AsyncLogger("nb", [StreamSink(buf)], pool, OverflowPolicy.OVERRUN_OLDEST)
    for i in range(5):
        logger.info("m{}", i)
    assert pool.overrun_counter() == 3
    gate.set()
    pool.shutdown()
    out = buf.getvalue()
    assert "m3" in out and "m4" in out
    assert "m0" not in out


def test_logging_after_shutdown_reports_error():
    buf = io.StringIO()
    pool = ThreadPool(4, 1)
    logger = AsyncLogger("late", [StreamSink(buf)], pool)
    pool.shutdown()
    errors = []
    logger.set_error_handler(errors.append)
    logger.info("late")
    assert errors == ["async log: thread pool doesn't exist anymore"]
    assert buf.getvalue() == ""


def test_module_create_registers_and_drop_removes():
    buf = io.StringIO()
    logger = registry.create("module-create", StreamSink, buf)
    try:
        assert registry.get("module-create") is logger
        logger.info("hello")
        assert "hello" in buf.getvalue()
    finally:
        registry.drop("module-create")
    assert registry.get("module-create") is None


def test_module_create_async_uses_global_pool():
    registry.init_thread_pool(8, 1)
    pool = registry.thread_pool()
    buf = io.StringIO()
    logger = registry.create_async("module-async", StreamSink, buf)
    try:
        logger.info("queued")
        pool.shutdown()
        assert "queued" in buf.getvalue()
        assert registry.get("module-async") is logger
    finally:
        registry.drop("module-async")
        registry.instance().thread_pool = None