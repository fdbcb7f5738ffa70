from beeloc.log.formatter import SimpleFormatter
from beeloc.log.levels import Level
from beeloc.log.logger import Logger


class RecordingSink:
    def __init__(self, level=Level.TRACE, fail=False):
        self.level = level
        self.fail = fail
        self.messages = []
        self.flushes = 0
        self.formatter = None

    def should_log(self, level):
        return level >= self.level

    def log(self, msg):
        if self.fail:
            raise RuntimeError("sink broke")
        self.messages.append(msg)

    def flush(self):
        self.flushes += 1

    def set_formatter(self, formatter):
        self.formatter = formatter


def _payloads(sink):
    return [m.payload for m in sink.messages]


def test_default_level_filters_debug():
    sink = RecordingSink()
    log = Logger("core", [sink])
    log.debug("hidden")
    log.info("shown")
    assert _payloads(sink) == ["shown"]
    assert log.level == Level.INFO
    log.set_level(Level.DEBUG)
    log.debug("now shown")
    assert _payloads(sink) == ["shown", "now shown"]


def test_all_level_methods_set_level():
    sink = RecordingSink()
    log = Logger("core", [sink])
    log.set_level(Level.TRACE)
    log.trace("a")
    log.debug("b")
    log.info("c")
    log.warn("d")
    log.error("e")
    log.critical("f")
    assert [m.level for m in sink.messages] == [
        Level.TRACE, Level.DEBUG, Level.INFO, Level.WARN, Level.ERROR, Level.CRITICAL,
    ]
    assert all(m.logger_name == "core" for m in sink.messages)


def test_arguments_are_formatted():
    sink = RecordingSink()
    log = Logger("core", [sink])
    log.info("x={} y={:.1f}", 5, 2.25)
    log.info("{}")
    log.info(42)
    assert _payloads(sink) == ["x=5 y=2.2", "{}", "42"]


def test_sink_level_is_respected():
    loud = RecordingSink(level=Level.ERROR)
    log = Logger("core", [loud])
    log.warn("w")
    log.error("e")
    assert _payloads(loud) == ["e"]


def test_format_error_goes_to_handler():
    sink = RecordingSink()
    errors = []
    log = Logger("core", [sink])
    log.set_error_handler(errors.append)
    log.info("{} {}", 1)
    assert sink.messages == []
    assert len(errors) == 1


def test_sink_failure_goes_to_handler_and_other_sinks_still_log():
    broken = RecordingSink(fail=True)
    good = RecordingSink()
    errors = []
    log = Logger("core", [broken, good])
    log.set_error_handler(errors.append)
    log.info("hi")
    assert errors == ["sink broke"]
    assert _payloads(good) == ["hi"]


def test_default_error_handler_reports_to_stderr(capsys):
    log = Logger("reporter", [RecordingSink(fail=True)])
    log.info("hi")
    err = capsys.readouterr().err
    assert "LOG ERROR" in err
    assert "[reporter]" in err
    assert "{sink broke}" in err


def test_flush_on_level():
    sink = RecordingSink()
    log = Logger("core", [sink])
    assert log.flush_level == Level.OFF
    log.error("no flush yet")
    assert sink.flushes == 0
    log.flush_on(Level.WARN)
    log.info("below")
    assert sink.flushes == 0
    log.warn("at level")
    assert sink.flushes == 1
    log.flush()
    assert sink.flushes == 2


def test_backtrace_keeps_filtered_messages():
    sink = RecordingSink()
    log = Logger("bt", [sink])
    log.set_level(Level.ERROR)
    assert log.should_backtrace() is False
    log.enable_backtrace(2)
    assert log.should_backtrace() is True
    log.debug("one")
    log.debug("two")
    log.debug("three")
    assert sink.messages == []
    log.dump_backtrace()
    payloads = _payloads(sink)
    assert payloads[1:3] == ["two", "three"]
    assert "Backtrace Start" in payloads[0]
    assert "Backtrace End" in payloads[-1]
    assert len(payloads) == 4


def test_dump_without_backtrace_does_nothing():
    sink = RecordingSink()
    log = Logger("bt", [sink])
    log.enable_backtrace(3)
    log.info("kept")
    log.disable_backtrace()
    log.dump_backtrace()
    assert _payloads(sink) == ["kept"]


def test_set_formatter_clones_for_all_but_last():
    first, last = RecordingSink(), RecordingSink()
    log = Logger("core", [first, last])
    formatter = SimpleFormatter()
    log.set_formatter(formatter)
    assert last.formatter is formatter
    assert first.formatter is not formatter
    assert isinstance(first.formatter, SimpleFormatter)


def test_clone_shares_sinks_and_settings():
    sink = RecordingSink()
    log = Logger("orig", [sink])
    log.set_level(Level.WARN)
    log.flush_on(Level.ERROR)
    twin = log.clone("twin")
    assert twin.name == "twin"
    assert log.name == "orig"
    assert twin.level == Level.WARN
    assert twin.flush_level == Level.ERROR
    assert twin.sinks == log.sinks
    assert twin.sinks is not log.sinks
    twin.warn("from twin")
    assert sink.messages[-1].logger_name == "twin"


def test_should_log_compares_with_level():
    log = Logger("core")
    assert log.sinks == []
    assert log.should_log(Level.INFO) is True
    assert log.should_log(Level.DEBUG) is False