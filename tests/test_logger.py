import logging

from gatecord.util.logger import (
    ColorFormatter,
    LOGS_DIR,
    get_log_filepath,
    get_logger,
    handle_exception,
    setup_logger,
    should_use_color,
)


class DummyStream:
    def write(self, msg):
        pass

    def isatty(self):
        return True


def test_get_logger_has_console_and_file_handlers():
    logger = get_logger("gatecord_test_logger")

    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert len(logger.handlers) == 2


def test_setup_logger_idempotent():
    first = setup_logger("gatecord_test_idem")
    second = setup_logger("gatecord_test_idem")

    assert first is second
    assert len(second.handlers) == 2


def test_color_formatter_wraps_level_color():
    formatter = ColorFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("test", logging.WARNING, "", 0, "cooldown table grew", None, None)

    formatted = formatter.format(record)

    assert formatted.startswith("\033[33m")
    assert formatted.endswith("\033[0m")


def test_should_use_color_follows_tty(monkeypatch):
    monkeypatch.setattr("sys.stderr", DummyStream())
    assert should_use_color() is True


def test_log_file_lives_in_logs_dir():
    path = get_log_filepath()

    assert path.parent == LOGS_DIR
    assert path == get_log_filepath()


def test_handle_exception_logs_error(caplog):
    with caplog.at_level(logging.ERROR):
        try:
            raise RuntimeError("fail")
        except RuntimeError as exc:
            handle_exception(RuntimeError, exc, exc.__traceback__)

    assert any("Uncaught exception" in record.message for record in caplog.records)
