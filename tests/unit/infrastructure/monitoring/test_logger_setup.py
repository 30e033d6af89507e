import logging

import pytest

from throttlecli.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.mark.parametrize(
    "value, expected",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), (logging.ERROR, logging.ERROR), (None, logging.INFO)],
)
def test_resolve_log_level(value, expected):
    assert resolve_log_level(value) == expected


def test_resolve_unknown_level_uses_default():
    assert resolve_log_level("chatty", default=logging.WARNING) == logging.WARNING


def test_setup_logging_with_file(restore_root_logger, tmp_path):
    log_file = tmp_path / "throttlecli.log"

    setup_logging(log_level=logging.DEBUG, log_file=str(log_file))
    logging.getLogger("throttlecli.test").warning("Throttled on attempt 1/4")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 2
    assert "Throttled on attempt 1/4" in log_file.read_text(encoding="utf-8")


def test_setup_logging_replaces_handlers(restore_root_logger):
    setup_logging()
    setup_logging()
    assert len(restore_root_logger.handlers) == 1
