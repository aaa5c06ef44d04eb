"""Tests for indaba.core.logging_config."""

import logging
from unittest.mock import patch

import pytest

from indaba.core import logging_config
from indaba.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    LOG_FILE_NAME,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


def _root_handlers(kind: type) -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if type(h) is kind]


@pytest.fixture(autouse=True)
def _restore_console_only():
    yield
    for handler in _root_handlers(logging.FileHandler):
        handler.close()
    setup_logging(enable_file=False)


@pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "debug"])
def test_console_handler_uses_requested_level(level):
    setup_logging(log_level=level, enable_file=False)

    (console,) = _root_handlers(logging.StreamHandler)
    assert console.level == getattr(logging, level.upper())
    assert logging.getLogger().level == logging.DEBUG


@pytest.mark.parametrize(
    "fmt,expected",
    [("simple", SIMPLE_FORMAT), ("detailed", DETAILED_FORMAT), ("json", JSON_FORMAT), ("yaml", DETAILED_FORMAT)],
)
def test_format_selection(fmt, expected):
    setup_logging(log_format=fmt, enable_file=False)

    (console,) = _root_handlers(logging.StreamHandler)
    assert console.formatter._fmt == expected


def test_file_handler_created_when_enabled(tmp_path):
    log_dir = tmp_path / "nested" / "logs"
    with patch.object(logging_config, "ENABLE_FILE_LOGGING", True), patch.object(
        logging_config, "LOG_FILE_DIR", str(log_dir)
    ):
        setup_logging(enable_file=True)

    (file_handler,) = _root_handlers(logging.FileHandler)
    assert file_handler.level == logging.DEBUG
    assert file_handler.baseFilename == str(log_dir / LOG_FILE_NAME)


def test_file_handler_needs_both_switches():
    with patch.object(logging_config, "ENABLE_FILE_LOGGING", True):
        setup_logging(enable_file=False)
    assert _root_handlers(logging.FileHandler) == []

    with patch.object(logging_config, "ENABLE_FILE_LOGGING", False):
        setup_logging(enable_file=True)
    assert _root_handlers(logging.FileHandler) == []


def test_existing_root_handlers_are_replaced():
    stray = logging.StreamHandler()
    logging.getLogger().addHandler(stray)

    setup_logging(enable_file=False)

    assert stray not in logging.getLogger().handlers


@pytest.mark.parametrize("name,level", list(MODULE_LOG_LEVELS.items()))
def test_module_levels_applied(name, level):
    setup_logging(enable_file=False)

    assert logging.getLogger(name).level == getattr(logging, level)


def test_get_logger_is_stdlib_named_logger(caplog):
    logger = get_logger("indaba.server.api.v1.auth")

    assert logger is logging.getLogger("indaba.server.api.v1.auth")
    with caplog.at_level(logging.INFO, logger="indaba.server.api.v1.auth"):
        logger.info("Login succeeded")
    assert "Login succeeded" in caplog.text
