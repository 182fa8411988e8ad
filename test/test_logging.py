import logging
import logging.handlers
import os

import pytest

from scheduled_tasks_manager.logging import (
    DEFAULT_LOG_KEEP,
    LOG_FORMAT,
    LOGGER_NAME,
    log_separator,
    setup_logging,
)


@pytest.fixture
def log_dir(tmp_path):
    yield str(tmp_path / "test_logs")


def _file_handlers(logger):
    return [
        h
        for h in logger.handlers
        if isinstance(h, logging.handlers.TimedRotatingFileHandler)
    ]


def test_setup_logging_creates_log_directory(log_dir):
    setup_logging(log_dir=log_dir)
    assert os.path.isdir(log_dir)


def test_setup_logging_adds_file_and_console_handlers(log_dir):
    logger = setup_logging(log_dir=log_dir)
    assert logger.name == LOGGER_NAME
    assert len(_file_handlers(logger)) == 1
    assert _file_handlers(logger)[0].backupCount == DEFAULT_LOG_KEEP
    assert len(logger.handlers) == 2


def test_setup_logging_levels(log_dir):
    logger = setup_logging(
        log_dir=log_dir, file_log_level=logging.DEBUG, cli_log_level=logging.ERROR
    )
    assert logger.level == logging.DEBUG
    file_handler = _file_handlers(logger)[0]
    console_handler = next(h for h in logger.handlers if h is not file_handler)
    assert file_handler.level == logging.DEBUG
    assert console_handler.level == logging.ERROR


def test_setup_logging_uses_custom_values(log_dir, mocker):
    mock_handler_cls = mocker.patch("logging.handlers.TimedRotatingFileHandler")
    mock_handler_cls.return_value.level = logging.INFO
    setup_logging(log_dir=log_dir, log_filename="custom.log", log_keep=5)
    mock_handler_cls.assert_called_once_with(
        os.path.join(log_dir, "custom.log"),
        when="midnight",
        interval=1,
        backupCount=5,
        encoding="utf-8",
    )


def test_setup_logging_does_not_duplicate_handlers(log_dir):
    setup_logging(log_dir=log_dir)
    logger = setup_logging(log_dir=log_dir)
    assert len(logger.handlers) == 2


def test_force_reconfigure_replaces_handlers(log_dir, tmp_path):
    first = setup_logging(log_dir=log_dir)
    old_handlers = list(first.handlers)
    other_dir = str(tmp_path / "other_logs")
    logger = setup_logging(log_dir=other_dir, force_reconfigure=True)
    assert len(logger.handlers) == 2
    assert not set(old_handlers) & set(logger.handlers)
    assert _file_handlers(logger)[0].baseFilename.startswith(other_dir)


def test_setup_logging_formatter(log_dir):
    logger = setup_logging(log_dir=log_dir)
    for handler in logger.handlers:
        assert handler.formatter._fmt == LOG_FORMAT


def test_setup_logging_handles_makedirs_error(tmp_path, mocker, caplog):
    mocker.patch(
        "scheduled_tasks_manager.logging.os.makedirs",
        side_effect=OSError("permission denied"),
    )
    logger = setup_logging(log_dir=str(tmp_path / "nope"))
    assert _file_handlers(logger) == []
    assert len(logger.handlers) == 1
    assert "Failed to create log handler" in caplog.text


def test_log_separator_writes_banner(log_dir):
    logger = setup_logging(log_dir=log_dir)
    log_separator(logger, app_name="Scheduled Tasks Manager", app_version="1.2.3")
    with open(_file_handlers(logger)[0].baseFilename, encoding="utf-8") as f:
        content = f.read()
    assert "Scheduled Tasks Manager v1.2.3" in content
    assert "=" * 100 in content
