import logging
import os
from datetime import datetime, timedelta, timezone

import pytest

from scheduled_tasks_manager.core.models import EventRecord
from scheduled_tasks_manager.instances import reset_settings_instance
from scheduled_tasks_manager.logging import LOGGER_NAME

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")
BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """
    Points the application data directory at a temporary location so the
    config file and log directory never touch the real user profile.
    """
    test_data_dir = tmp_path / "test_data"
    test_data_dir.mkdir()
    monkeypatch.setenv("SCHEDULED_TASKS_MANAGER_DATA_DIR", str(test_data_dir))
    reset_settings_instance()

    yield test_data_dir

    reset_settings_instance()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Closes any handlers a test attached to the package logger."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def history_file():
    """An exported wevtutil RenderedXml file with runs of `\\Backup`."""
    return os.path.join(DATA_DIR, "task_history.xml")


@pytest.fixture
def make_event():
    """Factory for event records timestamped relative to a fixed base time."""

    def _make_event(
        record_id,
        seconds=0,
        correlation_id=None,
        display_name="",
        task_name="\\Backup",
        **fields,
    ):
        return EventRecord(
            record_id=record_id,
            time_created=BASE_TIME + timedelta(seconds=seconds),
            correlation_id=correlation_id,
            display_name=display_name,
            named_fields=fields,
            task_name=task_name,
        )

    return _make_event
