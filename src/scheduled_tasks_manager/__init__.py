# scheduled_tasks_manager/__init__.py
import logging

from scheduled_tasks_manager.config.const import get_installed_version
from scheduled_tasks_manager.core.models import (
    EventRecord,
    ResultCodeTranslation,
    ResultSource,
    TaskRun,
)
from scheduled_tasks_manager.core.result_codes import translate_result_code
from scheduled_tasks_manager.core.run_correlator import correlate_task_runs

logger = logging.getLogger(__name__)

__version__ = get_installed_version()

__all__ = [
    "EventRecord",
    "ResultCodeTranslation",
    "ResultSource",
    "TaskRun",
    "translate_result_code",
    "correlate_task_runs",
    "__version__",
]
