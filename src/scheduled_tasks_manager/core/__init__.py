from .models import (
    EventRecord,
    ResultCodeMeaning,
    ResultCodeTranslation,
    ResultSource,
    TaskRun,
)
from .result_codes import translate_result_code
from .run_correlator import correlate_task_runs

__all__ = [
    "EventRecord",
    "ResultCodeMeaning",
    "ResultCodeTranslation",
    "ResultSource",
    "TaskRun",
    "translate_result_code",
    "correlate_task_runs",
]
