# scheduled_tasks_manager/api/task_history.py
"""Provides API functions for inspecting scheduled task history.

This module is the interface layer between the command line (or any other
caller) and the history engine. It loads a task's event records from the live
event log or an exported file, reconstructs the task's runs, and translates
result codes. Every function returns a structured dictionary response:
`{"status": "success", ...}` or `{"status": "error", "message": "..."}`.
"""

import logging
from typing import Any, Dict, List, Optional

from scheduled_tasks_manager.core.models import EventRecord
from scheduled_tasks_manager.core.result_codes import (
    translate_result_code as core_translate_result_code,
)
from scheduled_tasks_manager.core.run_correlator import correlate_task_runs
from scheduled_tasks_manager.core.system import event_log as core_event_log
from scheduled_tasks_manager.core.system import task_scheduler as core_task_scheduler
from scheduled_tasks_manager.error import (
    STMError,
    MissingArgumentError,
    UserInputError,
)
from scheduled_tasks_manager.instances import get_settings_instance

logger = logging.getLogger(__name__)


def _validate_max_runs(max_runs: Any) -> Optional[int]:
    if max_runs is None:
        return None
    if isinstance(max_runs, bool) or not isinstance(max_runs, int) or max_runs < 1:
        raise UserInputError(
            f"Invalid run limit '{max_runs}'. Must be a positive integer."
        )
    return max_runs


def _load_task_events(task_name: str, events_file: Optional[str]) -> List[EventRecord]:
    """Loads a task's events from an export file or the live event log."""
    if events_file:
        records = core_event_log.load_events_file(events_file)
        return core_event_log.filter_task_events(records, task_name)

    settings = get_settings_instance()
    return core_event_log.query_task_events(
        task_name,
        max_events=settings.get("history.max_events", 500),
        log_name=settings.get(
            "history.log_name", core_event_log.TASK_SCHEDULER_LOG_NAME
        ),
    )


def get_task_runs(
    task_name: str,
    max_runs: Optional[int] = None,
    events_file: Optional[str] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """Reconstructs the recent runs of a scheduled task.

    Args:
        task_name: The task path, e.g. `\\MyFolder\\MyTask`.
        max_runs: The maximum number of runs to return, newest first.
            Defaults to the `history.max_runs` setting (all runs if unset).
        events_file: Read events from this exported XML file instead of
            querying the live event log.
        strict: If True, records without a correlation token are never
            attached to a run. Defaults to the inverse of the
            `history.absorb_uncorrelated` setting.

    Returns:
        On success: `{"status": "success", "task_name": ..., "runs": [TaskRun, ...],
        "event_count": int}`.
        On error: `{"status": "error", "message": "..."}`.

    Raises:
        MissingArgumentError: If `task_name` is not provided.
        UserInputError: If `max_runs` is not a positive integer.
    """
    if not task_name:
        raise MissingArgumentError("Task name cannot be empty.")

    settings = get_settings_instance()
    if max_runs is None:
        max_runs = settings.get("history.max_runs")
    max_runs = _validate_max_runs(max_runs)
    if strict is None:
        absorb_uncorrelated = bool(settings.get("history.absorb_uncorrelated", True))
    else:
        absorb_uncorrelated = not strict

    logger.info(
        f"API: Reconstructing run history for task '{task_name}' "
        f"(max_runs={max_runs}, strict={not absorb_uncorrelated})..."
    )
    try:
        events = _load_task_events(task_name, events_file)
        runs = list(
            correlate_task_runs(
                task_name,
                events,
                max_runs=max_runs,
                absorb_uncorrelated=absorb_uncorrelated,
            )
        )
        logger.info(
            f"API: Found {len(runs)} run(s) in {len(events)} event(s) for task '{task_name}'."
        )
        return {
            "status": "success",
            "task_name": task_name,
            "runs": runs,
            "event_count": len(events),
        }
    except STMError as e:
        logger.error(
            f"API: Failed to read run history for task '{task_name}': {e}",
            exc_info=True,
        )
        return {"status": "error", "message": f"Failed to read run history: {e}"}
    except Exception as e:
        logger.error(
            f"API: Unexpected error reading run history for task '{task_name}': {e}",
            exc_info=True,
        )
        return {
            "status": "error",
            "message": f"Unexpected error reading run history: {e}",
        }


def translate_result_code(code: Any) -> Dict[str, Any]:
    """Translates a bare status code.

    Args:
        code: The code as an integer, decimal text or `0x`-prefixed hex text.

    Returns:
        `{"status": "success", "translation": ResultCodeTranslation}`. Codes
        that cannot be parsed still succeed with an `Unknown` translation.

    Raises:
        MissingArgumentError: If `code` is None or empty text.
    """
    if code is None or (isinstance(code, str) and not code.strip()):
        raise MissingArgumentError("Result code cannot be empty.")

    logger.debug(f"API: Translating result code {code!r}.")
    translation = core_translate_result_code(code)
    return {"status": "success", "translation": translation}


def get_last_run_result(task_name: str) -> Dict[str, Any]:
    """Retrieves and translates the result of a task's most recent run.

    Returns:
        On success: `{"status": "success", "task_name": ..., "last_result": str | None,
        "translation": ResultCodeTranslation | None}`.
        On error: `{"status": "error", "message": "..."}`.

    Raises:
        MissingArgumentError: If `task_name` is not provided.
    """
    if not task_name:
        raise MissingArgumentError("Task name cannot be empty.")

    logger.debug(f"API: Getting last run result for task '{task_name}'.")
    try:
        last_result = core_task_scheduler.get_last_task_result(task_name)
        translation = (
            core_translate_result_code(last_result) if last_result is not None else None
        )
        return {
            "status": "success",
            "task_name": task_name,
            "last_result": last_result,
            "translation": translation,
        }
    except STMError as e:
        logger.error(
            f"API: Failed to get last result for task '{task_name}': {e}",
            exc_info=True,
        )
        return {"status": "error", "message": f"Failed to get last run result: {e}"}
    except Exception as e:
        logger.error(
            f"API: Unexpected error getting last result for task '{task_name}': {e}",
            exc_info=True,
        )
        return {
            "status": "error",
            "message": f"Unexpected error getting last run result: {e}",
        }
