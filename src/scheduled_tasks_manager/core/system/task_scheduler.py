# scheduled_tasks_manager/core/system/task_scheduler.py
"""
Read-only queries against the Windows Task Scheduler.
"""

import platform
import shutil
import subprocess
import logging
from typing import Dict, Optional

from scheduled_tasks_manager.error import (
    CommandNotFoundError,
    MissingArgumentError,
    SystemError,
    TaskQueryError,
)

logger = logging.getLogger(__name__)

LAST_RESULT_KEY = "Last Result"


def _parse_list_output(output: str) -> Dict[str, str]:
    """Parses `schtasks /FO LIST` output into a dict of its first record."""
    fields: Dict[str, str] = {}
    for line in output.splitlines():
        if not line.strip():
            if fields:
                break  # Only the first record is needed
            continue
        key, sep, value = line.partition(":")
        if sep and key.strip() and key.strip() not in fields:
            fields[key.strip()] = value.strip()
    return fields


def get_last_task_result(task_name: str) -> Optional[str]:
    """
    Retrieves the result code of a task's most recent run.

    Uses `schtasks /Query /V /FO LIST` and reads the `Last Result` field.

    Args:
        task_name: The task path, including any folder
                   (e.g., "MyTasks\\MyTask").

    Returns:
        The last result as reported by schtasks (decimal text), or None if
        the field is absent.

    Raises:
        MissingArgumentError: If `task_name` is empty.
        SystemError: If not running on Windows.
        CommandNotFoundError: If the 'schtasks' command is not found.
        TaskQueryError: If the task does not exist or the query fails.
    """
    if not task_name:
        raise MissingArgumentError("Task name cannot be empty.")
    if platform.system() != "Windows":
        raise SystemError("Querying scheduled tasks is only supported on Windows.")

    schtasks_cmd = shutil.which("schtasks")
    if not schtasks_cmd:
        logger.error("'schtasks' command not found. Cannot query Windows tasks.")
        raise CommandNotFoundError("schtasks")

    logger.debug(f"Querying last result for task: '{task_name}'")
    try:
        result = subprocess.run(
            [schtasks_cmd, "/Query", "/TN", task_name, "/V", "/FO", "LIST"],
            capture_output=True,
            text=True,
            check=True,
            encoding="utf-8",
            errors="replace",
        )
    except subprocess.CalledProcessError as e:
        stderr_lower = (e.stderr or "").lower()
        if (
            "the system cannot find the file specified" in stderr_lower
            or "does not exist" in stderr_lower
        ):
            raise TaskQueryError(f"Task '{task_name}' not found in Task Scheduler.") from e
        logger.error(
            f"Error running 'schtasks /Query' for task '{task_name}': {e.stderr}"
        )
        raise TaskQueryError(
            f"Failed to query task '{task_name}': {(e.stderr or '').strip()}"
        ) from e
    except FileNotFoundError:
        logger.error("'schtasks' command not found unexpectedly during query.")
        raise CommandNotFoundError("schtasks")

    fields = _parse_list_output(result.stdout or "")
    last_result = fields.get(LAST_RESULT_KEY)
    logger.debug(f"Task '{task_name}' last result: {last_result!r}")
    return last_result or None
