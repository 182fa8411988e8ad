import subprocess

import pytest

from scheduled_tasks_manager.core.system import task_scheduler
from scheduled_tasks_manager.core.system.task_scheduler import get_last_task_result
from scheduled_tasks_manager.error import (
    CommandNotFoundError,
    MissingArgumentError,
    SystemError,
    TaskQueryError,
)

SCHTASKS_OUTPUT = """
Folder: \\
HostName:                             HOST01
TaskName:                             \\Backup
Next Run Time:                        5/2/2024 12:00:00 PM
Status:                               Ready
Logon Mode:                           Interactive/Background
Last Run Time:                        5/1/2024 1:00:00 PM
Last Result:                          2147942402
Author:                               HOST01\\admin
Task To Run:                          C:\\Tools\\backup.exe

HostName:                             HOST01
TaskName:                             \\Backup
Last Result:                          0
"""


@pytest.fixture
def windows(mocker):
    mocker.patch.object(task_scheduler.platform, "system", return_value="Windows")
    mocker.patch.object(
        task_scheduler.shutil,
        "which",
        return_value="C:\\Windows\\System32\\schtasks.exe",
    )


def test_reads_last_result_of_first_record(windows, mocker):
    mock_run = mocker.patch.object(
        task_scheduler.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(
            args=[], returncode=0, stdout=SCHTASKS_OUTPUT, stderr=""
        ),
    )
    assert get_last_task_result("\\Backup") == "2147942402"
    command = mock_run.call_args[0][0]
    assert command[1:] == ["/Query", "/TN", "\\Backup", "/V", "/FO", "LIST"]


def test_parse_list_output_keeps_values_with_colons():
    fields = task_scheduler._parse_list_output(SCHTASKS_OUTPUT)
    assert fields["Task To Run"] == "C:\\Tools\\backup.exe"
    assert fields["Last Result"] == "2147942402"


def test_missing_field_returns_none(windows, mocker):
    mocker.patch.object(
        task_scheduler.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(
            args=[], returncode=0, stdout="TaskName: \\Backup\n", stderr=""
        ),
    )
    assert get_last_task_result("\\Backup") is None


def test_unknown_task(windows, mocker):
    mocker.patch.object(
        task_scheduler.subprocess,
        "run",
        side_effect=subprocess.CalledProcessError(
            1,
            "schtasks",
            stderr="ERROR: The system cannot find the file specified.",
        ),
    )
    with pytest.raises(TaskQueryError, match="not found"):
        get_last_task_result("\\Nope")


def test_other_query_failure(windows, mocker):
    mocker.patch.object(
        task_scheduler.subprocess,
        "run",
        side_effect=subprocess.CalledProcessError(
            1, "schtasks", stderr="ERROR: Access is denied."
        ),
    )
    with pytest.raises(TaskQueryError, match="Access is denied"):
        get_last_task_result("\\Backup")


def test_missing_schtasks(mocker):
    mocker.patch.object(task_scheduler.platform, "system", return_value="Windows")
    mocker.patch.object(task_scheduler.shutil, "which", return_value=None)
    with pytest.raises(CommandNotFoundError):
        get_last_task_result("\\Backup")


def test_not_windows(mocker):
    mocker.patch.object(task_scheduler.platform, "system", return_value="Darwin")
    with pytest.raises(SystemError):
        get_last_task_result("\\Backup")


def test_empty_task_name():
    with pytest.raises(MissingArgumentError):
        get_last_task_result("")
