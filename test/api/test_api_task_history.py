import pytest

from scheduled_tasks_manager.api.task_history import (
    get_last_run_result,
    get_task_runs,
    translate_result_code,
)
from scheduled_tasks_manager.config.const import TASK_SCHEDULER_LOG_NAME
from scheduled_tasks_manager.core.models import ResultSource
from scheduled_tasks_manager.error import (
    EventLogError,
    MissingArgumentError,
    TaskQueryError,
    UserInputError,
)
from scheduled_tasks_manager.instances import get_settings_instance


class TestGetTaskRuns:
    def test_runs_from_export_file(self, history_file):
        result = get_task_runs("\\Backup", events_file=history_file)

        assert result["status"] == "success"
        assert result["event_count"] == 10
        runs = result["runs"]
        assert [run.correlation_id[-4:] for run in runs] == ["0003", "0002", "0001"]

        ignored, failed, succeeded = runs
        assert ignored.launch_request_ignored is True
        assert ignored.result_translation is None

        assert failed.result_codes == ("2147942402",)
        assert failed.result_translation.hex_code == "0x80070002"
        assert len(failed.result_translation.meanings) == 2
        assert failed.duration.total_seconds() == 6

        assert succeeded.result_translation.is_success is True
        assert succeeded.duration.total_seconds() == 31.5
        assert [e.record_id for e in succeeded.events] == [1005, 1004, 1003, 1002, 1001]

    def test_task_name_match_ignores_case(self, history_file):
        result = get_task_runs("backup", events_file=history_file)
        assert len(result["runs"]) == 3

    def test_max_runs(self, history_file):
        result = get_task_runs("\\Backup", max_runs=1, events_file=history_file)
        assert len(result["runs"]) == 1
        assert result["runs"][0].launch_request_ignored is True

    def test_max_runs_from_settings(self, history_file):
        get_settings_instance().set("history.max_runs", 2)
        result = get_task_runs("\\Backup", events_file=history_file)
        assert len(result["runs"]) == 2

    def test_strict_excludes_uncorrelated(self, history_file):
        result = get_task_runs("\\Backup", events_file=history_file, strict=True)
        succeeded = result["runs"][-1]
        assert 1002 not in [e.record_id for e in succeeded.events]

    def test_strict_from_settings(self, history_file):
        get_settings_instance().set("history.absorb_uncorrelated", False)
        result = get_task_runs("\\Backup", events_file=history_file)
        assert len(result["runs"][-1].events) == 4

    @pytest.mark.parametrize("max_runs", [0, -3, "5"])
    def test_invalid_max_runs(self, max_runs, history_file):
        with pytest.raises(UserInputError):
            get_task_runs("\\Backup", max_runs=max_runs, events_file=history_file)

    def test_missing_task_name(self):
        with pytest.raises(MissingArgumentError):
            get_task_runs("")

    def test_missing_file_is_error_response(self, tmp_path):
        result = get_task_runs("\\Backup", events_file=str(tmp_path / "none.xml"))
        assert result["status"] == "error"
        assert "not found" in result["message"]

    def test_live_query_uses_settings(self, mocker, make_event):
        mock_query = mocker.patch(
            "scheduled_tasks_manager.core.system.event_log.query_task_events",
            return_value=[make_event(1, 0, "A"), make_event(2, 5, "A")],
        )
        result = get_task_runs("\\Backup")

        assert result["status"] == "success"
        assert len(result["runs"]) == 1
        mock_query.assert_called_once_with(
            "\\Backup", max_events=500, log_name=TASK_SCHEDULER_LOG_NAME
        )

    def test_live_query_failure_is_error_response(self, mocker):
        mocker.patch(
            "scheduled_tasks_manager.core.system.event_log.query_task_events",
            side_effect=EventLogError("wevtutil failed"),
        )
        result = get_task_runs("\\Backup")
        assert result["status"] == "error"
        assert "wevtutil failed" in result["message"]

    def test_unexpected_failure_is_error_response(self, mocker):
        mocker.patch(
            "scheduled_tasks_manager.core.system.event_log.query_task_events",
            side_effect=RuntimeError("boom"),
        )
        result = get_task_runs("\\Backup")
        assert result["status"] == "error"
        assert "Unexpected error" in result["message"]


class TestTranslateResultCode:
    def test_success(self):
        result = translate_result_code("0x8004131F")
        assert result["status"] == "success"
        assert result["translation"].constant_name == "SCHED_E_ALREADY_RUNNING"

    def test_unparseable_code_still_succeeds(self):
        result = translate_result_code("bogus")
        assert result["status"] == "success"
        assert result["translation"].source == ResultSource.UNKNOWN

    @pytest.mark.parametrize("code", [None, "", "   "])
    def test_missing_code(self, code):
        with pytest.raises(MissingArgumentError):
            translate_result_code(code)


class TestGetLastRunResult:
    def test_success(self, mocker):
        mocker.patch(
            "scheduled_tasks_manager.core.system.task_scheduler.get_last_task_result",
            return_value="267009",
        )
        result = get_last_run_result("\\Backup")
        assert result["status"] == "success"
        assert result["last_result"] == "267009"
        assert result["translation"].constant_name == "SCHED_S_TASK_RUNNING"

    def test_no_result_recorded(self, mocker):
        mocker.patch(
            "scheduled_tasks_manager.core.system.task_scheduler.get_last_task_result",
            return_value=None,
        )
        result = get_last_run_result("\\Backup")
        assert result["status"] == "success"
        assert result["translation"] is None

    def test_query_failure(self, mocker):
        mocker.patch(
            "scheduled_tasks_manager.core.system.task_scheduler.get_last_task_result",
            side_effect=TaskQueryError("Task '\\Nope' not found in Task Scheduler."),
        )
        result = get_last_run_result("\\Nope")
        assert result["status"] == "error"
        assert "not found" in result["message"]

    def test_missing_task_name(self):
        with pytest.raises(MissingArgumentError):
            get_last_run_result("")
