import click
import pytest

from scheduled_tasks_manager.cli.utils import handle_api_response


def test_handle_api_response_returns_success_unchanged(capsys):
    response = {"status": "success", "runs": []}
    assert handle_api_response(response) is response
    assert capsys.readouterr().out == ""


def test_handle_api_response_aborts_on_error(capsys):
    with pytest.raises(click.Abort):
        handle_api_response({"status": "error", "message": "Task not found."})
    assert "Error: Task not found." in capsys.readouterr().out
