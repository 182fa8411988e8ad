# scheduled_tasks_manager/cli/task_history.py
"""Click commands for inspecting scheduled task history.

Provides `runs` (reconstructed run history), `last-result` (the scheduler's
recorded last result) and `translate-code` (diagnose a bare status code).
"""

import logging
from typing import Optional

import click

from scheduled_tasks_manager.api import task_history as history_api
from scheduled_tasks_manager.cli.utils import (
    display_runs_table,
    display_translation,
    echo_json,
    handle_api_response as _handle_api_response,
    prompt_task_name,
)
from scheduled_tasks_manager.error import STMError

logger = logging.getLogger(__name__)


@click.command("runs")
@click.option("-t", "--task", "task_name", help="Scheduled task path to inspect.")
@click.option(
    "-n",
    "--max-runs",
    type=click.IntRange(min=1),
    default=None,
    help="Show at most this many of the most recent runs.",
)
@click.option(
    "-f",
    "--file",
    "events_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Read events from an exported wevtutil XML file instead of the live log.",
)
@click.option(
    "--strict",
    is_flag=True,
    default=None,
    help="Never attach events without a correlation id to a run.",
)
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
def runs(
    task_name: Optional[str],
    max_runs: Optional[int],
    events_file: Optional[str],
    strict: Optional[bool],
    as_json: bool,
):
    """Shows the recent runs of a scheduled task, newest first."""
    if not task_name:
        task_name = prompt_task_name()

    try:
        response = history_api.get_task_runs(
            task_name, max_runs=max_runs, events_file=events_file, strict=strict
        )
        response = _handle_api_response(response)
    except STMError as e:
        click.secho(f"Failed to read run history: {e}", fg="red")
        raise click.Abort()

    task_runs = response.get("runs", [])
    if as_json:
        echo_json([run.to_dict() for run in task_runs])
        return

    click.secho(f"Run history for task '{task_name}':", bold=True)
    display_runs_table(task_runs)


@click.command("last-result")
@click.option("-t", "--task", "task_name", help="Scheduled task path to query.")
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
def last_result(task_name: Optional[str], as_json: bool):
    """Shows the result of a task's most recent run."""
    if not task_name:
        task_name = prompt_task_name()

    try:
        response = _handle_api_response(history_api.get_last_run_result(task_name))
    except STMError as e:
        click.secho(f"Failed to get last run result: {e}", fg="red")
        raise click.Abort()

    translation = response.get("translation")
    if as_json:
        echo_json(
            {
                "task_name": task_name,
                "last_result": response.get("last_result"),
                "translation": translation.to_dict() if translation else None,
            }
        )
        return

    if translation is None:
        click.secho(f"Task '{task_name}' has no recorded result.", fg="yellow")
        return
    click.echo(f"Last result of task '{task_name}':")
    display_translation(translation)


@click.command("translate-code")
@click.argument("code")
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
def translate_code(code: str, as_json: bool):
    """Explains a task result code (decimal or 0x-prefixed hex)."""
    try:
        response = _handle_api_response(history_api.translate_result_code(code))
    except STMError as e:
        click.secho(f"Failed to translate result code: {e}", fg="red")
        raise click.Abort()

    translation = response["translation"]
    if as_json:
        echo_json(translation.to_dict())
        return
    display_translation(translation)
