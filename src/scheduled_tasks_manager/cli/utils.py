# scheduled_tasks_manager/cli/utils.py
"""
Shared helpers for the command-line interface.

Includes API response handling, interactive prompts and the plain-text
rendering of task runs and result-code translations.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import click
import questionary
from questionary import ValidationError, Validator

from scheduled_tasks_manager.core.models import ResultCodeTranslation, TaskRun
from scheduled_tasks_manager.core.result_codes import describe_meanings

logger = logging.getLogger(__name__)


class TaskNameValidator(Validator):
    """Rejects empty task names and names containing both quote characters."""

    def validate(self, document):
        name = document.text.strip()
        if not name:
            raise ValidationError(
                message="Task name cannot be empty.", cursor_position=0
            )
        if "'" in name and '"' in name:
            raise ValidationError(
                message="Task name cannot contain both ' and \".",
                cursor_position=len(document.text),
            )


def handle_api_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """Aborts with the API's error message if the call failed.

    Args:
        response: The dictionary returned by an API function.

    Returns:
        The response, for further use by the caller.

    Raises:
        click.Abort: If the response reports an error.
    """
    if response.get("status") == "error":
        message = response.get("message", "An unknown error occurred.")
        logger.debug(f"CLI: API returned error: {message}")
        click.secho(f"Error: {message}", fg="red")
        raise click.Abort()
    return response


def prompt_task_name() -> str:
    """Asks for a task name interactively.

    Raises:
        click.Abort: If the prompt is cancelled.
    """
    task_name = questionary.text(
        "Enter the scheduled task name (e.g. \\MyFolder\\MyTask):",
        validate=TaskNameValidator(),
    ).ask()
    if not task_name:
        raise click.Abort()
    return task_name.strip()


def format_timestamp(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_duration(value: timedelta) -> str:
    total = int(value.total_seconds())
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:d}:{minutes:02d}:{seconds:02d}"


def _result_color(translation: Optional[ResultCodeTranslation]) -> str:
    if translation is None:
        return "yellow"
    return "green" if translation.is_success else "red"


def display_runs_table(runs: List[TaskRun]) -> None:
    """Prints task runs as a table, newest first."""
    if not runs:
        click.secho("No runs found for this task.", fg="yellow")
        return

    header = f"{'START':<20} {'DURATION':<10} {'RESULT':<12} {'FLAGS':<8} MESSAGE"
    click.echo("-" * 95)
    click.secho(header, bold=True)
    click.echo("-" * 95)
    for run in runs:
        translation = run.result_translation
        hex_code = (translation.hex_code if translation else None) or (
            run.result_code or "-"
        )
        message = translation.message if translation else "No result recorded."
        flags = ""
        if run.launch_request_ignored:
            flags += "I"
        if run.has_ambiguous_result:
            flags += "A"
        click.echo(
            f"{format_timestamp(run.start_time):<20} "
            f"{format_duration(run.duration):<10} "
            + click.style(f"{hex_code:<12}", fg=_result_color(translation))
            + f" {flags or '-':<8} {message}"
        )
    click.echo("-" * 95)
    click.echo(
        "Flags: I = launch request ignored (instance already running), "
        "A = ambiguous result codes"
    )


def display_translation(translation: ResultCodeTranslation) -> None:
    """Prints a translation with every interpretation considered."""
    click.secho(
        f"{translation.hex_code or '?'} ({translation.raw_code})",
        bold=True,
    )
    click.secho(
        translation.message,
        fg="green" if translation.is_success else "red",
    )
    for row in describe_meanings(translation):
        constant = f" {row['constant_name']}" if row["constant_name"] else ""
        facility = f" [{row['facility']}]" if row["facility"] else ""
        click.echo(
            f"  {row['rank']}. {row['source']}{constant}{facility}: {row['message']}"
        )


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))
