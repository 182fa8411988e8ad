# scheduled_tasks_manager/__main__.py
"""
Main entry point for the Scheduled Tasks Manager command-line interface.

This module is responsible for setting up the application environment (logging,
settings), assembling all `click` commands, and launching the main
application logic.
"""

import logging
import sys

import click

from . import __version__
from .config import app_name_title
from .instances import get_settings_instance
from .logging import log_separator, setup_logging
from .cli import task_history


# --- Main Click Group Definition ---
@click.group(
    invoke_without_command=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
)
@click.version_option(
    __version__, "-v", "--version", message=f"{app_name_title} %(version)s"
)
@click.pass_context
def cli(ctx: click.Context):
    """Inspect Windows scheduled task run history and result codes.

    Reconstructs a task's individual runs from the Task Scheduler operational
    event log and explains the status codes those runs reported.
    """
    try:
        settings = get_settings_instance()
        logger = setup_logging(
            log_dir=settings.get("paths.logs"),
            log_keep=settings.get("retention.logs"),
            file_log_level=settings.get("logging.file_level"),
            cli_log_level=settings.get("logging.cli_level"),
            force_reconfigure=True,
        )
        log_separator(logger, app_name=app_name_title, app_version=__version__)
        logger.info(f"Starting {app_name_title} v{__version__} (CLI context)...")

    except Exception as setup_e:
        logging.getLogger("stm_critical_setup").critical(
            f"An unrecoverable error occurred during CLI application startup: {setup_e}",
            exc_info=True,
        )
        click.secho(f"CRITICAL STARTUP ERROR: {setup_e}", fg="red", bold=True)
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# --- Command Assembly ---
def _add_commands_to_cli():
    """Attaches all commands to the main CLI group."""
    cli.add_command(task_history.runs)
    cli.add_command(task_history.last_result)
    cli.add_command(task_history.translate_code)


_add_commands_to_cli()


def main():
    """Main execution function wrapped for final, fatal exception handling."""
    try:
        cli()
    except Exception as e:
        # Last-resort catch-all for unexpected errors not handled by Click.
        logger = logging.getLogger("stm_critical_fatal")
        logger.critical("A fatal, unhandled error occurred.", exc_info=True)
        click.secho(
            f"\nFATAL UNHANDLED ERROR: {type(e).__name__}: {e}", fg="red", bold=True
        )
        click.secho("Please check the logs for more details.", fg="yellow")
        sys.exit(1)


if __name__ == "__main__":
    main()
