"""Wayfinder command line."""

import click

from cli.commands import adjustment, goal, memory, task
from cli.config import load_config_model
from cli.logging_config import setup_logging
from observability import log_run_summary


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def cli(verbose: bool, json_logs: bool):
    """Wayfinder - personal memory and adaptive goal planning."""
    try:
        config = load_config_model()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    log_cfg = config.logging
    setup_logging(
        json_mode=json_logs or log_cfg.json_mode,
        level="DEBUG" if verbose else log_cfg.level,
        log_file=config.paths.log_file,
        file_level=log_cfg.file_level,
    )
    click.get_current_context().call_on_close(log_run_summary)


cli.add_command(memory)
cli.add_command(goal)
cli.add_command(task)
cli.add_command(adjustment)


if __name__ == "__main__":
    cli()
