"""Adjustment CLI commands: show, accept, reject."""

import click
from rich.console import Console

from cli.commands.task import print_adjustment
from cli.utils import get_components, run

console = Console()


@click.group()
def adjustment():
    """Resolve suggested plan adjustments."""
    pass


@adjustment.command("show")
@click.argument("adjustment_id")
def adjustment_show(adjustment_id: str):
    """Show an adjustment and its options."""
    c = get_components()
    adj = run(c.planner.execution.get_adjustment(adjustment_id))
    print_adjustment(adj)
    console.print(f"State: {adj.state.value}")


@adjustment.command("accept")
@click.argument("adjustment_id")
@click.option("-o", "--option", "option_id", help="Option id (default: the suggested one)")
def adjustment_accept(adjustment_id: str, option_id: str | None):
    """Apply an adjustment."""
    c = get_components()
    res = run(c.planner.execution.accept(adjustment_id, option_id))

    console.print(f"[green]Applied:[/] {res.task.title} -> {res.task.status.value}")
    if res.task.scheduled_date:
        console.print(f"  scheduled {res.task.scheduled_date}")
    for t in res.new_tasks:
        console.print(f"  + {t.title} ({t.estimated_duration} min, {t.scheduled_date})")
    if res.goal_cancelled:
        console.print("[yellow]Goal cancelled: no open tasks remain.[/]")


@adjustment.command("reject")
@click.argument("adjustment_id")
def adjustment_reject(adjustment_id: str):
    """Dismiss an adjustment and keep the task as is."""
    c = get_components()
    run(c.planner.execution.reject(adjustment_id))
    console.print("Adjustment rejected.")
