"""Task CLI commands: today, start, checkin, review."""

from datetime import date

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, run
from memory.recall import REFLECTION_PERIOD_DAYS
from planner.models import Adjustment
from shared_types import CheckInOutcome, ReasonCode

console = Console()


def print_adjustment(adjustment: Adjustment):
    console.print(f"\n[bold]Suggested adjustment[/] {adjustment.id[:8]} [dim]({adjustment.source.value})[/]")
    console.print(f"  {adjustment.rationale}")
    for o in adjustment.options:
        marker = "*" if o.action == adjustment.adjustment_type else " "
        console.print(f"  {marker} {o.id}: {o.label} [dim]({o.action.value})[/]")
    for t in adjustment.replacement_tasks:
        console.print(f"      - {t.title} ({t.estimated_duration} min)")
    if adjustment.encouragement:
        console.print(f"  [italic]{adjustment.encouragement}[/]")
    console.print(f"[dim]wayfinder adjustment accept {adjustment.id} [--option ID][/]")


@click.group()
def task():
    """Daily tasks and check-ins."""
    pass


@task.command("today")
@click.option("--date", "day", type=click.DateTime(formats=["%Y-%m-%d"]), help="Day to show (default today)")
def task_today(day):
    """Tasks scheduled for a day."""
    c = get_components()
    target = day.date() if day else date.today()
    tasks = run(c.planner.execution.tasks_for_day(c.owner_id, target))

    if not tasks:
        console.print(f"No tasks for {target}.")
        return

    table = Table(title=f"Tasks for {target}")
    table.add_column("ID", style="dim")
    table.add_column("Task")
    table.add_column("Min", width=4)
    table.add_column("Energy", width=6)
    table.add_column("Status", width=11)
    for t in tasks:
        table.add_row(t.id, t.title, str(t.estimated_duration), t.energy_level.value, t.status.value)
    console.print(table)


@task.command("start")
@click.argument("task_id")
def task_start(task_id: str):
    """Mark a task in progress."""
    c = get_components()
    t = run(c.planner.execution.start_task(task_id))
    console.print(f"[green]Started:[/] {t.title}")


@task.command("checkin")
@click.argument("task_id")
@click.argument("outcome", type=click.Choice([o.value for o in CheckInOutcome]))
@click.option("-r", "--reason", type=click.Choice([r.value for r in ReasonCode]), help="Why it did not go to plan")
@click.option("--note", default="", help="Free-form note")
@click.option("--minutes", type=int, help="Actual minutes spent")
@click.option("--mood", type=click.IntRange(1, 5), help="Mood 1-5")
def task_checkin(task_id: str, outcome: str, reason: str | None, note: str, minutes: int | None, mood: int | None):
    """Record how a task went; missed tasks with a reason get an adjustment."""
    c = get_components()
    result = run(
        c.planner.check_in(
            task_id, outcome, reason, note, actual_duration=minutes, mood_rating=mood
        )
    )
    console.print(f"[green]Checked in:[/] {result.task.title} -> {result.task.status.value}")
    if result.adjustment:
        print_adjustment(result.adjustment)


@task.command("review")
@click.option("-p", "--period", default="weekly", type=click.Choice(list(REFLECTION_PERIOD_DAYS)),
              help="Review period")
def task_review(period: str):
    """Completion stats, common reasons for missed tasks and suggested actions."""
    c = get_components()
    report = run(c.planner.reflect(c.owner_id, period))

    if not report.total:
        console.print(f"No check-ins in the {period} period.")
        return

    console.print(
        f"[bold]{period.capitalize()} review[/]: {report.completed}/{report.total} completed "
        f"({report.completion_rate}%), {report.partial} partial, {report.not_completed} missed"
    )
    for reason, count in report.reason_counts.items():
        console.print(f"  {reason.value}: {count}")
    for insight in report.insights:
        console.print(f"  • {insight}")
    for action in report.suggested_actions:
        console.print(f"  [cyan]{action.type}[/] {action.message}")
    if report.memories_by_type:
        captured = ", ".join(f"{t} {n}" for t, n in sorted(report.memories_by_type.items()))
        console.print(f"[dim]Memories captured: {captured}[/]")
