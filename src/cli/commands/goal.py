"""Goal CLI commands: clarify, plan, balance, status, cancel."""

from datetime import date

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, run
from decisions import BalanceReport
from shared_types import LifeDimension

console = Console()


def _parse_answers(pairs: tuple[str, ...]) -> dict:
    answers = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--answer")
        answers[key.strip()] = value.strip()
    return answers


def _print_balance(report: BalanceReport):
    style = "green" if report.is_balanced else "yellow"
    console.print(f"[{style}]{report.suggestion}[/]")
    dist = ", ".join(f"{d.value}={n}" for d, n in report.distribution.items() if n)
    console.print(f"[dim]Goals by dimension: {dist}[/]")


async def _clarify(c, prompt: str):
    try:
        return await c.planner.clarify(c.owner_id, prompt)
    finally:
        await c.ranker.flush()


@click.group()
def goal():
    """Plan goals and track their progress."""
    pass


@goal.command("clarify")
@click.argument("prompt")
def goal_clarify(prompt: str):
    """Questions that sharpen a vague goal."""
    c = get_components()
    decision = run(_clarify(c, prompt))
    for q in decision.value.questions:
        console.print(f"[bold]{q.id}[/]: {q.prompt}")
        for o in q.options:
            console.print(f"    {o.value}  [dim]{o.label}[/]")
    console.print(f"[dim]({decision.source.value})[/]")


@goal.command("plan")
@click.argument("prompt")
@click.option("-a", "--answer", "answers", multiple=True, help="Clarifying answer as KEY=VALUE")
@click.option("-i", "--interactive", is_flag=True, help="Ask the clarifying questions first")
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), help="First task date (default today)")
def goal_plan(prompt: str, answers: tuple, interactive: bool, start):
    """Turn a goal into a SMART plan with daily tasks."""
    c = get_components()
    answer_map = _parse_answers(answers)

    if interactive:
        decision = run(_clarify(c, prompt))
        for q in decision.value.questions:
            choices = [o.value for o in q.options]
            answer_map[q.id] = click.prompt(q.prompt, type=click.Choice(choices), default=choices[0])

    async def _plan():
        try:
            return await c.planner.plan(
                c.owner_id, prompt, answer_map, start_date=start.date() if start else date.today()
            )
        finally:
            await c.ranker.flush()

    result = run(_plan())
    g = result.goal
    console.print(f"[green]Goal created:[/] {g.id[:8]} {g.title} [dim]({g.dimension.value}, {result.source.value})[/]")
    for name, value in g.smart.items():
        if value:
            console.print(f"  [bold]{name}[/]: {value}")

    table = Table(title="Tasks")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Date", width=10)
    table.add_column("Milestone")
    table.add_column("Task")
    table.add_column("Min", width=4)
    table.add_column("Energy", width=6)
    for t in result.tasks:
        table.add_row(
            t.id[:8], str(t.scheduled_date), t.milestone or "", t.title,
            str(t.estimated_duration), t.energy_level.value,
        )
    console.print(table)

    if result.balance and not result.balance.is_balanced:
        _print_balance(result.balance)


@goal.command("balance")
@click.option("-d", "--dimension", default=LifeDimension.GROWTH.value,
              type=click.Choice([d.value for d in LifeDimension]), help="Dimension of a candidate goal")
def goal_balance(dimension: str):
    """Life-wheel balance of your goals."""
    c = get_components()
    _print_balance(run(c.planner.balance(c.owner_id, dimension)))


@goal.command("status")
@click.option("--all", "include_inactive", is_flag=True, help="Include completed and cancelled goals")
def goal_status(include_inactive: bool):
    """List goals with progress."""
    c = get_components()
    goals = run(c.planner.goals.list_goals(c.owner_id, include_inactive=include_inactive))

    if not goals:
        console.print("No goals yet. Try: wayfinder goal plan \"...\"")
        return

    table = Table(title="Goals")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Goal")
    table.add_column("Dimension", width=16)
    table.add_column("Status", width=9)
    table.add_column("Progress", width=8)
    for g in goals:
        table.add_row(g.id[:8], g.title, g.dimension.value, g.status.value, f"{g.progress}%")
    console.print(table)


@goal.command("cancel")
@click.argument("goal_id")
def goal_cancel(goal_id: str):
    """Cancel a goal; its history is kept."""
    c = get_components()
    g = run(c.planner.goals.cancel_goal(goal_id))
    console.print(f"[yellow]Cancelled:[/] {g.title}")
