"""Memory CLI commands: add, search, recall, upcoming, skills, evidence."""

from datetime import date

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, run
from memory.models import SearchFilters
from memory.recall import relevance_label
from shared_types import MemoryType

console = Console()

MEMORY_TYPES = [t.value for t in MemoryType]


@click.group()
def memory():
    """Personal memories: capture, search and recall."""
    pass


@memory.command("add")
@click.argument("text")
@click.option("-t", "--type", "memory_type", default=MemoryType.IMPORTANT_INFO.value,
              type=click.Choice(MEMORY_TYPES), help="Memory type")
@click.option("--tags", help="Comma-separated tags")
@click.option("--remind", type=click.DateTime(formats=["%Y-%m-%d"]), help="Reminder date (YYYY-MM-DD)")
@click.option("--impact", default=0.0, type=float, help="Impact score (>= 0)")
def memory_add(text: str, memory_type: str, tags: str | None, remind, impact: float):
    """Capture a memory. Tags and entities are extracted automatically."""
    c = get_components()
    tag_list = [t.strip() for t in tags.split(",")] if tags else []

    record = run(
        c.pipeline.capture(
            c.owner_id,
            memory_type,
            text,
            user_tags=tag_list,
            reminder_date=remind.date() if remind else None,
            impact_score=impact,
        )
    )

    console.print(f"[green]Saved:[/] {record.id[:8]} [{record.type.value}]")
    if record.tags:
        console.print(f"[dim]Tags: {', '.join(record.tags)}[/]")


@memory.command("search")
@click.argument("query", required=False, default="")
@click.option("-t", "--type", "memory_type", type=click.Choice(MEMORY_TYPES), help="Filter by type")
@click.option("--tag", "tags", multiple=True, help="Filter by tag (repeatable, matches any)")
@click.option("-n", "--limit", default=None, type=int, help="Max results")
@click.option("--explain", is_flag=True, help="Show score breakdown")
def memory_search(query: str, memory_type: str | None, tags: tuple, limit: int | None, explain: bool):
    """Ranked search over memories. Without QUERY, browse by filter."""
    c = get_components()
    filters = SearchFilters(type=MemoryType(memory_type) if memory_type else None, tags=list(tags))

    async def _search():
        try:
            return await c.ranker.search(
                c.owner_id, query, filters, limit=limit or c.config.retrieval.default_results
            )
        finally:
            await c.ranker.flush()

    results = run(_search())
    if not results:
        console.print("No matching memories.")
        return

    table = Table(title=f"Memories: {query}" if query else "Memories")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Type", width=14)
    table.add_column("Memory")
    table.add_column("Score", width=6)
    if explain:
        table.add_column("Why")

    for r in results:
        row = [r.record.id[:8], r.record.type.value, r.record.text[:80], f"{r.score:.2f}"]
        if explain:
            row.append(r.explanation.as_text())
        table.add_row(*row)

    console.print(table)


@memory.command("recall")
@click.argument("goal_title")
@click.option("-n", "--limit", default=5, help="Max memories")
def memory_recall(goal_title: str, limit: int):
    """Memories relevant to a goal, with short insights."""
    c = get_components()

    async def _recall():
        try:
            return await c.recall.for_goal(c.owner_id, goal_title, limit=limit)
        finally:
            await c.ranker.flush()

    result = run(_recall())
    if not result.memories:
        console.print("No related memories yet.")
        return

    for m in result.memories:
        console.print(f"[dim]{m.record.id[:8]}[/] [cyan]{relevance_label(m.record)}[/] {m.record.text}")
    console.print()
    for insight in result.insights:
        console.print(f"  • {insight}")
    console.print(f"[dim]({result.insights_source.value})[/]")


@memory.command("upcoming")
@click.option("-d", "--days", default=7, help="Days ahead")
def memory_upcoming(days: int):
    """Reminders due within the next DAYS days."""
    c = get_components()
    upcoming = run(c.recall.upcoming_dates(c.owner_id, days_ahead=days, today=date.today()))

    if not upcoming:
        console.print(f"Nothing due in the next {days} days.")
        return

    for item in upcoming:
        when = "today" if item.days_until == 0 else f"in {item.days_until}d"
        console.print(f"[bold]{item.record.reminder_date}[/] ({when}) {item.record.text}")
        console.print(f"  [dim]{item.suggestion}[/]")


@memory.command("skills")
def memory_skills():
    """Skills picked up from captured memories."""
    c = get_components()
    skills = run(c.memory_store.list_skills(c.owner_id))
    if not skills:
        console.print("No skills recorded yet.")
        return

    table = Table(title="Skills")
    table.add_column("Skill")
    table.add_column("Evidence", width=8)
    for s in skills:
        table.add_row(s.name, str(s.evidence_count))
    console.print(table)


@memory.command("evidence")
@click.argument("skill")
@click.option("-n", "--limit", default=10, help="Max memories")
def memory_evidence(skill: str, limit: int):
    """Memories that back up SKILL (partial names match)."""
    c = get_components()
    records = run(c.recall.skill_evidence(c.owner_id, skill, limit=limit))
    if not records:
        console.print(f"No evidence for '{skill}' yet.")
        return

    for r in records:
        console.print(f"[dim]{r.id[:8]}[/] [cyan]{relevance_label(r)}[/] {r.text}")
