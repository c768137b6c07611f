"""Contextual recall: memories surfaced for a goal, a date window or a review period."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

import structlog

from shared_types import DecisionSource, MemoryType

from .models import MemoryRecord, RankedMemory, SearchFilters
from .ranker import HybridRanker
from .store import MemoryStore

logger = structlog.get_logger()

RELEVANCE_LABELS = {
    MemoryType.PERSONAL_TRAIT: "evidence of ability",
    MemoryType.KEY_EVENT: "related experience",
    MemoryType.DATE_REMINDER: "time marker",
    MemoryType.IMPORTANT_INFO: "reference",
}

REFLECTION_PERIOD_DAYS = {"daily": 1, "weekly": 7, "monthly": 30}

# Types searched, in order, when recalling for a goal
_GOAL_RECALL_TYPES = (MemoryType.KEY_EVENT, MemoryType.PERSONAL_TRAIT, MemoryType.IMPORTANT_INFO)


def relevance_label(record: MemoryRecord) -> str:
    return RELEVANCE_LABELS.get(record.type, "related memory")


@dataclass
class GoalRecall:
    memories: list[RankedMemory] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)
    insights_source: DecisionSource | None = None

    def to_dict(self) -> dict:
        return {
            "memories": [
                {
                    "id": m.record.id,
                    "text": m.record.text,
                    "type": m.record.type.value,
                    "relevance": relevance_label(m.record),
                    "why": m.explanation.as_text(),
                }
                for m in self.memories
            ],
            "insights": self.insights,
            "insights_source": self.insights_source.value if self.insights_source else None,
        }


def date_suggestion(days_until: int) -> str:
    """Preparation hint for a reminder ``days_until`` days away."""
    if days_until <= 0:
        return "It's today! Make sure everything is ready."
    if days_until == 1:
        return "It's tomorrow! Check that your preparations are done."
    if days_until <= 3:
        return "Coming up soon. A good time to start preparing."
    return "There's still time. You can plan ahead."


@dataclass
class UpcomingDate:
    record: MemoryRecord
    days_until: int

    @property
    def suggestion(self) -> str:
        return date_suggestion(self.days_until)

    def to_dict(self) -> dict:
        return {
            "id": self.record.id,
            "text": self.record.text,
            "reminder_date": self.record.reminder_date.isoformat(),
            "days_until": self.days_until,
            "suggestion": self.suggestion,
        }


class MemoryRecall:
    def __init__(self, ranker: HybridRanker, engine, store: MemoryStore | None = None):
        self.ranker = ranker
        self.engine = engine
        self.store = store or ranker.store

    async def for_goal(self, owner_id: str, goal_title: str, limit: int = 5) -> GoalRecall:
        """Experiences, traits and info related to a goal, plus generated insights."""
        seen: set[str] = set()
        merged: list[RankedMemory] = []
        for memory_type in _GOAL_RECALL_TYPES:
            hits = await self.ranker.search(
                owner_id, goal_title, SearchFilters(type=memory_type), limit=limit, record_usage=False
            )
            for hit in hits:
                if hit.record.id not in seen:
                    seen.add(hit.record.id)
                    merged.append(hit)

        if not merged:
            return GoalRecall()

        selected = merged[:limit]
        # Only what is surfaced counts as used
        self.ranker.record_usage([m.record.id for m in selected])
        decision = await self.engine.insights(goal_title, [m.record for m in selected])
        return GoalRecall(
            memories=selected,
            insights=list(decision.value.insights),
            insights_source=decision.source,
        )

    async def upcoming_dates(
        self, owner_id: str, days_ahead: int = 7, today: date | None = None
    ) -> list[UpcomingDate]:
        today = today or date.today()
        records = await self.store.upcoming_reminders(
            owner_id, today, today + timedelta(days=days_ahead)
        )
        return [UpcomingDate(record=r, days_until=(r.reminder_date - today).days) for r in records]

    async def for_reflection(
        self, owner_id: str, period: str = "weekly", now: datetime | None = None
    ) -> list[MemoryRecord]:
        """Memories created within the review period, newest first."""
        days = REFLECTION_PERIOD_DAYS.get(period, 7)
        since = (now or datetime.now()) - timedelta(days=days)
        recent = await self.store.query(owner_id, limit=50)
        return [r for r in recent if r.created_at >= since]

    async def skill_evidence(self, owner_id: str, skill: str, limit: int = 10) -> list[MemoryRecord]:
        """Memories backing a skill, by partial name match."""
        return await self.store.skill_evidence(owner_id, skill, limit=limit)
