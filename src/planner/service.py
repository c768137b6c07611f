"""Caller-facing planning operations: retrieval feeding decisions feeding persistence."""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

import structlog

from decisions import BalanceReport, Decision, DecisionEngine, ReflectionReport
from errors import TransportError
from memory.models import MemoryRecord
from memory.ranker import HybridRanker
from memory.recall import REFLECTION_PERIOD_DAYS
from shared_types import DecisionSource, GoalStatus, LifeDimension

from .execution import CheckInResult, ExecutionTracker
from .goals import GoalTracker
from .models import Goal, Task
from .store import PlanStore, new_id

logger = structlog.get_logger()

CONTEXT_MEMORIES = 5


class Deadline:
    """Remaining time budget for one pipeline run."""

    def __init__(self, seconds: float):
        self._loop = asyncio.get_running_loop()
        self._expires = self._loop.time() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires - self._loop.time())


@dataclass
class PlanResult:
    goal: Goal
    tasks: list[Task]
    source: DecisionSource
    balance: BalanceReport | None = None
    milestones: list[str] = field(default_factory=list)


class PlannerService:
    """Clarify, plan, balance and check in, each under a single deadline, plus period review.

    Retrieval failures while gathering context degrade to "no memories";
    generation gets whatever budget retrieval left over, and the fallback
    always runs inside it.
    """

    def __init__(
        self,
        ranker: HybridRanker | None,
        engine: DecisionEngine,
        store: PlanStore,
        deadline: float = 30.0,
        retrieval_timeout: float = 5.0,
    ):
        self.ranker = ranker
        self.engine = engine
        self.store = store
        self.goals = GoalTracker(store)
        self.execution = ExecutionTracker(store, engine, self.goals)
        self.deadline = deadline
        self.retrieval_timeout = retrieval_timeout

    async def clarify(self, owner_id: str, prompt: str) -> Decision:
        deadline = Deadline(self.deadline)
        memories = await self._context(owner_id, prompt, deadline)
        return await self.engine.clarify(prompt, memories, timeout=deadline.remaining())

    async def plan(
        self,
        owner_id: str,
        prompt: str,
        answers: dict | None = None,
        start_date: date | None = None,
    ) -> PlanResult:
        """Decompose a goal, persist it as active with one task per day from ``start_date``."""
        answers = answers or {}
        deadline = Deadline(self.deadline)
        memories = await self._context(owner_id, prompt, deadline)
        decision = await self.engine.decompose(
            prompt, answers, memories, timeout=deadline.remaining()
        )
        draft = decision.value

        existing = await self.store.list_goals(owner_id, [GoalStatus.ACTIVE, GoalStatus.COMPLETED])
        balance = self.engine.balance(existing, draft.goal.dimension)

        day = start_date or date.today()
        tasks = []
        for offset, (milestone, task_draft) in enumerate(draft.iter_tasks()):
            tasks.append(
                Task(
                    id=new_id(),
                    owner_id=owner_id,
                    title=task_draft.title,
                    milestone=milestone,
                    estimated_duration=task_draft.estimated_duration,
                    energy_level=task_draft.energy_level,
                    priority=task_draft.priority,
                    scheduled_date=day + timedelta(days=offset),
                )
            )

        goal = await self.goals.create_goal(
            owner_id,
            draft.goal.title,
            dimension=draft.goal.dimension,
            status=GoalStatus.ACTIVE,
            description=draft.goal.description,
            tasks=tasks,
            specific=draft.goal.specific,
            measurable=draft.goal.measurable,
            achievable=draft.goal.achievable,
            relevant=draft.goal.relevant,
            time_bound=draft.goal.time_bound,
        )
        return PlanResult(
            goal=goal,
            tasks=tasks,
            source=decision.source,
            balance=balance,
            milestones=[m.title for m in draft.milestones],
        )

    async def balance(self, owner_id: str, candidate_dimension: LifeDimension | str) -> BalanceReport:
        goals = await self.store.list_goals(owner_id, [GoalStatus.ACTIVE, GoalStatus.COMPLETED])
        return self.engine.balance(goals, candidate_dimension)

    async def reflect(
        self, owner_id: str, period: str = "weekly", now: datetime | None = None
    ) -> ReflectionReport:
        """Check-in statistics and memory activity over a daily, weekly or monthly period."""
        if period not in REFLECTION_PERIOD_DAYS:
            raise ValueError(f"Unknown period: {period}. Use: {', '.join(REFLECTION_PERIOD_DAYS)}")
        since = (now or datetime.now()) - timedelta(days=REFLECTION_PERIOD_DAYS[period])
        checkins = await self.store.list_checkins(owner_id, since=since)
        memories_by_type = {}
        if self.ranker is not None:
            memories_by_type = await self.ranker.store.count_by_type(owner_id, since=since)
        return self.engine.reflect(checkins, period, memories_by_type)

    async def check_in(self, task_id: str, outcome, reason_code=None, note: str = "", **kwargs) -> CheckInResult:
        deadline = Deadline(self.deadline)
        return await self.execution.check_in(
            task_id, outcome, reason_code, note, timeout=deadline.remaining(), **kwargs
        )

    async def _context(self, owner_id: str, query: str, deadline: Deadline) -> list[MemoryRecord]:
        if self.ranker is None:
            return []
        budget = min(self.retrieval_timeout, deadline.remaining())
        try:
            ranked = await asyncio.wait_for(
                self.ranker.search(owner_id, query, limit=CONTEXT_MEMORIES), budget
            )
        except (TimeoutError, TransportError) as e:
            logger.warning("context_retrieval_failed", owner_id=owner_id, error=str(e) or type(e).__name__)
            return []
        return [r.record for r in ranked]
