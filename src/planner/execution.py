"""Task execution: check-ins, adjustment proposals and their resolution."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

import structlog

from decisions.fallbacks import split_task
from errors import InvalidStateError, NotFoundError
from shared_types import (
    OPEN_TASK_STATUSES,
    AdjustmentState,
    AdjustmentType,
    CheckInOutcome,
    DecisionSource,
    GoalStatus,
    ReasonCode,
    TaskStatus,
)

from .goals import GoalTracker
from .models import Adjustment, AdjustmentOption, CheckIn, ReplacementTask, Task
from .store import PlanStore, new_id

logger = structlog.get_logger()

OUTCOME_STATUS = {
    CheckInOutcome.COMPLETED: TaskStatus.COMPLETED,
    CheckInOutcome.NOT_COMPLETED: TaskStatus.SKIPPED,
    CheckInOutcome.PARTIAL: TaskStatus.POSTPONED,
}


@dataclass
class CheckInResult:
    checkin: CheckIn
    task: Task
    adjustment: Adjustment | None = None


@dataclass
class Resolution:
    adjustment: Adjustment
    task: Task
    new_tasks: list[Task] = field(default_factory=list)
    goal_cancelled: bool = False


class ExecutionTracker:
    """Check-in state machine.

    Task states: pending -> in_progress -> completed | skipped | postponed.
    A missed or partial check-in with a reason produces one pending
    adjustment; accepting it applies the chosen action, rejecting it leaves
    the task as is.
    """

    def __init__(self, store: PlanStore, engine, goals: GoalTracker | None = None):
        self.store = store
        self.engine = engine
        self.goals = goals or GoalTracker(store)

    async def get_task(self, task_id: str) -> Task:
        task = await self.store.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    async def tasks_for_day(self, owner_id: str, day: date | None = None) -> list[Task]:
        return await self.store.list_tasks(owner_id, scheduled_date=day or date.today())

    async def start_task(self, task_id: str) -> Task:
        task = await self.get_task(task_id)
        if task.status not in (TaskStatus.PENDING, TaskStatus.POSTPONED):
            raise InvalidStateError(f"Task {task_id} cannot start from {task.status}")
        task.status = TaskStatus.IN_PROGRESS
        return await self.store.update_task(task)

    async def check_in(
        self,
        task_id: str,
        outcome: CheckInOutcome | str,
        reason_code: ReasonCode | str | None = None,
        note: str = "",
        actual_duration: int | None = None,
        mood_rating: int | None = None,
        timeout: float | None = None,
    ) -> CheckInResult:
        outcome = CheckInOutcome(outcome)
        reason_code = ReasonCode(reason_code) if reason_code else None
        task = await self.get_task(task_id)
        if task.status not in OPEN_TASK_STATUSES:
            raise InvalidStateError(f"Task {task_id} is {task.status}; check-in not allowed")

        wants_adjustment = outcome != CheckInOutcome.COMPLETED and reason_code is not None
        if wants_adjustment and await self.store.pending_adjustment(task_id):
            raise InvalidStateError(f"Task {task_id} already has a pending adjustment")

        checkin = CheckIn(
            id=new_id(),
            task_id=task_id,
            outcome=outcome,
            reason_code=reason_code,
            reason_note=note,
            actual_duration=actual_duration,
            mood_rating=mood_rating,
        )

        adjustment = None
        if wants_adjustment:
            decision = await self.engine.adjust(
                task.title, task.estimated_duration, reason_code.value, note, timeout=timeout
            )
            adjustment = self._build_adjustment(task, checkin, decision.value, decision.source)

        task.status = OUTCOME_STATUS[outcome]
        await self.store.record_check_in(
            task,
            checkin,
            adjustment,
            reject_pending=outcome == CheckInOutcome.COMPLETED,
        )

        if outcome == CheckInOutcome.COMPLETED and task.goal_id:
            await self.goals.sync_progress(task.goal_id)

        logger.info(
            "task_checked_in",
            task_id=task_id,
            outcome=outcome.value,
            reason=reason_code.value if reason_code else None,
            adjustment=adjustment.adjustment_type.value if adjustment else None,
            source=adjustment.source.value if adjustment else None,
        )
        return CheckInResult(checkin=checkin, task=task, adjustment=adjustment)

    async def get_adjustment(self, adjustment_id: str) -> Adjustment:
        adjustment = await self.store.get_adjustment(adjustment_id)
        if adjustment is None:
            raise NotFoundError(f"Adjustment not found: {adjustment_id}")
        return adjustment

    async def accept(self, adjustment_id: str, option_id: str | None = None) -> Resolution:
        """Apply the chosen option (default: the one matching the proposed type)."""
        adjustment = await self.get_adjustment(adjustment_id)
        if adjustment.is_resolved:
            raise InvalidStateError(f"Adjustment {adjustment_id} is already {adjustment.state}")
        option = adjustment.option(option_id)
        if option is None:
            raise NotFoundError(f"Option {option_id} not found on adjustment {adjustment_id}")

        task = await self.get_task(adjustment.target_task_id)
        # Overdue tasks move relative to today, never further into the past
        today = date.today()
        base_day = max(task.scheduled_date or today, today)
        new_tasks: list[Task] = []
        goal = None

        if option.action == AdjustmentType.SPLIT:
            replacements = adjustment.replacement_tasks or [
                ReplacementTask(
                    title=d.title, estimated_duration=d.estimated_duration, energy_level=d.energy_level
                )
                for d in split_task(task.title, task.estimated_duration)
            ]
            new_tasks = [
                Task(
                    id=new_id(),
                    owner_id=task.owner_id,
                    goal_id=task.goal_id,
                    milestone=task.milestone,
                    title=r.title,
                    estimated_duration=r.estimated_duration,
                    energy_level=r.energy_level,
                    priority=r.priority,
                    scheduled_date=base_day + timedelta(days=1),
                )
                for r in replacements
            ]
            task.status = TaskStatus.SKIPPED
        elif option.action == AdjustmentType.RESCHEDULE:
            task.scheduled_date = base_day + timedelta(days=adjustment.days_offset)
            task.status = TaskStatus.PENDING
        elif option.action == AdjustmentType.POSTPONE:
            task.scheduled_date = base_day + timedelta(days=adjustment.days_offset)
            task.status = TaskStatus.POSTPONED
        elif option.action == AdjustmentType.CANCEL:
            task.status = TaskStatus.SKIPPED
            goal = await self._goal_to_cancel(task)

        adjustment.state = AdjustmentState.ACCEPTED
        adjustment.chosen_option_id = option.id
        adjustment.resolved_at = datetime.now()
        await self.store.resolve_adjustment(adjustment, [task, *new_tasks], goal)

        if task.goal_id and goal is None:
            await self.goals.sync_progress(task.goal_id)

        logger.info(
            "adjustment_accepted",
            adjustment_id=adjustment_id,
            action=option.action.value,
            new_tasks=len(new_tasks),
            goal_cancelled=goal is not None,
        )
        return Resolution(
            adjustment=adjustment, task=task, new_tasks=new_tasks, goal_cancelled=goal is not None
        )

    async def reject(self, adjustment_id: str) -> Adjustment:
        adjustment = await self.get_adjustment(adjustment_id)
        if adjustment.is_resolved:
            raise InvalidStateError(f"Adjustment {adjustment_id} is already {adjustment.state}")
        adjustment.state = AdjustmentState.REJECTED
        adjustment.resolved_at = datetime.now()
        await self.store.resolve_adjustment(adjustment)
        logger.info("adjustment_rejected", adjustment_id=adjustment_id)
        return adjustment

    async def _goal_to_cancel(self, task: Task):
        """The task's goal, marked cancelled, if cancelling ``task`` leaves it with no open work."""
        if not task.goal_id:
            return None
        goal = await self.goals.get_goal(task.goal_id)
        if goal.status in (GoalStatus.COMPLETED, GoalStatus.CANCELLED):
            return None
        open_tasks = await self.store.list_tasks(
            task.owner_id, goal_id=task.goal_id, statuses=list(OPEN_TASK_STATUSES)
        )
        if any(t.id != task.id for t in open_tasks):
            return None
        goal.status = GoalStatus.CANCELLED
        goal.updated_at = datetime.now()
        return goal

    @staticmethod
    def _build_adjustment(task: Task, checkin: CheckIn, result, source: DecisionSource) -> Adjustment:
        return Adjustment(
            id=new_id(),
            target_task_id=task.id,
            originating_checkin_id=checkin.id,
            adjustment_type=result.adjustment_type,
            rationale=result.rationale,
            options=[AdjustmentOption(id=o.id, label=o.label, action=o.action) for o in result.options],
            replacement_tasks=[
                ReplacementTask(
                    title=t.title,
                    estimated_duration=t.estimated_duration,
                    energy_level=t.energy_level,
                    priority=t.priority,
                )
                for t in result.new_tasks
            ],
            days_offset=result.days_offset,
            encouragement=result.encouragement,
            source=source,
        )
