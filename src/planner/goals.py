"""Goal lifecycle and progress tracking."""

import structlog

from errors import InvalidStateError, NotFoundError
from shared_types import GoalStatus, LifeDimension, TaskStatus

from .models import SMART_FIELDS, Goal, Task
from .store import PlanStore

logger = structlog.get_logger()

# Allowed status transitions; completed and cancelled are terminal
TRANSITIONS = {
    GoalStatus.DRAFT: {GoalStatus.ACTIVE, GoalStatus.CANCELLED},
    GoalStatus.ACTIVE: {GoalStatus.PAUSED, GoalStatus.COMPLETED, GoalStatus.CANCELLED},
    GoalStatus.PAUSED: {GoalStatus.ACTIVE, GoalStatus.COMPLETED, GoalStatus.CANCELLED},
    GoalStatus.COMPLETED: set(),
    GoalStatus.CANCELLED: set(),
}

INACTIVE_STATUSES = (GoalStatus.COMPLETED, GoalStatus.CANCELLED)


class GoalTracker:
    """Create goals, move them through their lifecycle and keep progress consistent."""

    def __init__(self, store: PlanStore):
        self.store = store

    async def create_goal(
        self,
        owner_id: str,
        title: str,
        dimension: LifeDimension | str = LifeDimension.GROWTH,
        status: GoalStatus = GoalStatus.ACTIVE,
        description: str = "",
        tasks: list[Task] | None = None,
        **smart,
    ) -> Goal:
        unknown = set(smart) - set(SMART_FIELDS)
        if unknown:
            raise ValueError(f"Unknown goal fields: {sorted(unknown)}")
        goal = Goal(
            id="",
            owner_id=owner_id,
            title=title,
            dimension=dimension,
            status=status,
            progress=100 if GoalStatus(status) == GoalStatus.COMPLETED else 0,
            description=description,
            **smart,
        )
        await self.store.insert_goal(goal, tasks)
        logger.info("goal_created", goal_id=goal.id, dimension=goal.dimension.value, tasks=len(tasks or []))
        return goal

    async def get_goal(self, goal_id: str) -> Goal:
        goal = await self.store.get_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        return goal

    async def list_goals(self, owner_id: str, include_inactive: bool = False) -> list[Goal]:
        """Goals for an owner; by default only draft/active/paused ones."""
        if include_inactive:
            return await self.store.list_goals(owner_id)
        return await self.store.list_goals(
            owner_id, [s for s in GoalStatus if s not in INACTIVE_STATUSES]
        )

    async def set_status(self, goal_id: str, status: GoalStatus | str) -> Goal:
        """Move a goal to ``status``. Completing a goal forces progress to 100."""
        goal = await self.get_goal(goal_id)
        status = GoalStatus(status)
        if status == goal.status:
            return goal
        if status not in TRANSITIONS[goal.status]:
            raise InvalidStateError(f"Goal {goal_id} cannot move from {goal.status} to {status}")

        goal.status = status
        if status == GoalStatus.COMPLETED:
            goal.progress = 100
        await self.store.update_goal(goal)
        logger.info("goal_status_changed", goal_id=goal_id, status=status.value)
        return goal

    async def update_progress(self, goal_id: str, progress: int) -> Goal:
        if not 0 <= progress <= 100:
            raise ValueError(f"progress must be within [0, 100], got {progress}")
        goal = await self.get_goal(goal_id)
        if goal.status == GoalStatus.COMPLETED and progress < 100:
            raise InvalidStateError(f"Goal {goal_id} is completed; progress must stay at 100")
        if goal.status == GoalStatus.CANCELLED:
            raise InvalidStateError(f"Goal {goal_id} is cancelled")
        goal.progress = progress
        await self.store.update_goal(goal)
        return goal

    async def sync_progress(self, goal_id: str) -> Goal:
        """Recompute progress as completed / (all tasks - skipped) for open goals."""
        goal = await self.get_goal(goal_id)
        if goal.status in INACTIVE_STATUSES:
            return goal
        total = await self.store.count_tasks(goal_id)
        skipped = await self.store.count_tasks(goal_id, [TaskStatus.SKIPPED])
        done = await self.store.count_tasks(goal_id, [TaskStatus.COMPLETED])
        counted = total - skipped
        progress = round(100 * done / counted) if counted else 0
        if progress != goal.progress:
            goal.progress = progress
            await self.store.update_goal(goal)
        return goal

    async def cancel_goal(self, goal_id: str) -> Goal:
        """Soft-cancel; the goal and its tasks stay on record."""
        return await self.set_status(goal_id, GoalStatus.CANCELLED)

    async def delete_goal(self, goal_id: str) -> None:
        """Hard delete, only for goals no task references."""
        await self.get_goal(goal_id)
        if await self.store.count_tasks(goal_id):
            raise InvalidStateError(
                f"Goal {goal_id} still has tasks; cancel it instead of deleting"
            )
        await self.store.delete_goal(goal_id)
        logger.info("goal_deleted", goal_id=goal_id)
