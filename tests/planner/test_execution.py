"""Tests for ExecutionTracker: check-ins and the adjustment lifecycle."""

from datetime import date, timedelta

import pytest

from conftest import FakeProvider
from decisions import DecisionEngine
from errors import InvalidStateError, NotFoundError
from planner.execution import ExecutionTracker
from planner.goals import GoalTracker
from planner.models import Task
from planner.store import new_id
from shared_types import (
    AdjustmentState,
    AdjustmentType,
    DecisionSource,
    GoalStatus,
    TaskStatus,
)

DAY = date.today() + timedelta(days=30)


@pytest.fixture
def goals(plan_store):
    return GoalTracker(plan_store)


@pytest.fixture
def tracker(plan_store, offline_engine, goals):
    return ExecutionTracker(plan_store, offline_engine, goals)


async def make_goal(goals, n_tasks=1, duration=40):
    tasks = [
        Task(id=new_id(), owner_id="u1", title=f"Practice {i}", estimated_duration=duration,
             scheduled_date=DAY + timedelta(days=i))
        for i in range(n_tasks)
    ]
    goal = await goals.create_goal("u1", "Learn piano", dimension="hobby", tasks=tasks)
    return goal, tasks


class TestCheckIn:
    @pytest.mark.asyncio
    async def test_energy_low_offline_suggests_reschedule(self, tracker, goals, plan_store):
        _, tasks = await make_goal(goals)
        result = await tracker.check_in(tasks[0].id, "not_completed", "energy_low")

        assert result.task.status == TaskStatus.SKIPPED
        adj = result.adjustment
        assert adj.adjustment_type == AdjustmentType.RESCHEDULE
        assert adj.source == DecisionSource.FALLBACK
        assert adj.state == AdjustmentState.PENDING
        assert adj.originating_checkin_id == result.checkin.id
        assert (await plan_store.pending_adjustment(tasks[0].id)).id == adj.id
        assert len(await plan_store.list_checkins("u1", task_id=tasks[0].id)) == 1

    @pytest.mark.asyncio
    async def test_ai_adjustment(self, plan_store, goals):
        provider = FakeProvider([{
            "adjustment_type": "postpone",
            "rationale": "Busy week",
            "options": [{"id": "x", "label": "Later", "action": "postpone"}],
            "days_offset": 3,
        }])
        tracker = ExecutionTracker(plan_store, DecisionEngine(provider), goals)
        _, tasks = await make_goal(goals)
        result = await tracker.check_in(tasks[0].id, "partial", "external_interrupt", note="guests")
        assert result.task.status == TaskStatus.POSTPONED
        assert result.adjustment.source == DecisionSource.AI
        assert result.adjustment.days_offset == 3
        assert "guests" in provider.calls[0]["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_completed_updates_progress_without_adjustment(self, tracker, goals):
        goal, tasks = await make_goal(goals, n_tasks=2)
        result = await tracker.check_in(tasks[0].id, "completed", mood_rating=4)
        assert result.adjustment is None
        assert (await goals.get_goal(goal.id)).progress == 50

    @pytest.mark.asyncio
    async def test_missed_without_reason_no_adjustment(self, tracker, goals):
        _, tasks = await make_goal(goals)
        result = await tracker.check_in(tasks[0].id, "not_completed")
        assert result.adjustment is None

    @pytest.mark.asyncio
    async def test_closed_task_rejected(self, tracker, goals):
        _, tasks = await make_goal(goals)
        await tracker.check_in(tasks[0].id, "completed")
        with pytest.raises(InvalidStateError):
            await tracker.check_in(tasks[0].id, "completed")

    @pytest.mark.asyncio
    async def test_second_pending_adjustment_rejected(self, tracker, goals):
        _, tasks = await make_goal(goals)
        await tracker.check_in(tasks[0].id, "partial", "forgot")
        with pytest.raises(InvalidStateError):
            await tracker.check_in(tasks[0].id, "partial", "energy_low")

    @pytest.mark.asyncio
    async def test_completion_clears_pending(self, tracker, goals, plan_store):
        _, tasks = await make_goal(goals)
        first = await tracker.check_in(tasks[0].id, "partial", "forgot")
        await tracker.check_in(tasks[0].id, "completed")
        adj = await plan_store.get_adjustment(first.adjustment.id)
        assert adj.state == AdjustmentState.REJECTED

    @pytest.mark.asyncio
    async def test_missing_task(self, tracker):
        with pytest.raises(NotFoundError):
            await tracker.check_in("nope", "completed")

    @pytest.mark.asyncio
    async def test_invalid_mood(self, tracker, goals):
        _, tasks = await make_goal(goals)
        with pytest.raises(ValueError):
            await tracker.check_in(tasks[0].id, "completed", mood_rating=9)


class TestAccept:
    @pytest.mark.asyncio
    async def test_reschedule(self, tracker, goals):
        _, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "energy_low")
        res = await tracker.accept(checked.adjustment.id)
        assert res.task.status == TaskStatus.PENDING
        assert res.task.scheduled_date == DAY + timedelta(days=1)
        assert res.adjustment.state == AdjustmentState.ACCEPTED
        assert res.adjustment.chosen_option_id == "opt_1"

    @pytest.mark.asyncio
    async def test_postpone_with_buffer_day(self, tracker, goals):
        _, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "external_interrupt")
        res = await tracker.accept(checked.adjustment.id)
        assert res.task.status == TaskStatus.POSTPONED
        assert res.task.scheduled_date == DAY + timedelta(days=2)

    @pytest.mark.asyncio
    async def test_split_creates_tasks(self, tracker, goals, plan_store):
        goal, tasks = await make_goal(goals, duration=45)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "time_insufficient")
        res = await tracker.accept(checked.adjustment.id)

        assert res.task.status == TaskStatus.SKIPPED
        assert [t.estimated_duration for t in res.new_tasks] == [15, 15, 15]
        assert all(t.goal_id == goal.id for t in res.new_tasks)
        assert all(t.scheduled_date == DAY + timedelta(days=1) for t in res.new_tasks)
        assert await plan_store.count_tasks(goal.id) == 4

    @pytest.mark.asyncio
    async def test_overdue_reschedule_lands_after_today(self, tracker, goals):
        today = date.today()
        task = Task(id=new_id(), owner_id="u1", title="Scales", scheduled_date=today - timedelta(days=10))
        await goals.create_goal("u1", "Learn piano", tasks=[task])
        checked = await tracker.check_in(task.id, "not_completed", "forgot")
        res = await tracker.accept(checked.adjustment.id)
        assert res.task.scheduled_date > today
        assert res.task.scheduled_date == today + timedelta(days=checked.adjustment.days_offset)
        assert task.id in [t.id for t in await tracker.tasks_for_day("u1", res.task.scheduled_date)]

    @pytest.mark.asyncio
    async def test_overdue_split_schedules_tomorrow(self, tracker, goals):
        today = date.today()
        task = Task(id=new_id(), owner_id="u1", title="Long practice", estimated_duration=60,
                    scheduled_date=today - timedelta(days=3))
        await goals.create_goal("u1", "Learn piano", tasks=[task])
        checked = await tracker.check_in(task.id, "not_completed", "time_insufficient")
        res = await tracker.accept(checked.adjustment.id)
        assert res.new_tasks
        assert all(t.scheduled_date == today + timedelta(days=1) for t in res.new_tasks)

    @pytest.mark.asyncio
    async def test_cancel_last_open_task_cancels_goal(self, tracker, goals):
        goal, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "priority_changed")
        cancel = next(o for o in checked.adjustment.options if o.action == AdjustmentType.CANCEL)
        res = await tracker.accept(checked.adjustment.id, cancel.id)
        assert res.goal_cancelled is True
        assert (await goals.get_goal(goal.id)).status == GoalStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_keeps_goal_with_open_tasks(self, tracker, goals):
        goal, tasks = await make_goal(goals, n_tasks=2)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "priority_changed")
        cancel = next(o for o in checked.adjustment.options if o.action == AdjustmentType.CANCEL)
        res = await tracker.accept(checked.adjustment.id, cancel.id)
        assert res.goal_cancelled is False
        assert (await goals.get_goal(goal.id)).status == GoalStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_accept_twice(self, tracker, goals):
        _, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "energy_low")
        await tracker.accept(checked.adjustment.id)
        with pytest.raises(InvalidStateError):
            await tracker.accept(checked.adjustment.id)

    @pytest.mark.asyncio
    async def test_unknown_option(self, tracker, goals):
        _, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "not_completed", "energy_low")
        with pytest.raises(NotFoundError):
            await tracker.accept(checked.adjustment.id, "opt_99")


class TestReject:
    @pytest.mark.asyncio
    async def test_reject_leaves_task(self, tracker, goals, plan_store):
        _, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "partial", "energy_low")
        adj = await tracker.reject(checked.adjustment.id)
        assert adj.state == AdjustmentState.REJECTED
        task = await plan_store.get_task(tasks[0].id)
        assert task.status == TaskStatus.POSTPONED
        assert task.scheduled_date == DAY

    @pytest.mark.asyncio
    async def test_new_adjustment_after_reject(self, tracker, goals):
        _, tasks = await make_goal(goals)
        checked = await tracker.check_in(tasks[0].id, "partial", "energy_low")
        await tracker.reject(checked.adjustment.id)
        again = await tracker.check_in(tasks[0].id, "partial", "forgot")
        assert again.adjustment is not None


class TestTasksForDay:
    @pytest.mark.asyncio
    async def test_by_date(self, tracker, goals):
        await make_goal(goals, n_tasks=3)
        today = await tracker.tasks_for_day("u1", DAY + timedelta(days=1))
        assert [t.title for t in today] == ["Practice 1"]

    @pytest.mark.asyncio
    async def test_start(self, tracker, goals):
        _, tasks = await make_goal(goals)
        started = await tracker.start_task(tasks[0].id)
        assert started.status == TaskStatus.IN_PROGRESS
        with pytest.raises(InvalidStateError):
            await tracker.start_task(tasks[0].id)
