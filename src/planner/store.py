"""SQLite persistence for goals, tasks, check-ins and adjustments."""

import asyncio
import json
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path

import structlog

from db import store_errors, wal_connect
from errors import InvalidStateError
from shared_types import AdjustmentState, CheckInOutcome, GoalStatus, ReasonCode, TaskStatus

from .models import Adjustment, AdjustmentOption, CheckIn, Goal, ReplacementTask, Task

logger = structlog.get_logger()


def new_id() -> str:
    return uuid.uuid4().hex[:16]


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


class PlanStore:
    """Row-level persistence; multi-row changes run in a single transaction.

    All public methods are coroutines; SQLite work runs in a worker thread.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS goals (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    dimension TEXT NOT NULL,
                    status TEXT NOT NULL,
                    progress INTEGER NOT NULL DEFAULT 0,
                    description TEXT NOT NULL DEFAULT '',
                    specific TEXT,
                    measurable TEXT,
                    achievable TEXT,
                    relevant TEXT,
                    time_bound TEXT,
                    created_at TIMESTAMP,
                    updated_at TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    goal_id TEXT REFERENCES goals(id),
                    title TEXT NOT NULL,
                    milestone TEXT,
                    estimated_duration INTEGER NOT NULL,
                    energy_level TEXT NOT NULL,
                    priority INTEGER NOT NULL DEFAULT 3,
                    status TEXT NOT NULL,
                    scheduled_date TEXT,
                    created_at TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS checkins (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id),
                    outcome TEXT NOT NULL,
                    reason_code TEXT,
                    reason_note TEXT NOT NULL DEFAULT '',
                    actual_duration INTEGER,
                    mood_rating INTEGER,
                    created_at TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS adjustments (
                    id TEXT PRIMARY KEY,
                    target_task_id TEXT NOT NULL REFERENCES tasks(id),
                    originating_checkin_id TEXT REFERENCES checkins(id),
                    adjustment_type TEXT NOT NULL,
                    rationale TEXT NOT NULL,
                    options TEXT NOT NULL DEFAULT '[]',
                    replacement_tasks TEXT NOT NULL DEFAULT '[]',
                    days_offset INTEGER NOT NULL DEFAULT 1,
                    encouragement TEXT,
                    state TEXT NOT NULL,
                    chosen_option_id TEXT,
                    source TEXT NOT NULL,
                    created_at TIMESTAMP,
                    resolved_at TIMESTAMP
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_goals_owner ON goals(owner_id, status)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner_date ON tasks(owner_id, scheduled_date)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_goal ON tasks(goal_id)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_checkins_task ON checkins(task_id, created_at)"
            )
            # At most one pending adjustment per task
            conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_adjustments_one_pending
                ON adjustments(target_task_id) WHERE state = 'pending'
            """)

    # --- goals ---

    async def insert_goal(self, goal: Goal, tasks: list[Task] | None = None) -> Goal:
        """Insert a goal together with its initial tasks."""
        if not goal.id:
            goal.id = new_id()
        for task in tasks or []:
            task.goal_id = goal.id
        with store_errors("goal insert"):
            await asyncio.to_thread(self._insert_goal, goal, tasks or [])
        return goal

    async def get_goal(self, goal_id: str) -> Goal | None:
        with store_errors("goal get"):
            return await asyncio.to_thread(self._get_one, "goals", goal_id, self._row_to_goal)

    async def update_goal(self, goal: Goal) -> Goal:
        goal.updated_at = datetime.now()
        with store_errors("goal update"):
            await asyncio.to_thread(self._update_goal, goal)
        return goal

    async def list_goals(
        self, owner_id: str, statuses: list[GoalStatus] | None = None
    ) -> list[Goal]:
        with store_errors("goal list"):
            return await asyncio.to_thread(self._list_goals, owner_id, statuses)

    async def delete_goal(self, goal_id: str) -> None:
        with store_errors("goal delete"):
            await asyncio.to_thread(self._execute, "DELETE FROM goals WHERE id = ?", (goal_id,))

    async def count_tasks(self, goal_id: str, statuses: list[TaskStatus] | None = None) -> int:
        with store_errors("task count"):
            return await asyncio.to_thread(self._count_tasks, goal_id, statuses)

    # --- tasks ---

    async def get_task(self, task_id: str) -> Task | None:
        with store_errors("task get"):
            return await asyncio.to_thread(self._get_one, "tasks", task_id, self._row_to_task)

    async def update_task(self, task: Task) -> Task:
        with store_errors("task update"):
            await asyncio.to_thread(self._in_transaction, lambda conn: self._write_tasks(conn, [task]))
        return task

    async def list_tasks(
        self,
        owner_id: str,
        scheduled_date: date | None = None,
        goal_id: str | None = None,
        statuses: list[TaskStatus] | None = None,
    ) -> list[Task]:
        with store_errors("task list"):
            return await asyncio.to_thread(
                self._list_tasks, owner_id, scheduled_date, goal_id, statuses
            )

    # --- check-ins and adjustments ---

    async def record_check_in(
        self,
        task: Task,
        checkin: CheckIn,
        adjustment: Adjustment | None = None,
        reject_pending: bool = False,
    ) -> None:
        """Persist the task transition, check-in and optional adjustment atomically."""

        def work(conn: sqlite3.Connection):
            self._write_tasks(conn, [task])
            conn.execute(
                """INSERT INTO checkins
                   (id, task_id, outcome, reason_code, reason_note, actual_duration,
                    mood_rating, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    checkin.id,
                    checkin.task_id,
                    checkin.outcome.value,
                    checkin.reason_code.value if checkin.reason_code else None,
                    checkin.reason_note,
                    checkin.actual_duration,
                    checkin.mood_rating,
                    _iso(checkin.created_at),
                ),
            )
            if reject_pending:
                conn.execute(
                    """UPDATE adjustments SET state = ?, resolved_at = ?
                       WHERE target_task_id = ? AND state = ?""",
                    (
                        AdjustmentState.REJECTED.value,
                        _iso(datetime.now()),
                        task.id,
                        AdjustmentState.PENDING.value,
                    ),
                )
            if adjustment:
                self._insert_adjustment(conn, adjustment)

        with store_errors("check-in record"):
            try:
                await asyncio.to_thread(self._in_transaction, work)
            except sqlite3.IntegrityError as e:
                if "adjustments.target_task_id" in str(e):
                    raise InvalidStateError(
                        f"Task {task.id} already has a pending adjustment"
                    ) from e
                raise

    async def list_checkins(
        self,
        owner_id: str,
        since: datetime | None = None,
        task_id: str | None = None,
    ) -> list[CheckIn]:
        """An owner's check-ins, oldest first, optionally from ``since`` or for one task."""
        with store_errors("check-in list"):
            return await asyncio.to_thread(self._list_checkins, owner_id, since, task_id)

    async def get_adjustment(self, adjustment_id: str) -> Adjustment | None:
        with store_errors("adjustment get"):
            return await asyncio.to_thread(
                self._get_one, "adjustments", adjustment_id, self._row_to_adjustment
            )

    async def pending_adjustment(self, task_id: str) -> Adjustment | None:
        with store_errors("adjustment pending"):
            return await asyncio.to_thread(self._pending_adjustment, task_id)

    async def resolve_adjustment(
        self,
        adjustment: Adjustment,
        tasks: list[Task] | None = None,
        goal: Goal | None = None,
    ) -> None:
        """Mark an adjustment resolved and apply its task/goal changes atomically.

        Raises InvalidStateError when the adjustment was resolved concurrently.
        """

        def work(conn: sqlite3.Connection):
            cur = conn.execute(
                """UPDATE adjustments SET state = ?, chosen_option_id = ?, resolved_at = ?
                   WHERE id = ? AND state = ?""",
                (
                    adjustment.state.value,
                    adjustment.chosen_option_id,
                    _iso(adjustment.resolved_at),
                    adjustment.id,
                    AdjustmentState.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                raise InvalidStateError(f"Adjustment {adjustment.id} is already resolved")
            if tasks:
                self._write_tasks(conn, tasks)
            if goal:
                self._write_goal(conn, goal)

        with store_errors("adjustment resolve"):
            await asyncio.to_thread(self._in_transaction, work)

    # --- sync internals ---

    def _in_transaction(self, work):
        conn = wal_connect(self.db_path)
        try:
            with conn:
                return work(conn)
        finally:
            conn.close()

    def _execute(self, sql: str, params: tuple):
        with wal_connect(self.db_path) as conn:
            conn.execute(sql, params)

    def _get_one(self, table: str, row_id: str, convert):
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()
            return convert(row) if row else None

    def _insert_goal(self, goal: Goal, tasks: list[Task]):
        def work(conn: sqlite3.Connection):
            self._write_goal(conn, goal)
            self._write_tasks(conn, tasks)

        self._in_transaction(work)

    def _update_goal(self, goal: Goal):
        self._in_transaction(lambda conn: self._write_goal(conn, goal))

    @staticmethod
    def _write_goal(conn: sqlite3.Connection, goal: Goal):
        conn.execute(
            """INSERT INTO goals
               (id, owner_id, title, dimension, status, progress, description,
                specific, measurable, achievable, relevant, time_bound, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 title = excluded.title,
                 dimension = excluded.dimension,
                 status = excluded.status,
                 progress = excluded.progress,
                 description = excluded.description,
                 specific = excluded.specific,
                 measurable = excluded.measurable,
                 achievable = excluded.achievable,
                 relevant = excluded.relevant,
                 time_bound = excluded.time_bound,
                 updated_at = excluded.updated_at""",
            (
                goal.id,
                goal.owner_id,
                goal.title,
                goal.dimension.value,
                goal.status.value,
                goal.progress,
                goal.description,
                goal.specific,
                goal.measurable,
                goal.achievable,
                goal.relevant,
                goal.time_bound,
                _iso(goal.created_at),
                _iso(goal.updated_at),
            ),
        )

    @staticmethod
    def _write_tasks(conn: sqlite3.Connection, tasks: list[Task]):
        conn.executemany(
            """INSERT INTO tasks
               (id, owner_id, goal_id, title, milestone, estimated_duration, energy_level,
                priority, status, scheduled_date, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 goal_id = excluded.goal_id,
                 title = excluded.title,
                 milestone = excluded.milestone,
                 estimated_duration = excluded.estimated_duration,
                 energy_level = excluded.energy_level,
                 priority = excluded.priority,
                 status = excluded.status,
                 scheduled_date = excluded.scheduled_date""",
            [
                (
                    t.id,
                    t.owner_id,
                    t.goal_id,
                    t.title,
                    t.milestone,
                    t.estimated_duration,
                    t.energy_level.value,
                    t.priority,
                    t.status.value,
                    _iso(t.scheduled_date),
                    _iso(t.created_at),
                )
                for t in tasks
            ],
        )

    @staticmethod
    def _insert_adjustment(conn: sqlite3.Connection, adj: Adjustment):
        conn.execute(
            """INSERT INTO adjustments
               (id, target_task_id, originating_checkin_id, adjustment_type, rationale, options,
                replacement_tasks, days_offset, encouragement, state, chosen_option_id, source,
                created_at, resolved_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                adj.id,
                adj.target_task_id,
                adj.originating_checkin_id,
                adj.adjustment_type.value,
                adj.rationale,
                json.dumps([{"id": o.id, "label": o.label, "action": o.action.value} for o in adj.options]),
                json.dumps(
                    [
                        {
                            "title": r.title,
                            "estimated_duration": r.estimated_duration,
                            "energy_level": r.energy_level.value,
                            "priority": r.priority,
                        }
                        for r in adj.replacement_tasks
                    ]
                ),
                adj.days_offset,
                adj.encouragement,
                adj.state.value,
                adj.chosen_option_id,
                adj.source.value,
                _iso(adj.created_at),
                _iso(adj.resolved_at),
            ),
        )

    def _list_goals(self, owner_id: str, statuses: list[GoalStatus] | None) -> list[Goal]:
        sql = "SELECT * FROM goals WHERE owner_id = ?"
        params: list = [owner_id]
        if statuses:
            sql += f" AND status IN ({','.join('?' for _ in statuses)})"
            params.extend(GoalStatus(s).value for s in statuses)
        sql += " ORDER BY created_at DESC"
        with wal_connect(self.db_path, row_factory=True) as conn:
            return [self._row_to_goal(r) for r in conn.execute(sql, params).fetchall()]

    def _count_tasks(self, goal_id: str, statuses: list[TaskStatus] | None) -> int:
        sql = "SELECT COUNT(*) FROM tasks WHERE goal_id = ?"
        params: list = [goal_id]
        if statuses:
            sql += f" AND status IN ({','.join('?' for _ in statuses)})"
            params.extend(TaskStatus(s).value for s in statuses)
        with wal_connect(self.db_path) as conn:
            return conn.execute(sql, params).fetchone()[0]

    def _list_tasks(
        self,
        owner_id: str,
        scheduled_date: date | None,
        goal_id: str | None,
        statuses: list[TaskStatus] | None,
    ) -> list[Task]:
        sql = "SELECT * FROM tasks WHERE owner_id = ?"
        params: list = [owner_id]
        if scheduled_date:
            sql += " AND scheduled_date = ?"
            params.append(scheduled_date.isoformat())
        if goal_id:
            sql += " AND goal_id = ?"
            params.append(goal_id)
        if statuses:
            sql += f" AND status IN ({','.join('?' for _ in statuses)})"
            params.extend(TaskStatus(s).value for s in statuses)
        sql += " ORDER BY scheduled_date ASC, priority DESC, created_at ASC"
        with wal_connect(self.db_path, row_factory=True) as conn:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    def _list_checkins(
        self, owner_id: str, since: datetime | None, task_id: str | None
    ) -> list[CheckIn]:
        sql = """SELECT c.* FROM checkins c JOIN tasks t ON t.id = c.task_id
                 WHERE t.owner_id = ?"""
        params: list = [owner_id]
        if since:
            sql += " AND c.created_at >= ?"
            params.append(since.isoformat())
        if task_id:
            sql += " AND c.task_id = ?"
            params.append(task_id)
        sql += " ORDER BY c.created_at ASC"
        with wal_connect(self.db_path, row_factory=True) as conn:
            return [self._row_to_checkin(r) for r in conn.execute(sql, params).fetchall()]

    def _pending_adjustment(self, task_id: str) -> Adjustment | None:
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute(
                "SELECT * FROM adjustments WHERE target_task_id = ? AND state = ?",
                (task_id, AdjustmentState.PENDING.value),
            ).fetchone()
            return self._row_to_adjustment(row) if row else None

    @staticmethod
    def _row_to_goal(row: sqlite3.Row) -> Goal:
        d = dict(row)
        return Goal(
            id=d["id"],
            owner_id=d["owner_id"],
            title=d["title"],
            dimension=d["dimension"],
            status=d["status"],
            progress=d["progress"],
            description=d["description"] or "",
            specific=d["specific"],
            measurable=d["measurable"],
            achievable=d["achievable"],
            relevant=d["relevant"],
            time_bound=d["time_bound"],
            created_at=datetime.fromisoformat(d["created_at"]) if d["created_at"] else datetime.now(),
            updated_at=datetime.fromisoformat(d["updated_at"]) if d["updated_at"] else datetime.now(),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        d = dict(row)
        return Task(
            id=d["id"],
            owner_id=d["owner_id"],
            goal_id=d["goal_id"],
            title=d["title"],
            milestone=d["milestone"],
            estimated_duration=d["estimated_duration"],
            energy_level=d["energy_level"],
            priority=d["priority"],
            status=d["status"],
            scheduled_date=date.fromisoformat(d["scheduled_date"]) if d["scheduled_date"] else None,
            created_at=datetime.fromisoformat(d["created_at"]) if d["created_at"] else datetime.now(),
        )

    @staticmethod
    def _row_to_checkin(row: sqlite3.Row) -> CheckIn:
        d = dict(row)
        return CheckIn(
            id=d["id"],
            task_id=d["task_id"],
            outcome=CheckInOutcome(d["outcome"]),
            reason_code=ReasonCode(d["reason_code"]) if d["reason_code"] else None,
            reason_note=d["reason_note"] or "",
            actual_duration=d["actual_duration"],
            mood_rating=d["mood_rating"],
            created_at=datetime.fromisoformat(d["created_at"]) if d["created_at"] else datetime.now(),
        )

    @staticmethod
    def _row_to_adjustment(row: sqlite3.Row) -> Adjustment:
        d = dict(row)
        return Adjustment(
            id=d["id"],
            target_task_id=d["target_task_id"],
            originating_checkin_id=d["originating_checkin_id"],
            adjustment_type=d["adjustment_type"],
            rationale=d["rationale"],
            options=[AdjustmentOption(**o) for o in json.loads(d["options"] or "[]")],
            replacement_tasks=[ReplacementTask(**r) for r in json.loads(d["replacement_tasks"] or "[]")],
            days_offset=d["days_offset"],
            encouragement=d["encouragement"],
            state=d["state"],
            chosen_option_id=d["chosen_option_id"],
            source=d["source"],
            created_at=datetime.fromisoformat(d["created_at"]) if d["created_at"] else datetime.now(),
            resolved_at=datetime.fromisoformat(d["resolved_at"]) if d["resolved_at"] else None,
        )
