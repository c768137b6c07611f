"""Data models for goals, tasks, check-ins and adjustments."""

from dataclasses import dataclass, field
from datetime import date, datetime

from shared_types import (
    AdjustmentState,
    AdjustmentType,
    CheckInOutcome,
    DecisionSource,
    EnergyLevel,
    GoalStatus,
    LifeDimension,
    ReasonCode,
    TaskStatus,
)

SMART_FIELDS = ("specific", "measurable", "achievable", "relevant", "time_bound")


@dataclass
class Goal:
    id: str
    owner_id: str
    title: str
    dimension: LifeDimension = LifeDimension.GROWTH
    status: GoalStatus = GoalStatus.DRAFT
    progress: int = 0
    description: str = ""
    specific: str | None = None
    measurable: str | None = None
    achievable: str | None = None
    relevant: str | None = None
    time_bound: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.dimension = LifeDimension(self.dimension)
        self.status = GoalStatus(self.status)
        if not 0 <= self.progress <= 100:
            raise ValueError(f"progress must be within [0, 100], got {self.progress}")
        if self.status == GoalStatus.COMPLETED and self.progress != 100:
            raise ValueError("a completed goal must have progress 100")

    @property
    def smart(self) -> dict:
        return {name: getattr(self, name) for name in SMART_FIELDS}


@dataclass
class Task:
    id: str
    owner_id: str
    title: str
    estimated_duration: int = 30
    goal_id: str | None = None
    milestone: str | None = None
    energy_level: EnergyLevel = EnergyLevel.MEDIUM
    priority: int = 3
    status: TaskStatus = TaskStatus.PENDING
    scheduled_date: date | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.energy_level = EnergyLevel(self.energy_level)
        self.status = TaskStatus(self.status)
        if self.estimated_duration <= 0:
            raise ValueError(f"estimated_duration must be > 0, got {self.estimated_duration}")
        if not 1 <= self.priority <= 5:
            raise ValueError(f"priority must be within [1, 5], got {self.priority}")


@dataclass(frozen=True)
class CheckIn:
    """Record of what happened with a task. Never modified after creation."""

    id: str
    task_id: str
    outcome: CheckInOutcome
    reason_code: ReasonCode | None = None
    reason_note: str = ""
    actual_duration: int | None = None
    mood_rating: int | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        object.__setattr__(self, "outcome", CheckInOutcome(self.outcome))
        if self.reason_code is not None:
            object.__setattr__(self, "reason_code", ReasonCode(self.reason_code))
        if self.mood_rating is not None and not 1 <= self.mood_rating <= 5:
            raise ValueError(f"mood_rating must be within [1, 5], got {self.mood_rating}")
        if self.actual_duration is not None and self.actual_duration < 0:
            raise ValueError(f"actual_duration must be >= 0, got {self.actual_duration}")


@dataclass
class AdjustmentOption:
    id: str
    label: str
    action: AdjustmentType

    def __post_init__(self):
        self.action = AdjustmentType(self.action)


@dataclass
class ReplacementTask:
    """Task proposed by a split; becomes a real Task only when accepted."""

    title: str
    estimated_duration: int
    energy_level: EnergyLevel = EnergyLevel.LOW
    priority: int = 3

    def __post_init__(self):
        self.energy_level = EnergyLevel(self.energy_level)


@dataclass
class Adjustment:
    id: str
    target_task_id: str
    adjustment_type: AdjustmentType
    rationale: str
    options: list[AdjustmentOption] = field(default_factory=list)
    replacement_tasks: list[ReplacementTask] = field(default_factory=list)
    days_offset: int = 1
    originating_checkin_id: str | None = None
    encouragement: str | None = None
    state: AdjustmentState = AdjustmentState.PENDING
    chosen_option_id: str | None = None
    source: DecisionSource = DecisionSource.FALLBACK
    created_at: datetime = field(default_factory=datetime.now)
    resolved_at: datetime | None = None

    def __post_init__(self):
        self.adjustment_type = AdjustmentType(self.adjustment_type)
        self.state = AdjustmentState(self.state)
        self.source = DecisionSource(self.source)

    @property
    def is_resolved(self) -> bool:
        return self.state != AdjustmentState.PENDING

    def option(self, option_id: str | None = None) -> AdjustmentOption | None:
        """Option by id; without an id, the option matching the proposed type."""
        if option_id is not None:
            return next((o for o in self.options if o.id == option_id), None)
        for o in self.options:
            if o.action == self.adjustment_type:
                return o
        return self.options[0] if self.options else None
