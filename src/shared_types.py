"""Shared enums and types for wayfinder."""

from enum import StrEnum


class MemoryType(StrEnum):
    IMPORTANT_INFO = "important_info"
    PERSONAL_TRAIT = "personal_trait"
    KEY_EVENT = "key_event"
    DATE_REMINDER = "date_reminder"


# Key evidence types always rank above generic records
KEY_MEMORY_TYPES = frozenset(
    {MemoryType.PERSONAL_TRAIT, MemoryType.KEY_EVENT, MemoryType.DATE_REMINDER}
)


class SystemTag(StrEnum):
    SELF_AWARENESS = "self_awareness"
    GROWTH_JOURNEY = "growth_journey"
    GOAL_RELATED = "goal_related"
    RELATIONSHIP = "relationship"


class LifeDimension(StrEnum):
    HEALTH = "health"
    CAREER = "career"
    FAMILY = "family"
    FINANCE = "finance"
    GROWTH = "growth"
    SOCIAL = "social"
    HOBBY = "hobby"
    SELF_REALIZATION = "self_realization"


class GoalStatus(StrEnum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    POSTPONED = "postponed"


# Statuses a task can still be checked in from
OPEN_TASK_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.POSTPONED})


class EnergyLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CheckInOutcome(StrEnum):
    COMPLETED = "completed"
    NOT_COMPLETED = "not_completed"
    PARTIAL = "partial"


class ReasonCode(StrEnum):
    TIME_INSUFFICIENT = "time_insufficient"
    ENERGY_LOW = "energy_low"
    PRIORITY_CHANGED = "priority_changed"
    EXTERNAL_INTERRUPT = "external_interrupt"
    FORGOT = "forgot"
    OTHER = "other"


class AdjustmentType(StrEnum):
    SPLIT = "split"
    RESCHEDULE = "reschedule"
    POSTPONE = "postpone"
    CANCEL = "cancel"


class AdjustmentState(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DecisionSource(StrEnum):
    AI = "ai"
    FALLBACK = "fallback"
