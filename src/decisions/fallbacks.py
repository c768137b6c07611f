"""Deterministic fallback decisions.

Each builder returns a valid instance of the matching schema for any input,
so a decision always completes even when generation is unavailable.
"""

import math

from shared_types import AdjustmentType, EnergyLevel, LifeDimension, MemoryType, ReasonCode, SystemTag

from .schemas import (
    AdjustmentOptionDraft,
    AdjustmentResult,
    ClarifyOption,
    ClarifyQuestion,
    ClarifyResult,
    DecomposeResult,
    ExtractionResult,
    GoalDraft,
    InsightsResult,
    MilestoneDraft,
    TaskDraft,
)

TIMEBOUND_LABELS = {
    "1m": "within 1 month",
    "3m": "within 3 months",
    "6m": "within 6 months",
    "1y": "within 1 year",
}

DEFAULT_TAGS_BY_TYPE = {
    MemoryType.PERSONAL_TRAIT: SystemTag.SELF_AWARENESS,
    MemoryType.KEY_EVENT: SystemTag.GROWTH_JOURNEY,
    MemoryType.DATE_REMINDER: SystemTag.RELATIONSHIP,
    MemoryType.IMPORTANT_INFO: SystemTag.GOAL_RELATED,
}

# reason code -> (adjustment type, rationale, days offset)
_ADJUSTMENT_RULES = {
    ReasonCode.TIME_INSUFFICIENT: (
        AdjustmentType.SPLIT,
        "Not enough time in one sitting. Split the task into smaller chunks that fit short gaps.",
        1,
    ),
    ReasonCode.ENERGY_LOW: (
        AdjustmentType.RESCHEDULE,
        "Energy was low. Move the task to a slot where you usually have more energy.",
        1,
    ),
    ReasonCode.EXTERNAL_INTERRUPT: (
        AdjustmentType.POSTPONE,
        "Something outside your control got in the way. Push the task back with a buffer day.",
        2,
    ),
    ReasonCode.PRIORITY_CHANGED: (
        AdjustmentType.RESCHEDULE,
        "Priorities shifted. Re-evaluate where this task fits and reschedule it accordingly.",
        1,
    ),
}
_DEFAULT_RULE = (
    AdjustmentType.POSTPONE,
    "Push the task to tomorrow and set a reminder so it stays on your radar.",
    1,
)

_OPTION_LABELS = {
    AdjustmentType.SPLIT: "Split into smaller tasks",
    AdjustmentType.RESCHEDULE: "Reschedule to a better time",
    AdjustmentType.POSTPONE: "Push to a later day",
    AdjustmentType.CANCEL: "Drop this task",
}


def clarify_fallback() -> ClarifyResult:
    return ClarifyResult(
        questions=[
            ClarifyQuestion(
                id="timebound",
                prompt="When would you like to reach this goal?",
                options=[
                    ClarifyOption(value="1m", label="1 month"),
                    ClarifyOption(value="3m", label="3 months"),
                    ClarifyOption(value="6m", label="6 months"),
                    ClarifyOption(value="1y", label="1 year"),
                ],
            ),
            ClarifyQuestion(
                id="weekly_hours",
                prompt="Roughly how many hours per week can you put in?",
                options=[
                    ClarifyOption(value="3", label="3 hours"),
                    ClarifyOption(value="6", label="6 hours"),
                    ClarifyOption(value="10", label="10 hours"),
                    ClarifyOption(value="20", label="20+ hours"),
                ],
            ),
        ]
    )


def decompose_fallback(prompt: str, answers: dict | None = None) -> DecomposeResult:
    answers = answers or {}
    title = prompt.strip() or "New goal"
    time_bound = TIMEBOUND_LABELS.get(str(answers.get("timebound", "")), "within 3 months")
    hours = answers.get("weekly_hours")
    achievable = (
        f"Planned around {hours} hours per week." if hours else "Starts with 30-minute steps."
    )
    return DecomposeResult(
        goal=GoalDraft(
            title=title,
            description="",
            specific=title,
            measurable="Complete the first three planned actions.",
            achievable=achievable,
            relevant="You named this as something that matters to you.",
            time_bound=time_bound,
            dimension=LifeDimension.GROWTH,
        ),
        milestones=[
            MilestoneDraft(
                title="Get started",
                tasks=[
                    TaskDraft(
                        title=f"Break down the goal: {title}",
                        estimated_duration=30,
                        energy_level=EnergyLevel.MEDIUM,
                    ),
                    TaskDraft(
                        title=f"Gather resources: make a resource list for '{title}'",
                        estimated_duration=30,
                        energy_level=EnergyLevel.LOW,
                    ),
                    TaskDraft(
                        title="Take the first step: complete one smallest possible action",
                        estimated_duration=30,
                        energy_level=EnergyLevel.HIGH,
                    ),
                ],
            )
        ],
    )


def split_task(title: str, estimated_duration: int) -> list[TaskDraft]:
    """Split a task into 2 (up to 30 min) or 3 (longer) equal chunks."""
    parts = 2 if estimated_duration <= 30 else 3
    chunk = max(5, math.ceil(estimated_duration / parts))
    return [
        TaskDraft(
            title=f"{title} (part {i}/{parts})",
            estimated_duration=chunk,
            energy_level=EnergyLevel.LOW,
        )
        for i in range(1, parts + 1)
    ]


def adjust_fallback(
    task_title: str, estimated_duration: int, reason_code: str | None
) -> AdjustmentResult:
    try:
        rule = _ADJUSTMENT_RULES.get(ReasonCode(reason_code), _DEFAULT_RULE)
    except ValueError:
        rule = _DEFAULT_RULE
    adjustment_type, rationale, days_offset = rule

    option_actions = [adjustment_type]
    for alternative in (AdjustmentType.POSTPONE, AdjustmentType.CANCEL):
        if alternative not in option_actions:
            option_actions.append(alternative)

    return AdjustmentResult(
        adjustment_type=adjustment_type,
        rationale=rationale,
        options=[
            AdjustmentOptionDraft(id=f"opt_{i}", label=_OPTION_LABELS[action], action=action)
            for i, action in enumerate(option_actions, start=1)
        ],
        new_tasks=(
            split_task(task_title, estimated_duration)
            if adjustment_type == AdjustmentType.SPLIT
            else []
        ),
        days_offset=days_offset,
        encouragement="Adjusting the plan is part of the plan. Keep going.",
    )


def insights_fallback() -> InsightsResult:
    return InsightsResult(
        insights=["Based on your history, this goal is achievable. Start with the smallest next step."]
    )


def extract_fallback(memory_type: MemoryType | str) -> ExtractionResult:
    try:
        tag = DEFAULT_TAGS_BY_TYPE[MemoryType(memory_type)]
    except (ValueError, KeyError):
        tag = SystemTag.SELF_AWARENESS
    return ExtractionResult(system_tags=[tag])
