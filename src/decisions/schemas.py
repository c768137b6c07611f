"""Pydantic schemas for generated decisions.

Model output is validated against these before use; fallbacks build
instances of the same classes so callers never see a malformed result.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from shared_types import AdjustmentType, EnergyLevel, LifeDimension, SystemTag

# Legacy / model-invented adjustment names mapped onto the four canonical actions
ADJUSTMENT_SYNONYMS = {
    "split_task": AdjustmentType.SPLIT,
    "reduce_scope": AdjustmentType.SPLIT,
    "change_time": AdjustmentType.RESCHEDULE,
    "drop": AdjustmentType.CANCEL,
}


def normalize_adjustment_type(value):
    if isinstance(value, str):
        key = value.strip().lower()
        return ADJUSTMENT_SYNONYMS.get(key, key)
    return value


class ClarifyOption(BaseModel):
    value: str = Field(min_length=1)
    label: str = Field(min_length=1)


class ClarifyQuestion(BaseModel):
    id: str = Field(min_length=1)
    prompt: str = Field(min_length=1, validation_alias=AliasChoices("prompt", "question"))
    options: list[ClarifyOption] = Field(min_length=2, max_length=4)

    @field_validator("options", mode="before")
    @classmethod
    def coerce_plain_options(cls, v):
        if isinstance(v, list):
            return [{"value": o, "label": o} if isinstance(o, str) else o for o in v]
        return v


class ClarifyResult(BaseModel):
    questions: list[ClarifyQuestion] = Field(min_length=2, max_length=5)


class TaskDraft(BaseModel):
    title: str = Field(min_length=1)
    estimated_duration: int = Field(
        gt=0, validation_alias=AliasChoices("estimated_duration", "duration")
    )
    energy_level: EnergyLevel = EnergyLevel.MEDIUM
    priority: int = Field(default=3, ge=1, le=5)
    suggested_schedule: Optional[str] = None


class MilestoneDraft(BaseModel):
    title: str = Field(min_length=1)
    deadline: Optional[str] = None
    tasks: list[TaskDraft] = Field(min_length=1)


class GoalDraft(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    specific: str = Field(min_length=1)
    measurable: str = Field(min_length=1)
    achievable: str = Field(min_length=1)
    relevant: str = Field(min_length=1)
    time_bound: str = Field(min_length=1)
    dimension: LifeDimension = Field(
        validation_alias=AliasChoices("dimension", "life_wheel_dimension")
    )


class DecomposeResult(BaseModel):
    goal: GoalDraft
    milestones: list[MilestoneDraft] = Field(min_length=1)

    def iter_tasks(self):
        """Yield (milestone title, task) pairs in plan order."""
        for milestone in self.milestones:
            for task in milestone.tasks:
                yield milestone.title, task


class AdjustmentOptionDraft(BaseModel):
    id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    action: AdjustmentType

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        return normalize_adjustment_type(v)


class AdjustmentResult(BaseModel):
    adjustment_type: AdjustmentType
    rationale: str = Field(min_length=1, validation_alias=AliasChoices("rationale", "suggestion"))
    options: list[AdjustmentOptionDraft] = Field(min_length=1)
    new_tasks: list[TaskDraft] = Field(default_factory=list)
    days_offset: int = Field(default=1, ge=1, le=30)
    encouragement: Optional[str] = None

    @field_validator("adjustment_type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return normalize_adjustment_type(v)

    @model_validator(mode="after")
    def split_needs_tasks(self):
        if self.adjustment_type == AdjustmentType.SPLIT and not self.new_tasks:
            raise ValueError("split adjustments must include at least one new task")
        return self


class InsightsResult(BaseModel):
    insights: list[str] = Field(min_length=1, max_length=3)

    @field_validator("insights")
    @classmethod
    def non_blank(cls, v: list[str]) -> list[str]:
        if any(not s.strip() for s in v):
            raise ValueError("insights must be non-empty strings")
        return v


class ExtractionResult(BaseModel):
    """Structured entities pulled from a captured memory."""

    system_tags: list[SystemTag] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    traits: list[str] = Field(default_factory=list)
    emotions: list[str] = Field(default_factory=list)
    conclusions: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)

    @field_validator("system_tags", mode="before")
    @classmethod
    def drop_unknown_tags(cls, v):
        # Tags outside the fixed vocabulary are discarded, not rejected
        if isinstance(v, list):
            valid = {t.value for t in SystemTag}
            return [t for t in v if t in valid]
        return v

    def entities(self) -> dict:
        return self.model_dump(exclude={"system_tags"})
