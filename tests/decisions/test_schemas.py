"""Tests for decision schemas: validation and legacy field names."""

import pytest
from pydantic import ValidationError

from decisions.schemas import (
    AdjustmentResult,
    ClarifyQuestion,
    ClarifyResult,
    ExtractionResult,
    InsightsResult,
    TaskDraft,
    normalize_adjustment_type,
)
from shared_types import AdjustmentType


class TestClarify:
    def test_plain_string_options(self):
        q = ClarifyQuestion.model_validate({"id": "q1", "question": "How often?", "options": ["daily", "weekly"]})
        assert q.prompt == "How often?"
        assert [o.label for o in q.options] == ["daily", "weekly"]

    def test_needs_two_options(self):
        with pytest.raises(ValidationError):
            ClarifyQuestion.model_validate({"id": "q1", "prompt": "?", "options": ["only"]})

    def test_question_count_bounds(self):
        q = {"id": "q", "prompt": "p", "options": ["a", "b"]}
        with pytest.raises(ValidationError):
            ClarifyResult.model_validate({"questions": [q]})
        with pytest.raises(ValidationError):
            ClarifyResult.model_validate({"questions": [q] * 6})


class TestTaskDraft:
    def test_duration_alias(self):
        assert TaskDraft.model_validate({"title": "t", "duration": 15}).estimated_duration == 15

    @pytest.mark.parametrize("payload", [
        {"title": "t", "estimated_duration": 0},
        {"title": "t", "estimated_duration": 10, "priority": 6},
        {"title": "", "estimated_duration": 10},
        {"title": "t", "estimated_duration": 10, "energy_level": "extreme"},
    ])
    def test_invalid(self, payload):
        with pytest.raises(ValidationError):
            TaskDraft.model_validate(payload)


class TestAdjustment:
    @pytest.mark.parametrize("raw,expected", [
        ("split_task", AdjustmentType.SPLIT),
        ("reduce_scope", AdjustmentType.SPLIT),
        ("change_time", AdjustmentType.RESCHEDULE),
        ("drop", AdjustmentType.CANCEL),
        ("Postpone", AdjustmentType.POSTPONE),
    ])
    def test_synonyms(self, raw, expected):
        assert AdjustmentType(normalize_adjustment_type(raw)) == expected

    def test_days_offset_bounds(self):
        with pytest.raises(ValidationError):
            AdjustmentResult.model_validate({
                "adjustment_type": "postpone",
                "rationale": "r",
                "options": [{"id": "a", "label": "l", "action": "postpone"}],
                "days_offset": 0,
            })

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            AdjustmentResult.model_validate({
                "adjustment_type": "teleport",
                "rationale": "r",
                "options": [{"id": "a", "label": "l", "action": "postpone"}],
            })


class TestInsightsAndExtraction:
    def test_blank_insight_rejected(self):
        with pytest.raises(ValidationError):
            InsightsResult.model_validate({"insights": ["  "]})

    def test_too_many_insights(self):
        with pytest.raises(ValidationError):
            InsightsResult.model_validate({"insights": ["a", "b", "c", "d"]})

    def test_entities_exclude_tags(self):
        result = ExtractionResult.model_validate({"system_tags": ["relationship"], "people": ["Sam"]})
        entities = result.entities()
        assert "system_tags" not in entities
        assert entities["people"] == ["Sam"]
