"""Tests for deterministic fallback builders."""

import pytest

from decisions.fallbacks import (
    adjust_fallback,
    clarify_fallback,
    decompose_fallback,
    extract_fallback,
    insights_fallback,
    split_task,
)
from shared_types import AdjustmentType, LifeDimension, SystemTag


class TestClarify:
    def test_fixed_questions(self):
        result = clarify_fallback()
        assert [q.id for q in result.questions] == ["timebound", "weekly_hours"]
        assert [o.value for o in result.questions[0].options] == ["1m", "3m", "6m", "1y"]


class TestDecompose:
    def test_three_tasks(self):
        result = decompose_fallback("Learn piano")
        tasks = [t for _, t in result.iter_tasks()]
        assert len(tasks) == 3
        assert all(t.estimated_duration == 30 for t in tasks)
        assert [t.energy_level.value for t in tasks] == ["medium", "low", "high"]
        assert result.goal.dimension == LifeDimension.GROWTH

    def test_uses_answers(self):
        result = decompose_fallback("Learn piano", {"timebound": "1y", "weekly_hours": "6"})
        assert result.goal.time_bound == "within 1 year"
        assert "6 hours" in result.goal.achievable

    def test_blank_prompt(self):
        assert decompose_fallback("   ").goal.title == "New goal"


class TestSplitTask:
    @pytest.mark.parametrize("duration,parts,chunk", [
        (30, 2, 15),
        (20, 2, 10),
        (45, 3, 15),
        (100, 3, 34),
        (6, 2, 5),
    ])
    def test_chunks(self, duration, parts, chunk):
        pieces = split_task("Read", duration)
        assert len(pieces) == parts
        assert all(p.estimated_duration == chunk for p in pieces)
        assert pieces[-1].title == f"Read (part {parts}/{parts})"


class TestAdjust:
    @pytest.mark.parametrize("reason,expected,offset", [
        ("time_insufficient", AdjustmentType.SPLIT, 1),
        ("energy_low", AdjustmentType.RESCHEDULE, 1),
        ("external_interrupt", AdjustmentType.POSTPONE, 2),
        ("priority_changed", AdjustmentType.RESCHEDULE, 1),
        ("other", AdjustmentType.POSTPONE, 1),
        (None, AdjustmentType.POSTPONE, 1),
        ("made_up", AdjustmentType.POSTPONE, 1),
    ])
    def test_table(self, reason, expected, offset):
        result = adjust_fallback("Practice", 40, reason)
        assert result.adjustment_type == expected
        assert result.days_offset == offset
        assert result.options[0].action == expected

    def test_split_has_new_tasks(self):
        result = adjust_fallback("Practice", 40, "time_insufficient")
        assert len(result.new_tasks) == 3

    def test_options_are_unique(self):
        result = adjust_fallback("Practice", 40, "external_interrupt")
        actions = [o.action for o in result.options]
        assert actions == [AdjustmentType.POSTPONE, AdjustmentType.CANCEL]
        assert [o.id for o in result.options] == ["opt_1", "opt_2"]


class TestOther:
    def test_insights(self):
        assert len(insights_fallback().insights) == 1

    @pytest.mark.parametrize("memory_type,tag", [
        ("personal_trait", SystemTag.SELF_AWARENESS),
        ("key_event", SystemTag.GROWTH_JOURNEY),
        ("date_reminder", SystemTag.RELATIONSHIP),
        ("important_info", SystemTag.GOAL_RELATED),
        ("unknown", SystemTag.SELF_AWARENESS),
    ])
    def test_extract_default_tags(self, memory_type, tag):
        assert extract_fallback(memory_type).system_tags == [tag]
