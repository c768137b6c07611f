"""Tests for DecisionEngine: AI tier, fallback on every failure mode."""

import pytest

from conftest import FakeProvider
from decisions import DecisionEngine
from decisions.schemas import AdjustmentResult, ClarifyResult, DecomposeResult, InsightsResult
from llm.base import LLMError, LLMRateLimitError
from observability import metrics
from shared_types import AdjustmentType, DecisionSource, LifeDimension

VALID_DECOMPOSE = {
    "goal": {
        "title": "Play a Chopin nocturne",
        "specific": "Learn Nocturne Op. 9 No. 2",
        "measurable": "Play it start to finish without stopping",
        "achievable": "30 minutes a day",
        "relevant": "Music matters to me",
        "time_bound": "within 6 months",
        "life_wheel_dimension": "hobby",
    },
    "milestones": [
        {
            "title": "Foundations",
            "tasks": [
                {"title": "Scales", "duration": 20, "energy_level": "low", "priority": 2},
                {"title": "First 8 bars", "estimated_duration": 40},
            ],
        }
    ],
}

VALID_ADJUST = {
    "adjustment_type": "change_time",
    "suggestion": "Try mornings",
    "options": [
        {"id": "a", "label": "Morning", "action": "change_time"},
        {"id": "b", "label": "Drop it", "action": "drop"},
    ],
    "days_offset": 2,
}

MEMORIES: list = []


def failing_engine(failure, timeout=0.2):
    return DecisionEngine(FakeProvider([failure] * 4), timeout=timeout, rate_limit_attempts=1)


FAILURES = [
    pytest.param("HANG", id="timeout"),
    pytest.param(LLMError("connection reset"), id="transport"),
    pytest.param("Sure! Here is your plan:", id="no-json"),
    pytest.param('{"milestones": ', id="truncated-json"),
    pytest.param({"unexpected": True}, id="schema"),
]


class TestAITier:
    @pytest.mark.asyncio
    async def test_decompose_ai(self):
        provider = FakeProvider([VALID_DECOMPOSE])
        engine = DecisionEngine(provider)
        decision = await engine.decompose("learn piano", {"timebound": "6m"}, MEMORIES)

        assert decision.source == DecisionSource.AI
        assert isinstance(decision.value, DecomposeResult)
        assert decision.value.goal.dimension == LifeDimension.HOBBY
        tasks = [t for _, t in decision.value.iter_tasks()]
        assert tasks[0].estimated_duration == 20
        assert provider.calls[0]["json_mode"] is True
        assert metrics.get("decision.decompose.ai") == 1

    @pytest.mark.asyncio
    async def test_adjust_normalizes_synonyms(self):
        engine = DecisionEngine(FakeProvider([VALID_ADJUST]))
        decision = await engine.adjust("Practice", 30, "energy_low")
        assert decision.source == DecisionSource.AI
        assert decision.value.adjustment_type == AdjustmentType.RESCHEDULE
        assert decision.value.rationale == "Try mornings"
        assert [o.action for o in decision.value.options] == [AdjustmentType.RESCHEDULE, AdjustmentType.CANCEL]

    @pytest.mark.asyncio
    async def test_adjust_uses_lower_temperature(self):
        provider = FakeProvider([VALID_ADJUST])
        await DecisionEngine(provider).adjust("Practice", 30, "energy_low")
        assert provider.calls[0]["temperature"] == 0.6

    @pytest.mark.asyncio
    async def test_fenced_json_accepted(self):
        fenced = '```json\n{"insights": ["Keep going"]}\n```'
        decision = await DecisionEngine(FakeProvider([fenced])).insights("goal", MEMORIES)
        assert decision.source == DecisionSource.AI
        assert decision.value.insights == ["Keep going"]

    @pytest.mark.asyncio
    async def test_rate_limit_retried_within_budget(self):
        provider = FakeProvider([LLMRateLimitError("slow down"), {"insights": ["ok"]}])
        engine = DecisionEngine(provider, timeout=5.0, rate_limit_attempts=2, rate_limit_wait=0.01,
                                rate_limit_max_wait=0.01)
        decision = await engine.insights("goal", MEMORIES)
        assert decision.source == DecisionSource.AI
        assert len(provider.calls) == 2


class TestFallbackTotality:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", FAILURES)
    async def test_clarify(self, failure):
        decision = await failing_engine(failure).clarify("get fit", MEMORIES)
        assert decision.source == DecisionSource.FALLBACK
        assert isinstance(decision.value, ClarifyResult)
        assert 2 <= len(decision.value.questions) <= 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", FAILURES)
    async def test_decompose(self, failure):
        decision = await failing_engine(failure).decompose("get fit", {}, MEMORIES)
        assert decision.source == DecisionSource.FALLBACK
        assert len(list(decision.value.iter_tasks())) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", FAILURES)
    async def test_adjust(self, failure):
        decision = await failing_engine(failure).adjust("Run 5k", 45, "time_insufficient")
        assert decision.source == DecisionSource.FALLBACK
        assert isinstance(decision.value, AdjustmentResult)
        assert decision.value.adjustment_type == AdjustmentType.SPLIT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", FAILURES)
    async def test_insights(self, failure):
        decision = await failing_engine(failure).insights("get fit", MEMORIES)
        assert decision.source == DecisionSource.FALLBACK
        assert isinstance(decision.value, InsightsResult)

    @pytest.mark.asyncio
    async def test_no_provider(self, offline_engine):
        decision = await offline_engine.clarify("get fit", MEMORIES)
        assert decision.is_fallback
        assert decision.error == "no_provider"
        assert metrics.get("decision.fallback_reason.no_provider") == 1

    @pytest.mark.asyncio
    async def test_exhausted_deadline_skips_generation(self):
        provider = FakeProvider([{"insights": ["never used"]}])
        decision = await DecisionEngine(provider).insights("goal", MEMORIES, timeout=0)
        assert decision.is_fallback
        assert decision.error == "deadline"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_milestones_rejected(self):
        bad = {**VALID_DECOMPOSE}
        del bad["milestones"]
        decision = await DecisionEngine(FakeProvider([bad])).decompose("learn piano", {}, MEMORIES)
        assert decision.source == DecisionSource.FALLBACK
        titles = [t.title for _, t in decision.value.iter_tasks()]
        assert len(titles) == 3
        assert titles[0].startswith("Break down the goal")
        assert titles[1].startswith("Gather resources")
        assert titles[2].startswith("Take the first step")

    @pytest.mark.asyncio
    async def test_split_without_tasks_rejected(self):
        bad = {**VALID_ADJUST, "adjustment_type": "split"}
        decision = await DecisionEngine(FakeProvider([bad])).adjust("Read", 60, "time_insufficient")
        assert decision.is_fallback
        assert decision.value.new_tasks

    @pytest.mark.asyncio
    async def test_fallback_counted(self):
        await failing_engine("garbage").insights("goal", MEMORIES)
        assert metrics.get("decision.insights.fallback") == 1
        assert metrics.get("decision.fallback_reason.parse") == 1


class TestExtract:
    @pytest.mark.asyncio
    async def test_unknown_tags_dropped(self):
        engine = DecisionEngine(FakeProvider([{"system_tags": ["growth_journey", "bogus"]}]))
        decision = await engine.extract("Finished my first marathon", "key_event")
        assert [t.value for t in decision.value.system_tags] == ["growth_journey"]

    @pytest.mark.asyncio
    async def test_fallback_default_tag(self, offline_engine):
        decision = await offline_engine.extract("Sister's birthday", "date_reminder")
        assert [t.value for t in decision.value.system_tags] == ["relationship"]


class TestBalanceDecision:
    def test_always_fallback_and_no_generation(self):
        provider = FakeProvider()
        engine = DecisionEngine(provider)
        report = engine.balance(["career"], "health")
        assert report.source == DecisionSource.FALLBACK
        assert provider.calls == []
