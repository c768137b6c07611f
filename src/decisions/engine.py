"""Two-tier decision engine: generation first, deterministic fallback always available."""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

import structlog
from pydantic import BaseModel, ValidationError

from cli.retry import llm_retry
from errors import ParseError, SchemaError, TransportError
from llm.base import LLMProvider, LLMRateLimitError
from llm.parsing import parse_json_object
from memory.models import MemoryRecord
from observability import metrics
from shared_types import DecisionSource

from . import fallbacks, prompts
from .balance import BalanceReport, analyze_balance
from .reflection import ReflectionReport, analyze_reflection
from .schemas import (
    AdjustmentResult,
    ClarifyResult,
    DecomposeResult,
    ExtractionResult,
    InsightsResult,
)

logger = structlog.get_logger()

# Expected fallbacks that are not worth a warning
_QUIET_REASONS = {"no_provider"}


@dataclass
class Decision:
    """A decision value tagged with the tier that produced it."""

    name: str
    source: DecisionSource
    value: Any
    error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source == DecisionSource.FALLBACK

    def to_dict(self) -> dict:
        value = self.value.model_dump(mode="json") if isinstance(self.value, BaseModel) else self.value
        return {"name": self.name, "source": self.source.value, "value": value}


class DecisionEngine:
    """Runs each decision through the generation tier and falls back on any failure.

    Timeouts, transport errors, unparseable output and schema violations all
    produce the fallback value; they are logged and counted, never raised.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        timeout: float = 20.0,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        rate_limit_attempts: int = 2,
        rate_limit_wait: float = 1.0,
        rate_limit_max_wait: float = 10.0,
    ):
        self.provider = provider
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.rate_limit_attempts = rate_limit_attempts
        self.rate_limit_wait = rate_limit_wait
        self.rate_limit_max_wait = rate_limit_max_wait

    async def attempt(
        self,
        name: str,
        messages: list[dict],
        schema: type[BaseModel],
        fallback: Callable[[], BaseModel],
        timeout: float | None = None,
        temperature: float | None = None,
    ) -> Decision:
        budget = self.timeout if timeout is None else min(timeout, self.timeout)
        if self.provider is None:
            return self._fallback(name, fallback, "no_provider")
        if budget <= 0:
            return self._fallback(name, fallback, "deadline")

        try:
            with metrics.timer(f"decision.{name}"):
                raw = await asyncio.wait_for(self._complete(messages, temperature), budget)
            parsed = parse_json_object(raw)
            try:
                value = schema.model_validate(parsed)
            except ValidationError as e:
                raise SchemaError(f"{schema.__name__}: {e.error_count()} validation errors") from e
        except TimeoutError:
            return self._fallback(name, fallback, "timeout", f"no response within {budget:.1f}s")
        except TransportError as e:
            return self._fallback(name, fallback, "transport", str(e))
        except ParseError as e:
            return self._fallback(name, fallback, "parse", str(e))
        except SchemaError as e:
            return self._fallback(name, fallback, "schema", str(e))

        metrics.record_decision(name, DecisionSource.AI)
        return Decision(name=name, source=DecisionSource.AI, value=value)

    async def _complete(self, messages: list[dict], temperature: float | None) -> str:
        call = llm_retry(
            max_attempts=self.rate_limit_attempts,
            min_wait=self.rate_limit_wait,
            max_wait=self.rate_limit_max_wait,
            exceptions=(LLMRateLimitError,),
        )(self.provider.complete)
        return await call(
            messages,
            json_mode=True,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=self.max_tokens,
        )

    def _fallback(self, name: str, fallback: Callable[[], BaseModel], reason: str, error: str = ""):
        if reason not in _QUIET_REASONS:
            logger.warning("decision_fallback", decision=name, reason=reason, error=error[:200])
        metrics.record_decision(name, DecisionSource.FALLBACK, reason)
        return Decision(name=name, source=DecisionSource.FALLBACK, value=fallback(), error=error or reason)

    # --- decision functions ---

    async def clarify(
        self, prompt: str, memories: list[MemoryRecord], timeout: float | None = None
    ) -> Decision:
        """Two to five multiple-choice questions that sharpen a vague goal."""
        return await self.attempt(
            "clarify",
            prompts.clarify_messages(prompt, memories[:5]),
            ClarifyResult,
            fallbacks.clarify_fallback,
            timeout=timeout,
        )

    async def decompose(
        self,
        prompt: str,
        answers: dict,
        memories: list[MemoryRecord],
        timeout: float | None = None,
    ) -> Decision:
        """SMART goal plus milestones and tasks."""
        return await self.attempt(
            "decompose",
            prompts.decompose_messages(prompt, answers, memories[:5]),
            DecomposeResult,
            lambda: fallbacks.decompose_fallback(prompt, answers),
            timeout=timeout,
        )

    async def adjust(
        self,
        task_title: str,
        estimated_duration: int,
        reason_code: str | None,
        note: str = "",
        timeout: float | None = None,
    ) -> Decision:
        """Adjustment proposal for a task that was not completed."""
        return await self.attempt(
            "adjust",
            prompts.adjust_messages(task_title, estimated_duration, reason_code or "other", note),
            AdjustmentResult,
            lambda: fallbacks.adjust_fallback(task_title, estimated_duration, reason_code),
            timeout=timeout,
            temperature=0.6,
        )

    async def insights(
        self, goal_title: str, memories: list[MemoryRecord], timeout: float | None = None
    ) -> Decision:
        return await self.attempt(
            "insights",
            prompts.insights_messages(goal_title, memories),
            InsightsResult,
            fallbacks.insights_fallback,
            timeout=timeout,
        )

    async def extract(self, text: str, memory_type: str, timeout: float | None = None) -> Decision:
        """Structured entities and system tags for a captured memory."""
        decision = await self.attempt(
            "extract",
            prompts.extract_messages(text, memory_type),
            ExtractionResult,
            lambda: fallbacks.extract_fallback(memory_type),
            timeout=timeout,
            temperature=0.2,
        )
        if not decision.is_fallback and not decision.value.system_tags:
            decision.value.system_tags = fallbacks.extract_fallback(memory_type).system_tags
        return decision

    def balance(self, goals, candidate_dimension) -> BalanceReport:
        """Deterministic; always reports source=fallback."""
        report = analyze_balance(goals, candidate_dimension)
        metrics.record_decision("balance", DecisionSource.FALLBACK)
        return report

    def reflect(self, checkins, period: str = "weekly", memories_by_type: dict | None = None) -> ReflectionReport:
        """Deterministic period review; always reports source=fallback."""
        report = analyze_reflection(checkins, period, memories_by_type)
        metrics.record_decision("reflect", DecisionSource.FALLBACK)
        return report
