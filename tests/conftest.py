"""Shared test fixtures for Wayfinder."""

import asyncio
import json
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from decisions import DecisionEngine  # noqa: E402
from llm.base import LLMError, LLMProvider  # noqa: E402
from memory.models import MemoryRecord  # noqa: E402
from memory.store import MemoryStore  # noqa: E402
from observability import metrics  # noqa: E402
from planner.store import PlanStore  # noqa: E402

VOCAB = ["piano", "music", "practice", "run", "marathon", "patient", "sister", "birthday", "python"]


class FakeProvider(LLMProvider):
    """Scripted provider: each complete() call consumes the next response.

    A response may be a string, a dict (returned as JSON), an exception
    instance (raised), or the literal ``"HANG"`` (sleeps past any timeout).
    Embeddings are bag-of-words counts over ``VOCAB``.
    """

    provider_name = "fake"

    def __init__(self, responses=None, embeddings: bool = True):
        self.responses = list(responses or [])
        self.calls: list[dict] = []
        self.embed_calls = 0
        self._embeddings = embeddings

    async def complete(self, messages, system=None, json_mode=False, temperature=0.7, max_tokens=2000):
        self.calls.append({"messages": messages, "json_mode": json_mode, "temperature": temperature})
        if not self.responses:
            raise LLMError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if response == "HANG":
            await asyncio.sleep(10)
        if isinstance(response, dict):
            return json.dumps(response)
        return response

    async def embed(self, text: str) -> list[float]:
        if not self._embeddings:
            raise LLMError("fake has no embeddings")
        self.embed_calls += 1
        words = text.lower().split()
        return [float(sum(1 for w in words if v in w)) for v in VOCAB]

    @property
    def supports_embeddings(self) -> bool:
        return self._embeddings


def make_record(owner_id="u1", memory_type="important_info", text="note", **kwargs) -> MemoryRecord:
    return MemoryRecord(id=kwargs.pop("id", ""), owner_id=owner_id, type=memory_type, text=text, **kwargs)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def memory_store(tmp_path):
    """SQLite only; vector queries return nothing."""
    return MemoryStore(tmp_path / "wayfinder.db", chroma_dir=None)


@pytest.fixture
def chroma_store(tmp_path):
    """SQLite plus a ChromaDB index under tmp_path."""
    return MemoryStore(tmp_path / "wayfinder.db", chroma_dir=tmp_path / "chroma")


@pytest.fixture
def plan_store(tmp_path):
    return PlanStore(tmp_path / "wayfinder.db")


@pytest.fixture
def offline_engine():
    """Engine with no generation tier; every decision is a fallback."""
    return DecisionEngine(provider=None)


@pytest.fixture
def base_time():
    return datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def days_ago(base_time):
    def _at(n: int) -> datetime:
        return base_time - timedelta(days=n)

    return _at
