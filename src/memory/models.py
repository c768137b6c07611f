"""Data models for the personal memory store."""

from dataclasses import dataclass, field
from datetime import date, datetime

from shared_types import KEY_MEMORY_TYPES, MemoryType, SystemTag


@dataclass
class MemoryRecord:
    id: str
    owner_id: str
    type: MemoryType
    text: str
    structured_extract: dict | None = None
    system_tags: list[SystemTag] = field(default_factory=list)
    user_tags: list[str] = field(default_factory=list)
    embedding: list[float] | None = None
    confidence: float = 0.8
    impact_score: float = 0.0
    usage_count: int = 0
    reminder_date: date | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.type = MemoryType(self.type)
        self.system_tags = [SystemTag(t) for t in self.system_tags]
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.impact_score < 0:
            raise ValueError(f"impact_score must be >= 0, got {self.impact_score}")
        if self.usage_count < 0:
            raise ValueError(f"usage_count must be >= 0, got {self.usage_count}")

    @property
    def is_key(self) -> bool:
        return self.type in KEY_MEMORY_TYPES

    @property
    def tags(self) -> list[str]:
        return [t.value for t in self.system_tags] + list(self.user_tags)


@dataclass
class SearchFilters:
    """Owner-scoped filters applied before ranking."""

    type: MemoryType | None = None
    tags: list[str] = field(default_factory=list)  # match any system or user tag


@dataclass
class RankingExplanation:
    """Per-component breakdown of a record's final score."""

    key_boost: float = 0.0
    vector_score: float = 0.0
    lexical_score: float = 0.0
    impact_bonus: float = 0.0
    reranked: bool = False
    rerank_score: float | None = None

    def as_text(self) -> str:
        parts = []
        if self.key_boost:
            parts.append("key evidence")
        if self.vector_score:
            parts.append(f"semantic {self.vector_score:.2f}")
        if self.lexical_score:
            parts.append(f"keyword {self.lexical_score:.2f}")
        if self.impact_bonus:
            parts.append(f"impact +{self.impact_bonus:.2f}")
        if self.reranked and self.rerank_score is not None:
            parts.append(f"reranked {self.rerank_score:.2f}")
        return ", ".join(parts) or "filter match"


@dataclass
class RankedMemory:
    record: MemoryRecord
    score: float
    explanation: RankingExplanation = field(default_factory=RankingExplanation)


@dataclass
class Skill:
    """A named ability backed by linked memories."""

    name: str
    evidence_count: int = 0
    updated_at: datetime | None = None
