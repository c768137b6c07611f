"""Personal memory store: capture, hybrid retrieval, contextual recall."""

from .models import MemoryRecord, RankedMemory, RankingExplanation, SearchFilters, Skill
from .ranker import HybridRanker
from .store import MemoryStore

__all__ = [
    "MemoryRecord",
    "RankedMemory",
    "RankingExplanation",
    "SearchFilters",
    "Skill",
    "HybridRanker",
    "MemoryStore",
]
