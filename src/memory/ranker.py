"""Hybrid memory retrieval: lexical + semantic candidates, key-evidence tiering, rerank."""

import asyncio
import math

import structlog

from errors import TransportError
from llm.base import LLMProvider
from llm.rerank import EmbeddingReranker
from observability import metrics

from .models import RankedMemory, RankingExplanation, SearchFilters
from .store import MemoryStore

logger = structlog.get_logger()

DEFAULT_KEY_TYPE_BOOST = 10.0
DEFAULT_LEXICAL_WEIGHT = 0.5


def lexical_score(query: str, text: str) -> float:
    """1.0 when the whole query occurs in text, else the fraction of query terms found."""
    q = query.strip().lower()
    if not q:
        return 0.0
    haystack = text.lower()
    if q in haystack:
        return 1.0
    terms = [t for t in q.split() if len(t) >= 2]
    if not terms:
        return 0.0
    return sum(1 for t in terms if t in haystack) / len(terms)


class HybridRanker:
    """Ranks an owner's memories for a query.

    Final order: key-type records first, then by combined score, ties broken
    by recency. Reranking only reorders within a tier.
    """

    def __init__(
        self,
        store: MemoryStore,
        embedder: LLMProvider | None = None,
        reranker: EmbeddingReranker | None = None,
        key_type_boost: float = DEFAULT_KEY_TYPE_BOOST,
        lexical_weight: float = DEFAULT_LEXICAL_WEIGHT,
        candidate_multiplier: int = 3,
        min_similarity: float = 0.0,
        embed_timeout: float = 5.0,
        rerank_timeout: float = 5.0,
    ):
        self.store = store
        self.embedder = embedder
        self.reranker = reranker
        self.key_type_boost = key_type_boost
        self.lexical_weight = lexical_weight
        self.candidate_multiplier = candidate_multiplier
        self.min_similarity = min_similarity
        self.embed_timeout = embed_timeout
        self.rerank_timeout = rerank_timeout
        self._usage_tasks: set[asyncio.Task] = set()

    async def search(
        self,
        owner_id: str,
        query: str = "",
        filters: SearchFilters | None = None,
        limit: int = 5,
        record_usage: bool = True,
    ) -> list[RankedMemory]:
        """Return up to ``limit`` memories ranked for ``query``.

        An empty query browses by filters only. Embedding or rerank failures
        degrade silently; store failures propagate as StoreError. With
        ``record_usage`` off, the caller reports usage via ``record_usage()``.
        """
        if limit <= 0:
            return []
        query = (query or "").strip()
        pool = limit * self.candidate_multiplier
        metrics.counter("retrieval.search")

        lexical_hits = await self.store.query(owner_id, filters, text=query or None, limit=pool)
        vector_hits = await self._vector_candidates(owner_id, query, filters, pool)

        candidates: dict[str, RankedMemory] = {}
        for record in lexical_hits:
            candidates[record.id] = RankedMemory(record=record, score=0.0)
        for record, similarity in vector_hits:
            ranked = candidates.setdefault(record.id, RankedMemory(record=record, score=0.0))
            ranked.explanation.vector_score = similarity

        if not candidates:
            return []

        for ranked in candidates.values():
            self._score(ranked, query)

        ordered = sorted(candidates.values(), key=self._sort_key, reverse=True)
        if query and self.reranker and len(ordered) > limit:
            ordered = await self._rerank(query, ordered[:pool])

        results = ordered[:limit]
        if record_usage:
            self.record_usage([r.record.id for r in results])
        logger.debug(
            "memory_search",
            owner_id=owner_id,
            lexical=len(lexical_hits),
            vector=len(vector_hits),
            returned=len(results),
        )
        return results

    async def flush(self) -> None:
        """Wait for outstanding usage-count updates."""
        if self._usage_tasks:
            await asyncio.gather(*list(self._usage_tasks))

    def _score(self, ranked: RankedMemory, query: str):
        record = ranked.record
        exp = ranked.explanation
        exp.key_boost = self.key_type_boost if record.is_key else 0.0
        exp.lexical_score = lexical_score(query, record.text) if query else 0.0
        exp.impact_bonus = math.log1p(record.impact_score)
        ranked.score = (
            exp.key_boost
            + exp.vector_score
            + self.lexical_weight * exp.lexical_score
            + exp.impact_bonus
        )

    @staticmethod
    def _sort_key(ranked: RankedMemory):
        return (ranked.record.is_key, ranked.score, ranked.record.created_at)

    async def _vector_candidates(self, owner_id, query, filters, pool):
        if not query or self.embedder is None:
            return []
        try:
            vector = await asyncio.wait_for(self.embedder.embed(query), self.embed_timeout)
        except (TimeoutError, TransportError) as e:
            metrics.counter("retrieval.embed_failed")
            logger.warning("query_embedding_failed", error=str(e) or type(e).__name__)
            return []
        return await self.store.query_by_vector(
            owner_id, vector, filters, limit=pool, min_similarity=self.min_similarity
        )

    async def _rerank(self, query: str, ordered: list[RankedMemory]) -> list[RankedMemory]:
        try:
            scored = await asyncio.wait_for(
                self.reranker.rerank(query, [r.record.text for r in ordered]),
                self.rerank_timeout,
            )
        except Exception as e:
            # Any reranker failure keeps the score order
            metrics.counter("retrieval.rerank_failed")
            logger.warning("rerank_failed", error=str(e), error_type=type(e).__name__)
            return ordered

        rerank_scores = {idx: score for idx, score in scored if 0 <= idx < len(ordered)}
        for idx, ranked in enumerate(ordered):
            if idx in rerank_scores:
                ranked.explanation.reranked = True
                ranked.explanation.rerank_score = rerank_scores[idx]

        # Key-type tier stays above generic records whatever the reranker says
        return sorted(
            ordered,
            key=lambda r: (
                r.record.is_key,
                r.explanation.rerank_score if r.explanation.reranked else float("-inf"),
            ),
            reverse=True,
        )

    def record_usage(self, memory_ids: list[str]):
        """Bump usage counts in the background; see flush()."""
        if not memory_ids:
            return
        task = asyncio.create_task(self._increment_usage(memory_ids))
        self._usage_tasks.add(task)
        task.add_done_callback(self._usage_tasks.discard)

    async def _increment_usage(self, memory_ids: list[str]):
        try:
            await self.store.increment_usage(memory_ids)
        except TransportError as e:
            logger.warning("usage_increment_failed", count=len(memory_ids), error=str(e))
