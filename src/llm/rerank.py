"""Embedding-based reranking."""

import numpy as np

from .base import LLMError, LLMProvider


class EmbeddingReranker:
    """Reranks documents by embedding similarity to the query.

    Uses one batch call for query plus documents. Errors propagate; the
    caller decides whether to fall back.
    """

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]:
        """Return (document index, score) pairs, best first."""
        if not documents:
            return []
        vectors = await self.provider.embed_batch([query, *documents])
        if len(vectors) != len(documents) + 1:
            raise LLMError(f"expected {len(documents) + 1} embeddings, got {len(vectors)}")

        matrix = np.array(vectors, dtype=float)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = 1.0
        unit = matrix / norms[:, None]
        scores = unit[1:] @ unit[0]

        order = np.argsort(-scores, kind="stable")
        return [(int(i), float(scores[i])) for i in order]
