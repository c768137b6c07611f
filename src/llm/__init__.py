"""Multi-provider LLM abstraction layer."""

from .base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError
from .factory import create_embedding_provider, create_llm_provider
from .rerank import EmbeddingReranker

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "create_embedding_provider",
    "EmbeddingReranker",
    "LLMError",
    "LLMRateLimitError",
    "LLMAuthError",
]
