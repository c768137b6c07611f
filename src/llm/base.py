"""Base LLM provider abstraction."""

import asyncio
from abc import ABC, abstractmethod

from errors import TransportError


class LLMError(TransportError):
    """Base LLM error. Any provider failure surfaces as this (or a subclass)."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure."""


class LLMProvider(ABC):
    """Abstract async LLM provider interface.

    Chat completion is required; embeddings are optional and raise
    LLMError on providers that have none.
    """

    provider_name: str = "base"

    @abstractmethod
    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        json_mode: bool = False,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        """Generate a completion from messages.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            system: Optional system prompt
            json_mode: Ask the model for a single JSON object
            temperature: Sampling temperature
            max_tokens: Max response tokens

        Returns:
            Generated text (not yet parsed)
        """
        ...

    async def embed(self, text: str) -> list[float]:
        raise LLMError(f"{self.provider_name} does not support embeddings")

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return list(await asyncio.gather(*(self.embed(t) for t in texts)))

    @property
    def supports_embeddings(self) -> bool:
        """True when embed() can succeed on this instance."""
        return type(self).embed is not LLMProvider.embed
