"""Ollama LLM provider: local models over the Ollama HTTP API."""

import os

import httpx

from ..base import LLMError, LLMProvider, LLMRateLimitError

DEFAULT_BASE_URL = "http://localhost:11434"


def _handle_ollama_error(e: Exception):
    if isinstance(e, httpx.HTTPStatusError):
        if e.response.status_code == 429:
            raise LLMRateLimitError(f"Ollama rate limit: {e}") from e
        raise LLMError(f"Ollama API error: {e.response.status_code} {e}") from e
    if isinstance(e, httpx.RequestError):
        raise LLMError(f"Ollama unreachable: {e}") from e
    raise LLMError(f"Ollama error: {e}") from e


class OllamaProvider(LLMProvider):
    """Chat + embeddings against a local Ollama server."""

    provider_name = "ollama"

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        embedding_model: str = "nomic-embed-text",
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        self.model = model or "qwen2.5:7b"
        self.embedding_model = embedding_model
        self.base_url = (base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            response = await self.client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            _handle_ollama_error(e)

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        json_mode: bool = False,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        payload = {
            "model": self.model,
            "messages": full_messages,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        if json_mode:
            payload["format"] = "json"

        data = await self._post("/api/chat", payload)
        return (data.get("message") or {}).get("content", "")

    async def embed(self, text: str) -> list[float]:
        data = await self._post("/api/embeddings", {"model": self.embedding_model, "prompt": text})
        embedding = data.get("embedding")
        if not embedding:
            raise LLMError("Ollama returned an empty embedding")
        return embedding

    async def aclose(self):
        await self.client.aclose()
