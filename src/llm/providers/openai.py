"""OpenAI LLM provider (also serves OpenAI-compatible endpoints such as DeepSeek)."""

from ..base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError

# Lazy exception references, set when package available
_openai_exceptions = None


def _get_openai_exceptions():
    global _openai_exceptions
    if _openai_exceptions is None:
        try:
            from openai import APIError, AuthenticationError, RateLimitError

            _openai_exceptions = (AuthenticationError, RateLimitError, APIError)
        except ImportError:
            _openai_exceptions = ()
    return _openai_exceptions


def _handle_openai_error(e: Exception):
    exc = _get_openai_exceptions()
    if exc and len(exc) == 3:
        AuthErr, RateErr, ApiErr = exc
        if isinstance(e, AuthErr):
            raise LLMAuthError(f"OpenAI auth failed: {e}") from e
        if isinstance(e, RateErr):
            raise LLMRateLimitError(f"OpenAI rate limit: {e}") from e
        if isinstance(e, ApiErr):
            raise LLMError(f"OpenAI API error: {e}") from e
    raise LLMError(f"OpenAI error: {e}") from e


class OpenAIProvider(LLMProvider):
    """OpenAI chat + embeddings provider."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client=None,
        base_url: str | None = None,
        embedding_model: str | None = "text-embedding-3-small",
    ):
        self.model = model or "gpt-4o"
        self.embedding_model = embedding_model

        if client:
            self.client = client
            return

        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install openai")

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

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

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": full_messages,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content or ""
        except Exception as e:
            _handle_openai_error(e)

    @property
    def supports_embeddings(self) -> bool:
        return bool(self.embedding_model)

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not self.embedding_model:
            raise LLMError(f"{self.provider_name} has no embedding model configured")
        try:
            response = await self.client.embeddings.create(model=self.embedding_model, input=texts)
            return [item.embedding for item in response.data]
        except Exception as e:
            _handle_openai_error(e)


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek via its OpenAI-compatible API. Chat only."""

    provider_name = "deepseek"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        super().__init__(
            api_key=api_key,
            model=model or "deepseek-chat",
            client=client,
            base_url="https://api.deepseek.com",
            embedding_model=None,
        )
