"""Google Gemini LLM provider using google-genai SDK."""

from ..base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError


def _handle_gemini_error(e: Exception):
    err_str = str(e).lower()
    if "api key" in err_str or "authentication" in err_str or "permission" in err_str:
        raise LLMAuthError(f"Gemini auth failed: {e}") from e
    if ("resource" in err_str and "exhausted" in err_str) or "rate" in err_str:
        raise LLMRateLimitError(f"Gemini rate limit: {e}") from e
    raise LLMError(f"Gemini API error: {e}") from e


class GeminiProvider(LLMProvider):
    """Google Gemini provider (google-genai SDK, async surface)."""

    provider_name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client=None,
        embedding_model: str = "text-embedding-004",
    ):
        self.model_name = model or "gemini-2.5-flash"
        self.embedding_model = embedding_model

        if client:
            self.client = client
            return

        try:
            from google import genai
        except ImportError:
            raise LLMError("google-genai package not installed. Run: pip install google-genai")

        self.client = genai.Client(api_key=api_key)

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        json_mode: bool = False,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        system_parts = [system] if system else []
        parts = []
        for msg in messages:
            if msg.get("role") == "system":
                system_parts.append(msg["content"])
            else:
                parts.append(msg["content"])

        try:
            from google.genai import types

            config = types.GenerateContentConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                system_instruction="\n\n".join(system_parts) or None,
                response_mime_type="application/json" if json_mode else None,
            )
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents="\n".join(parts),
                config=config,
            )
            return response.text or ""
        except Exception as e:
            _handle_gemini_error(e)

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self.client.aio.models.embed_content(
                model=self.embedding_model, contents=texts
            )
            return [list(e.values) for e in response.embeddings]
        except Exception as e:
            _handle_gemini_error(e)
