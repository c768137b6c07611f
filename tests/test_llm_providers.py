"""Tests for LLM provider adapters."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from llm import LLMAuthError, LLMError, LLMRateLimitError
from llm.providers.claude import ClaudeProvider
from llm.providers.gemini import GeminiProvider
from llm.providers.ollama import OllamaProvider
from llm.providers.openai import DeepSeekProvider, OpenAIProvider

USER = [{"role": "user", "content": "hi"}]


def claude_client(text="Hello from Claude"):
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=MagicMock(content=[MagicMock(text=text)]))
    return client


def openai_client(content="Hello from GPT"):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=MagicMock(choices=[MagicMock(message=MagicMock(content=content))])
    )
    return client


class TestClaudeProvider:
    @pytest.mark.asyncio
    async def test_complete(self):
        client = claude_client()
        provider = ClaudeProvider(client=client)
        result = await provider.complete(USER, system="Be helpful", max_tokens=100, temperature=0.2)

        assert result == "Hello from Claude"
        client.messages.create.assert_awaited_once_with(
            model="claude-sonnet-4-6",
            max_tokens=100,
            temperature=0.2,
            messages=USER,
            system="Be helpful",
        )

    @pytest.mark.asyncio
    async def test_no_system(self):
        client = claude_client()
        await ClaudeProvider(client=client).complete(USER)
        assert "system" not in client.messages.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_system_turns_lifted(self):
        client = claude_client()
        messages = [{"role": "system", "content": "ctx"}, *USER]
        await ClaudeProvider(client=client).complete(messages, json_mode=True)
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["messages"] == USER
        assert kwargs["system"].startswith("ctx")
        assert "JSON" in kwargs["system"]

    @pytest.mark.asyncio
    async def test_auth_error(self):
        from anthropic import AuthenticationError

        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=AuthenticationError(
            message="bad key", response=MagicMock(status_code=401), body={}
        ))
        with pytest.raises(LLMAuthError):
            await ClaudeProvider(client=client).complete(USER)

    @pytest.mark.asyncio
    async def test_rate_limit_error(self):
        from anthropic import RateLimitError

        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=RateLimitError(
            message="rate limited", response=MagicMock(status_code=429), body={}
        ))
        with pytest.raises(LLMRateLimitError):
            await ClaudeProvider(client=client).complete(USER)

    @pytest.mark.asyncio
    async def test_api_error(self):
        from anthropic import APIError

        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=APIError(
            message="server error", request=MagicMock(), body=None
        ))
        with pytest.raises(LLMError):
            await ClaudeProvider(client=client).complete(USER)

    def test_no_embeddings(self):
        assert ClaudeProvider(client=MagicMock()).supports_embeddings is False


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_complete(self):
        client = openai_client()
        result = await OpenAIProvider(client=client).complete(USER, system="Be helpful")

        assert result == "Hello from GPT"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Be helpful"}
        assert kwargs["messages"][1] == USER[0]
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_json_mode(self):
        client = openai_client('{"a": 1}')
        await OpenAIProvider(client=client).complete(USER, json_mode=True)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_empty_content(self):
        result = await OpenAIProvider(client=openai_client(None)).complete(USER)
        assert result == ""

    @pytest.mark.asyncio
    async def test_embed_batch(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=MagicMock(
            data=[MagicMock(embedding=[0.1, 0.2]), MagicMock(embedding=[0.3, 0.4])]
        ))
        vectors = await OpenAIProvider(client=client).embed_batch(["a", "b"])
        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        assert client.embeddings.create.call_args.kwargs["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_no_embedding_model(self):
        provider = OpenAIProvider(client=MagicMock(), embedding_model=None)
        assert provider.supports_embeddings is False
        assert OpenAIProvider(client=MagicMock()).supports_embeddings is True
        with pytest.raises(LLMError, match="no embedding model"):
            await provider.embed_batch(["a"])

    @pytest.mark.asyncio
    async def test_rate_limit_error(self):
        from openai import RateLimitError

        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RateLimitError(
            message="slow down", response=MagicMock(status_code=429), body={}
        ))
        with pytest.raises(LLMRateLimitError):
            await OpenAIProvider(client=client).complete(USER)

    @pytest.mark.asyncio
    async def test_unknown_error_wrapped(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(LLMError, match="boom"):
            await OpenAIProvider(client=client).complete(USER)


class TestDeepSeekProvider:
    @pytest.mark.asyncio
    async def test_chat_only(self):
        provider = DeepSeekProvider(client=openai_client())
        assert provider.model == "deepseek-chat"
        assert await provider.complete(USER) == "Hello from GPT"
        with pytest.raises(LLMError):
            await provider.embed("x")
        assert provider.supports_embeddings is False


class TestGeminiProvider:
    @pytest.mark.asyncio
    async def test_complete(self):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text="Hello from Gemini"))

        result = await GeminiProvider(client=client).complete(USER, system="Be helpful", json_mode=True)

        assert result == "Hello from Gemini"
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["contents"] == "hi"
        assert kwargs["config"].system_instruction == "Be helpful"
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_auth_error(self):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(side_effect=Exception("API key not valid"))
        with pytest.raises(LLMAuthError):
            await GeminiProvider(client=client).complete(USER)

    @pytest.mark.asyncio
    async def test_rate_limit_error(self):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(side_effect=Exception("429 RESOURCE_EXHAUSTED"))
        with pytest.raises(LLMRateLimitError):
            await GeminiProvider(client=client).complete(USER)

    @pytest.mark.asyncio
    async def test_embed(self):
        client = MagicMock()
        client.aio.models.embed_content = AsyncMock(
            return_value=MagicMock(embeddings=[MagicMock(values=[1.0, 2.0])])
        )
        assert await GeminiProvider(client=client).embed("x") == [1.0, 2.0]


def ollama(handler) -> OllamaProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://ollama.test")
    return OllamaProvider(client=client, base_url="http://ollama.test")


class TestOllamaProvider:
    @pytest.mark.asyncio
    async def test_complete(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"content": "Hello from Ollama"}})

        provider = ollama(handler)
        result = await provider.complete(USER, system="Be helpful", json_mode=True, max_tokens=50)

        assert result == "Hello from Ollama"
        assert seen["path"] == "/api/chat"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "Be helpful"}
        assert seen["body"]["format"] == "json"
        assert seen["body"]["options"]["num_predict"] == 50
        assert seen["body"]["stream"] is False

    @pytest.mark.asyncio
    async def test_embed(self):
        provider = ollama(lambda r: httpx.Response(200, json={"embedding": [0.5, 0.5]}))
        assert await provider.embed("x") == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_empty_embedding(self):
        provider = ollama(lambda r: httpx.Response(200, json={"embedding": []}))
        with pytest.raises(LLMError):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        provider = ollama(lambda r: httpx.Response(429, json={}))
        with pytest.raises(LLMRateLimitError):
            await provider.complete(USER)

    @pytest.mark.asyncio
    async def test_server_error(self):
        provider = ollama(lambda r: httpx.Response(500, text="oops"))
        with pytest.raises(LLMError):
            await provider.complete(USER)

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMError, match="unreachable"):
            await ollama(handler).complete(USER)
