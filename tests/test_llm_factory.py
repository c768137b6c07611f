"""Tests for LLM factory and auto-detection."""

from unittest.mock import MagicMock, patch

import pytest

from llm import LLMError, create_embedding_provider, create_llm_provider
from llm.factory import _auto_detect_provider

ALL_KEYS = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GOOGLE_API_KEY", "DEEPSEEK_API_KEY", "OLLAMA_BASE_URL")


@pytest.fixture
def no_keys(monkeypatch):
    for name in ALL_KEYS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAutoDetection:
    def test_detects_anthropic_key(self, no_keys):
        no_keys.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert _auto_detect_provider() == "claude"

    def test_detects_openai_key(self, no_keys):
        no_keys.setenv("OPENAI_API_KEY", "sk-test")
        assert _auto_detect_provider() == "openai"

    def test_detects_google_key(self, no_keys):
        no_keys.setenv("GOOGLE_API_KEY", "AIza-test")
        assert _auto_detect_provider() == "gemini"

    def test_detects_deepseek_key(self, no_keys):
        no_keys.setenv("DEEPSEEK_API_KEY", "ds-test")
        assert _auto_detect_provider() == "deepseek"

    def test_prefers_anthropic_when_multiple(self, no_keys):
        no_keys.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        no_keys.setenv("OPENAI_API_KEY", "sk-test")
        assert _auto_detect_provider() == "claude"

    def test_explicit_key_prefix_wins(self, no_keys):
        no_keys.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert _auto_detect_provider("AIzaSomething") == "gemini"

    def test_falls_back_to_ollama(self, no_keys):
        no_keys.setenv("OLLAMA_BASE_URL", "http://localhost:11434")
        assert _auto_detect_provider() == "ollama"

    def test_no_keys_raises(self, no_keys):
        with pytest.raises(LLMError, match="No LLM API key found"):
            _auto_detect_provider()


class TestCreateProvider:
    @pytest.mark.parametrize("name", ["claude", "openai", "gemini", "deepseek"])
    def test_explicit_with_client(self, name):
        client = MagicMock()
        provider = create_llm_provider(provider=name, client=client)
        assert provider.provider_name == name
        assert provider.client is client

    def test_ollama_base_url(self):
        provider = create_llm_provider(provider="ollama", base_url="http://box:11434/", client=MagicMock())
        assert provider.provider_name == "ollama"
        assert provider.base_url == "http://box:11434"

    def test_unknown_provider_raises(self):
        with pytest.raises(LLMError, match="Unknown provider"):
            create_llm_provider(provider="llama", client=MagicMock())

    def test_auto_with_anthropic_key(self, no_keys):
        no_keys.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        with patch("anthropic.AsyncAnthropic") as sdk:
            provider = create_llm_provider()
        assert provider.provider_name == "claude"
        sdk.assert_called_once_with(api_key="sk-ant-test")

    def test_custom_model(self):
        provider = create_llm_provider(provider="claude", client=MagicMock(), model="claude-opus-4-1")
        assert provider.model == "claude-opus-4-1"


class TestEmbeddingProvider:
    def test_rejects_chat_only_provider(self):
        with pytest.raises(LLMError, match="no embeddings endpoint"):
            create_embedding_provider(provider="claude", client=MagicMock())

    def test_rejects_openai_compatible_without_embedding_model(self):
        with pytest.raises(LLMError, match="no embeddings endpoint"):
            create_embedding_provider(provider="deepseek", client=MagicMock())

    def test_auto_only_considers_embedding_keys(self, no_keys):
        no_keys.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        no_keys.setenv("OPENAI_API_KEY", "sk-test")
        provider = create_embedding_provider(client=MagicMock())
        assert provider.provider_name == "openai"
        assert provider.supports_embeddings
