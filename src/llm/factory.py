"""LLM provider factory with auto-detection."""

import os

from .base import LLMError, LLMProvider

_PROVIDER_ENV_KEYS = {
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}

_AUTO_DETECT_ORDER = ["claude", "openai", "gemini", "deepseek"]

# Providers with an embeddings endpoint
EMBEDDING_PROVIDERS = ("openai", "gemini", "ollama")


def create_llm_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    client=None,
    base_url: str | None = None,
) -> LLMProvider:
    """Create an LLM provider instance.

    Args:
        provider: "claude", "openai", "gemini", "deepseek", "ollama", "auto", or None
        api_key: Explicit API key (overrides env var)
        model: Model name (None = provider default)
        client: Pre-built SDK client for testing/DI
        base_url: Endpoint override (ollama / OpenAI-compatible servers)

    Returns:
        LLMProvider instance
    """
    resolved = provider or "auto"

    if resolved == "auto":
        resolved = _auto_detect_provider(api_key)

    if not api_key and not client:
        env_var = _PROVIDER_ENV_KEYS.get(resolved)
        if env_var:
            api_key = os.getenv(env_var)

    if resolved == "claude":
        from .providers.claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key, model=model, client=client)
    elif resolved == "openai":
        from .providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model, client=client, base_url=base_url)
    elif resolved == "gemini":
        from .providers.gemini import GeminiProvider

        return GeminiProvider(api_key=api_key, model=model, client=client)
    elif resolved == "deepseek":
        from .providers.openai import DeepSeekProvider

        return DeepSeekProvider(api_key=api_key, model=model, client=client)
    elif resolved == "ollama":
        from .providers.ollama import OllamaProvider

        return OllamaProvider(model=model, base_url=base_url, client=client)
    else:
        raise LLMError(
            f"Unknown provider: {resolved}. Use: claude, openai, gemini, deepseek, ollama"
        )


def create_embedding_provider(
    provider: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    client=None,
) -> LLMProvider:
    """Create a provider used only for embeddings (and embedding-based rerank)."""
    resolved = provider or "auto"
    if resolved == "auto":
        resolved = _auto_detect_provider(api_key, candidates=["openai", "gemini"])
    created = create_llm_provider(provider=resolved, api_key=api_key, client=client, base_url=base_url)
    if not created.supports_embeddings:
        raise LLMError(
            f"{resolved} has no embeddings endpoint. Use: {', '.join(EMBEDDING_PROVIDERS)}"
        )
    return created


def _detect_provider_from_key(api_key: str) -> str | None:
    """Infer provider from API key prefix."""
    if api_key.startswith("sk-ant-"):
        return "claude"
    if api_key.startswith("sk-"):
        return "openai"
    if api_key.startswith("AI"):
        return "gemini"
    return None


def _auto_detect_provider(api_key: str | None = None, candidates: list[str] | None = None) -> str:
    """Detect provider from explicit key prefix, then env vars, then a local Ollama."""
    order = candidates or _AUTO_DETECT_ORDER
    if api_key:
        inferred = _detect_provider_from_key(api_key)
        if inferred and inferred in order:
            return inferred

    for name in order:
        env_var = _PROVIDER_ENV_KEYS[name]
        if os.getenv(env_var):
            return name
    if os.getenv("OLLAMA_BASE_URL"):
        return "ollama"
    env_names = ", ".join(_PROVIDER_ENV_KEYS[n] for n in order)
    raise LLMError(f"No LLM API key found. Set one of: {env_names} (or OLLAMA_BASE_URL)")
