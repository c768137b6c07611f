"""Pydantic configuration models for Wayfinder."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "claude", "openai", "gemini", "deepseek", "ollama", "none"}


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "auto"  # "none" = deterministic fallbacks only
    model: Optional[str] = None  # None = use provider default
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    embedding_provider: str = "auto"

    @field_validator("provider", "embedding_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    db: Path = Path("~/.wayfinder/wayfinder.db")
    chroma_dir: Optional[Path] = Path("~/.wayfinder/chroma")  # null = lexical search only
    log_file: Path = Path("~/.wayfinder/wayfinder.log")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db = self.db.expanduser()
        if self.chroma_dir is not None:
            self.chroma_dir = self.chroma_dir.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


class RetrievalConfig(BaseModel):
    """Hybrid ranker tuning."""

    key_type_boost: float = 10.0
    lexical_weight: float = 0.5
    candidate_multiplier: int = 3
    min_similarity: float = 0.0
    default_results: int = 5
    embed_timeout: float = 5.0
    rerank_timeout: float = 5.0
    rerank_enabled: bool = True

    @field_validator("key_type_boost", "lexical_weight")
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"ranking weights must be >= 0, got {v}")
        return v

    @field_validator("min_similarity")
    @classmethod
    def validate_similarity(cls, v: float) -> float:
        if not -1.0 <= v <= 1.0:
            raise ValueError(f"min_similarity must be within [-1, 1], got {v}")
        return v

    @field_validator("candidate_multiplier", "default_results")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator("embed_timeout", "rerank_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeouts must be > 0, got {v}")
        return v


class DecisionsConfig(BaseModel):
    """Decision engine budgets and sampling."""

    timeout: float = 20.0
    pipeline_deadline: float = 30.0
    temperature: float = 0.7
    max_tokens: int = 2000

    @field_validator("timeout", "pipeline_deadline")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeouts must be > 0, got {v}")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"temperature must be 0-2, got {v}")
        return v


class RetryConfig(BaseModel):
    """Rate-limit retry configuration."""

    max_attempts: int = 2
    min_wait: float = 1.0
    max_wait: float = 10.0


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    file_level: str = "DEBUG"
    json_mode: bool = False

    @field_validator("level", "file_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class WayfinderConfig(BaseModel):
    """Main configuration model."""

    owner_id: str = "default"
    llm: LLMConfig = Field(default_factory=LLMConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    decisions: DecisionsConfig = Field(default_factory=DecisionsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        if self.llm.api_key:
            key = self.llm.api_key
            if key.startswith("${") and key.endswith("}"):
                env_var = key[2:-1]
                self.llm.api_key = os.getenv(env_var, "")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "WayfinderConfig":
        """Create config from a parsed YAML mapping."""
        if "paths" in data:
            for key in ["db", "chroma_dir", "log_file"]:
                if isinstance(data["paths"].get(key), str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
