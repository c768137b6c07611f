"""Shared CLI utilities."""

import asyncio
import sys
from dataclasses import dataclass

import structlog
from rich.console import Console

from cli.config import load_config_model
from cli.config_models import WayfinderConfig
from decisions import DecisionEngine
from llm import EmbeddingReranker, LLMError, LLMProvider, create_embedding_provider, create_llm_provider
from memory import HybridRanker, MemoryStore
from memory.pipeline import MemoryPipeline
from memory.recall import MemoryRecall
from planner import PlannerService, PlanStore

console = Console()
logger = structlog.get_logger()


@dataclass
class Components:
    config: WayfinderConfig
    memory_store: MemoryStore
    plan_store: PlanStore
    provider: LLMProvider | None
    embedder: LLMProvider | None
    ranker: HybridRanker
    engine: DecisionEngine
    pipeline: MemoryPipeline
    recall: MemoryRecall
    planner: PlannerService

    @property
    def owner_id(self) -> str:
        return self.config.owner_id


def _build_provider(config: WayfinderConfig) -> LLMProvider | None:
    llm_cfg = config.llm
    if llm_cfg.provider == "none":
        return None
    try:
        return create_llm_provider(
            provider=llm_cfg.provider,
            api_key=llm_cfg.api_key,
            model=llm_cfg.model,
            base_url=llm_cfg.base_url,
        )
    except LLMError as e:
        logger.warning("llm_unavailable", error=str(e))
        console.print(f"[yellow]No LLM configured ({e}); using built-in suggestions.[/]")
        return None


def _build_embedder(config: WayfinderConfig) -> LLMProvider | None:
    llm_cfg = config.llm
    if llm_cfg.embedding_provider == "none":
        return None
    try:
        return create_embedding_provider(
            provider=llm_cfg.embedding_provider,
            base_url=llm_cfg.base_url if llm_cfg.embedding_provider == "ollama" else None,
        )
    except LLMError as e:
        logger.info("embeddings_unavailable", error=str(e))
        return None


def get_components(config: WayfinderConfig | None = None) -> Components:
    """Initialize all components from config."""
    if config is None:
        try:
            config = load_config_model()
        except ValueError as e:
            console.print(f"[red]Config error:[/] {e}")
            sys.exit(1)

    config.paths.db.parent.mkdir(parents=True, exist_ok=True)
    memory_store = MemoryStore(config.paths.db, chroma_dir=config.paths.chroma_dir)
    plan_store = PlanStore(config.paths.db)

    provider = _build_provider(config)
    embedder = _build_embedder(config)
    reranker = EmbeddingReranker(embedder) if embedder and config.retrieval.rerank_enabled else None

    retrieval = config.retrieval
    ranker = HybridRanker(
        memory_store,
        embedder=embedder,
        reranker=reranker,
        key_type_boost=retrieval.key_type_boost,
        lexical_weight=retrieval.lexical_weight,
        candidate_multiplier=retrieval.candidate_multiplier,
        min_similarity=retrieval.min_similarity,
        embed_timeout=retrieval.embed_timeout,
        rerank_timeout=retrieval.rerank_timeout,
    )
    engine = DecisionEngine(
        provider,
        timeout=config.decisions.timeout,
        temperature=config.decisions.temperature,
        max_tokens=config.decisions.max_tokens,
        rate_limit_attempts=config.retry.max_attempts,
        rate_limit_wait=config.retry.min_wait,
        rate_limit_max_wait=config.retry.max_wait,
    )

    return Components(
        config=config,
        memory_store=memory_store,
        plan_store=plan_store,
        provider=provider,
        embedder=embedder,
        ranker=ranker,
        engine=engine,
        pipeline=MemoryPipeline(
            memory_store, engine, embedder=embedder, embed_timeout=retrieval.embed_timeout
        ),
        recall=MemoryRecall(ranker, engine, memory_store),
        planner=PlannerService(
            ranker,
            engine,
            plan_store,
            deadline=config.decisions.pipeline_deadline,
            retrieval_timeout=retrieval.embed_timeout + retrieval.rerank_timeout,
        ),
    )


def run(coro):
    """Run a coroutine from a click command, translating domain errors to exit codes."""
    from errors import InvalidStateError, NotFoundError, TransportError

    try:
        return asyncio.run(coro)
    except NotFoundError as e:
        console.print(f"[red]Not found:[/] {e}")
        sys.exit(1)
    except InvalidStateError as e:
        console.print(f"[red]Not allowed:[/] {e}")
        sys.exit(1)
    except TransportError as e:
        console.print(f"[red]Storage/LLM error:[/] {e}")
        sys.exit(2)
    except ValueError as e:
        console.print(f"[red]Invalid input:[/] {e}")
        sys.exit(1)
