"""Memory capture pipeline: extract -> embed -> store -> link skills."""

import asyncio
from datetime import date

import structlog

from errors import TransportError
from llm.base import LLMProvider
from shared_types import MemoryType, SystemTag

from .models import MemoryRecord
from .store import MemoryStore

logger = structlog.get_logger()

# Memories the user records directly are fully trusted
CAPTURED_CONFIDENCE = 1.0


class MemoryPipeline:
    """Turns free text into a stored, tagged and (when possible) embedded memory."""

    def __init__(
        self,
        store: MemoryStore,
        engine,
        embedder: LLMProvider | None = None,
        embed_timeout: float = 5.0,
    ):
        self.store = store
        self.engine = engine
        self.embedder = embedder
        self.embed_timeout = embed_timeout

    async def capture(
        self,
        owner_id: str,
        memory_type: MemoryType | str,
        text: str,
        user_tags: list[str] | None = None,
        reminder_date: date | None = None,
        impact_score: float = 0.0,
    ) -> MemoryRecord:
        """Extract structure, embed and persist one memory.

        Extraction and embedding are best-effort; only a store failure
        prevents the capture.
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("memory text must not be empty")
        memory_type = MemoryType(memory_type)

        extraction = await self.engine.extract(text, memory_type.value)
        embedding = await self._embed(text)

        record = MemoryRecord(
            id="",
            owner_id=owner_id,
            type=memory_type,
            text=text,
            structured_extract=None if extraction.is_fallback else extraction.value.entities(),
            system_tags=list(extraction.value.system_tags),
            user_tags=[t.strip() for t in (user_tags or []) if t.strip()],
            embedding=embedding,
            confidence=CAPTURED_CONFIDENCE,
            impact_score=impact_score,
            reminder_date=reminder_date,
        )
        await self.store.insert(record)
        skills = await self.store.record_skills(owner_id, record.id, extraction.value.skills)

        logger.info(
            "memory_captured",
            memory_id=record.id,
            type=memory_type.value,
            extraction=extraction.source.value,
            embedded=embedding is not None,
            skills=len(skills),
        )
        return record

    async def retag(
        self,
        memory_id: str,
        system_tags: list[SystemTag] | None = None,
        user_tags: list[str] | None = None,
    ) -> MemoryRecord:
        return await self.store.update_tags(memory_id, system_tags, user_tags)

    async def _embed(self, text: str) -> list[float] | None:
        if self.embedder is None:
            return None
        try:
            return await asyncio.wait_for(self.embedder.embed(text), self.embed_timeout)
        except (TimeoutError, TransportError) as e:
            logger.warning("memory_embedding_failed", error=str(e) or type(e).__name__)
            return None
