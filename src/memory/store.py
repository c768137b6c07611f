"""Persistent storage for memories: SQLite rows + optional ChromaDB vector index."""

import asyncio
import json
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path

import structlog

from db import store_errors, wal_connect
from errors import NotFoundError, StoreError
from shared_types import MemoryType, SystemTag

from .models import MemoryRecord, SearchFilters, Skill

logger = structlog.get_logger()


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MemoryStore:
    """Owner-scoped memory persistence.

    SQLite is the source of truth. When ``chroma_dir`` is given, embeddings
    are mirrored into a ChromaDB collection and vector queries go there;
    without it, vector queries return nothing and retrieval is lexical only.
    All public methods are coroutines; SQLite work runs in a worker thread.
    """

    def __init__(self, db_path: str | Path, chroma_dir: str | Path | None = None):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._chroma_dir = Path(chroma_dir).expanduser() if chroma_dir else None
        self._collection = None
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS memories (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    text TEXT NOT NULL,
                    structured_extract TEXT,
                    system_tags TEXT NOT NULL DEFAULT '[]',
                    user_tags TEXT NOT NULL DEFAULT '[]',
                    embedding TEXT,
                    confidence REAL NOT NULL DEFAULT 0.8,
                    impact_score REAL NOT NULL DEFAULT 0,
                    usage_count INTEGER NOT NULL DEFAULT 0,
                    reminder_date TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_memories_owner_type
                ON memories(owner_id, type)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_memories_reminder
                ON memories(owner_id, reminder_date)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS skills (
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL COLLATE NOCASE,
                    evidence_count INTEGER NOT NULL DEFAULT 0,
                    updated_at TIMESTAMP,
                    PRIMARY KEY (owner_id, name)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS skill_memories (
                    owner_id TEXT NOT NULL,
                    skill TEXT NOT NULL COLLATE NOCASE,
                    memory_id TEXT NOT NULL REFERENCES memories(id),
                    PRIMARY KEY (owner_id, skill, memory_id)
                )
            """)

    @property
    def _chroma(self):
        """Lazy-init ChromaDB collection."""
        if self._collection is None and self._chroma_dir:
            try:
                import chromadb
                from chromadb.config import Settings

                self._chroma_dir.mkdir(parents=True, exist_ok=True)
                client = chromadb.PersistentClient(
                    path=str(self._chroma_dir),
                    settings=Settings(anonymized_telemetry=False),
                )
                self._collection = client.get_or_create_collection(
                    name="memories",
                    metadata={"hnsw:space": "cosine"},
                )
            except Exception as e:
                logger.warning("chroma_init_failed", error=str(e))
        return self._collection

    # --- public async API ---

    async def insert(self, record: MemoryRecord) -> MemoryRecord:
        """Persist a new record, assigning an id if missing."""
        if not record.id:
            record.id = uuid.uuid4().hex[:16]
        with store_errors("memory insert"):
            await asyncio.to_thread(self._insert, record)
        return record

    async def get(self, memory_id: str) -> MemoryRecord | None:
        with store_errors("memory get"):
            return await asyncio.to_thread(self._get, memory_id)

    async def query(
        self,
        owner_id: str,
        filters: SearchFilters | None = None,
        text: str | None = None,
        limit: int = 30,
    ) -> list[MemoryRecord]:
        """Lexical candidate fetch.

        With ``text``, matches records containing the whole query or any of
        its terms (case-insensitive). Without it, browses by filters.
        Newest first.
        """
        with store_errors("memory query"):
            return await asyncio.to_thread(self._query, owner_id, filters, text, limit)

    async def query_by_vector(
        self,
        owner_id: str,
        vector: list[float],
        filters: SearchFilters | None = None,
        limit: int = 30,
        min_similarity: float = 0.0,
    ) -> list[tuple[MemoryRecord, float]]:
        """Records with embeddings ordered by cosine similarity to ``vector``.

        Empty when ChromaDB is not configured or the query fails.
        """
        coll = self._chroma
        if not coll:
            return []
        try:
            with store_errors("memory vector query"):
                return await asyncio.to_thread(
                    self._chroma_query, coll, owner_id, vector, filters, limit, min_similarity
                )
        except StoreError:
            raise
        except Exception as e:
            logger.warning("chroma_search_failed", error=str(e))
            return []

    async def update_tags(
        self,
        memory_id: str,
        system_tags: list[SystemTag] | None = None,
        user_tags: list[str] | None = None,
    ) -> MemoryRecord:
        """Replace tags; the only mutation allowed besides usage counting."""
        with store_errors("memory update_tags"):
            record = await asyncio.to_thread(self._update_tags, memory_id, system_tags, user_tags)
        if record is None:
            raise NotFoundError(f"Memory not found: {memory_id}")
        return record

    async def increment_usage(self, memory_ids: list[str]) -> None:
        if not memory_ids:
            return
        with store_errors("memory increment_usage"):
            await asyncio.to_thread(self._increment_usage, memory_ids)

    async def upcoming_reminders(self, owner_id: str, start: date, end: date) -> list[MemoryRecord]:
        """Date reminders whose reminder_date falls within [start, end], soonest first."""
        with store_errors("memory upcoming_reminders"):
            return await asyncio.to_thread(self._upcoming, owner_id, start, end)

    async def count_by_type(self, owner_id: str, since: datetime | None = None) -> dict[str, int]:
        """Record counts per memory type, optionally only those created from ``since``."""
        with store_errors("memory count_by_type"):
            return await asyncio.to_thread(self._count_by_type, owner_id, since)

    async def record_skills(self, owner_id: str, memory_id: str, skills: list[str]) -> list[str]:
        """Link a memory as evidence for each named skill, creating skills as needed.

        Names are matched case-insensitively; linking the same memory twice
        does not add evidence. Returns the names that gained evidence.
        """
        names = list(dict.fromkeys(s.strip() for s in skills if s and s.strip()))
        if not names:
            return []
        with store_errors("memory record_skills"):
            return await asyncio.to_thread(self._record_skills, owner_id, memory_id, names)

    async def list_skills(self, owner_id: str) -> list[Skill]:
        """Skills with the most evidence first."""
        with store_errors("memory list_skills"):
            return await asyncio.to_thread(self._list_skills, owner_id)

    async def skill_evidence(self, owner_id: str, skill: str, limit: int = 10) -> list[MemoryRecord]:
        """Memories linked to skills whose name contains ``skill``, highest impact first."""
        skill = (skill or "").strip()
        if not skill:
            return []
        with store_errors("memory skill_evidence"):
            return await asyncio.to_thread(self._skill_evidence, owner_id, skill, limit)

    # --- sync internals ---

    def _insert(self, record: MemoryRecord):
        with wal_connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO memories
                   (id, owner_id, type, text, structured_extract, system_tags, user_tags,
                    embedding, confidence, impact_score, usage_count, reminder_date, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.owner_id,
                    record.type.value,
                    record.text,
                    json.dumps(record.structured_extract) if record.structured_extract else None,
                    json.dumps([t.value for t in record.system_tags]),
                    json.dumps(record.user_tags),
                    json.dumps(record.embedding) if record.embedding else None,
                    record.confidence,
                    record.impact_score,
                    record.usage_count,
                    record.reminder_date.isoformat() if record.reminder_date else None,
                    record.created_at.isoformat(),
                ),
            )

        if not record.embedding:
            return
        coll = self._chroma
        if coll:
            try:
                coll.upsert(
                    ids=[record.id],
                    embeddings=[record.embedding],
                    documents=[record.text],
                    metadatas=[{"owner_id": record.owner_id, "type": record.type.value}],
                )
            except Exception as e:
                logger.warning("chroma_upsert_failed", memory_id=record.id, error=str(e))

    def _get(self, memory_id: str) -> MemoryRecord | None:
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()
            return self._row_to_record(row) if row else None

    def _get_many(self, memory_ids: list[str]) -> dict[str, MemoryRecord]:
        if not memory_ids:
            return {}
        placeholders = ",".join("?" for _ in memory_ids)
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                f"SELECT * FROM memories WHERE id IN ({placeholders})", memory_ids
            ).fetchall()
            return {r["id"]: self._row_to_record(r) for r in rows}

    @staticmethod
    def _filter_clause(owner_id: str, filters: SearchFilters | None) -> tuple[str, list]:
        sql = "owner_id = ?"
        params: list = [owner_id]
        if filters and filters.type:
            sql += " AND type = ?"
            params.append(MemoryType(filters.type).value)
        if filters and filters.tags:
            placeholders = ",".join("?" for _ in filters.tags)
            sql += (
                f" AND (EXISTS (SELECT 1 FROM json_each(memories.system_tags)"
                f" WHERE value IN ({placeholders}))"
                f" OR EXISTS (SELECT 1 FROM json_each(memories.user_tags)"
                f" WHERE value IN ({placeholders})))"
            )
            params.extend(filters.tags)
            params.extend(filters.tags)
        return sql, params

    def _query(
        self, owner_id: str, filters: SearchFilters | None, text: str | None, limit: int
    ) -> list[MemoryRecord]:
        where, params = self._filter_clause(owner_id, filters)
        text = (text or "").strip()
        if text:
            patterns = [text] + [t for t in text.split() if len(t) >= 2 and t != text]
            where += " AND (" + " OR ".join("text LIKE ? ESCAPE '\\'" for _ in patterns) + ")"
            params.extend(f"%{_escape_like(p)}%" for p in patterns)

        sql = f"SELECT * FROM memories WHERE {where} ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_record(r) for r in rows]

    def _chroma_query(
        self,
        coll,
        owner_id: str,
        vector: list[float],
        filters: SearchFilters | None,
        limit: int,
        min_similarity: float,
    ) -> list[tuple[MemoryRecord, float]]:
        where: dict = {"owner_id": owner_id}
        if filters and filters.type:
            where = {"$and": [where, {"type": MemoryType(filters.type).value}]}

        results = coll.query(
            query_embeddings=[vector],
            n_results=limit * 2,
            where=where,
            include=["distances"],
        )
        ids = results["ids"][0] if results["ids"] else []
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)
        records = self._get_many(ids)

        wanted_tags = set(filters.tags) if filters and filters.tags else None
        scored = []
        for mid, distance in zip(ids, distances):
            record = records.get(mid)
            if record is None:
                continue
            if wanted_tags and not wanted_tags & set(record.tags):
                continue
            similarity = 1.0 - distance
            if similarity >= min_similarity:
                scored.append((record, similarity))
        return scored[:limit]

    def _update_tags(
        self, memory_id: str, system_tags: list[SystemTag] | None, user_tags: list[str] | None
    ) -> MemoryRecord | None:
        record = self._get(memory_id)
        if record is None:
            return None
        if system_tags is not None:
            record.system_tags = [SystemTag(t) for t in system_tags]
        if user_tags is not None:
            record.user_tags = list(user_tags)
        with wal_connect(self.db_path) as conn:
            conn.execute(
                "UPDATE memories SET system_tags = ?, user_tags = ? WHERE id = ?",
                (
                    json.dumps([t.value for t in record.system_tags]),
                    json.dumps(record.user_tags),
                    memory_id,
                ),
            )
        return record

    def _increment_usage(self, memory_ids: list[str]):
        with wal_connect(self.db_path) as conn:
            conn.executemany(
                "UPDATE memories SET usage_count = usage_count + 1 WHERE id = ?",
                [(mid,) for mid in memory_ids],
            )

    def _upcoming(self, owner_id: str, start: date, end: date) -> list[MemoryRecord]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT * FROM memories
                   WHERE owner_id = ? AND type = ? AND reminder_date BETWEEN ? AND ?
                   ORDER BY reminder_date ASC""",
                (owner_id, MemoryType.DATE_REMINDER.value, start.isoformat(), end.isoformat()),
            ).fetchall()
            return [self._row_to_record(r) for r in rows]

    def _count_by_type(self, owner_id: str, since: datetime | None) -> dict[str, int]:
        sql = "SELECT type, COUNT(*) AS cnt FROM memories WHERE owner_id = ?"
        params: list = [owner_id]
        if since:
            sql += " AND created_at >= ?"
            params.append(since.isoformat())
        sql += " GROUP BY type"
        with wal_connect(self.db_path, row_factory=True) as conn:
            return {r["type"]: r["cnt"] for r in conn.execute(sql, params).fetchall()}

    def _record_skills(self, owner_id: str, memory_id: str, names: list[str]) -> list[str]:
        now = datetime.now().isoformat()
        linked = []
        with wal_connect(self.db_path) as conn:
            for name in names:
                cur = conn.execute(
                    "INSERT OR IGNORE INTO skill_memories (owner_id, skill, memory_id) VALUES (?, ?, ?)",
                    (owner_id, name, memory_id),
                )
                if cur.rowcount == 0:
                    continue
                conn.execute(
                    """INSERT INTO skills (owner_id, name, evidence_count, updated_at)
                       VALUES (?, ?, 1, ?)
                       ON CONFLICT(owner_id, name) DO UPDATE SET
                         evidence_count = evidence_count + 1,
                         updated_at = excluded.updated_at""",
                    (owner_id, name, now),
                )
                linked.append(name)
        return linked

    def _list_skills(self, owner_id: str) -> list[Skill]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT name, evidence_count, updated_at FROM skills
                   WHERE owner_id = ? ORDER BY evidence_count DESC, updated_at DESC""",
                (owner_id,),
            ).fetchall()
            return [
                Skill(
                    name=r["name"],
                    evidence_count=r["evidence_count"],
                    updated_at=datetime.fromisoformat(r["updated_at"]) if r["updated_at"] else None,
                )
                for r in rows
            ]

    def _skill_evidence(self, owner_id: str, skill: str, limit: int) -> list[MemoryRecord]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT DISTINCT m.* FROM memories m
                   JOIN skill_memories sm ON sm.memory_id = m.id
                   WHERE sm.owner_id = ? AND m.owner_id = ? AND sm.skill LIKE ? ESCAPE '\\'
                   ORDER BY m.impact_score DESC, m.created_at DESC
                   LIMIT ?""",
                (owner_id, owner_id, f"%{_escape_like(skill)}%", limit),
            ).fetchall()
            return [self._row_to_record(r) for r in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> MemoryRecord:
        d = dict(row)
        created = d.get("created_at")
        reminder = d.get("reminder_date")
        return MemoryRecord(
            id=d["id"],
            owner_id=d["owner_id"],
            type=MemoryType(d["type"]),
            text=d["text"],
            structured_extract=json.loads(d["structured_extract"]) if d["structured_extract"] else None,
            system_tags=[SystemTag(t) for t in json.loads(d["system_tags"] or "[]")],
            user_tags=json.loads(d["user_tags"] or "[]"),
            embedding=json.loads(d["embedding"]) if d["embedding"] else None,
            confidence=d["confidence"],
            impact_score=d["impact_score"],
            usage_count=d["usage_count"],
            reminder_date=date.fromisoformat(reminder) if reminder else None,
            created_at=datetime.fromisoformat(created) if created else datetime.now(),
        )
