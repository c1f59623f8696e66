"""Memory ledger: CRUD plus salience and decay over extracted facts."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError

from memory.schemas import MemoryRecord
from memory.stores.sql_store import SQLStore
from memory.types.memory import Memory, Sector

logger = logging.getLogger("bridge.ledger")

MAX_SALIENCE = 5.0
TOUCH_BOOST = 0.1
DECAY_FACTOR = 0.98
DECAY_MIN_AGE_SECONDS = 24 * 60 * 60
DELETE_BELOW_SALIENCE = 0.1

_SEARCH_SQL = """
SELECT memories.* FROM memories
JOIN memories_fts ON memories.id = memories_fts.rowid
WHERE memories_fts MATCH :query AND memories.conversation_id = :conversation_id
ORDER BY rank
LIMIT :limit
"""


def sanitize_fts_query(query: str) -> str:
    """Turn free text into an FTS5 AND-of-prefix-terms expression, or ''."""
    cleaned = re.sub(r"[“”]", '"', query or "")
    cleaned = re.sub(r"[^\w\s]", "", cleaned).strip()
    return " ".join(f'"{token}"*' for token in cleaned.split() if token)


class MemoryLedger:
    """Persists memories per conversation and applies reinforcement/decay."""

    def __init__(self, sql_store: SQLStore, clock: Callable[[], float] = time.time) -> None:
        self.sql_store = sql_store
        self.clock = clock

    def _now(self) -> int:
        return int(self.clock())

    def save(
        self,
        conversation_id: str,
        content: str,
        sector: str = Sector.SEMANTIC.value,
        topic_key: str | None = None,
    ) -> Memory:
        """Insert a new memory. Identical content is not deduplicated."""
        now = self._now()
        record = MemoryRecord(
            conversation_id=conversation_id,
            content=content,
            sector=Sector(sector).value,
            topic_key=topic_key,
            salience=1.0,
            created_at=now,
            accessed_at=now,
        )
        with self.sql_store.session() as sess:
            sess.add(record)
            sess.flush()
            saved = Memory.model_validate(record)
        logger.debug("Saved %s memory %d for %s", saved.sector, saved.id, conversation_id)
        return saved

    def get(self, memory_id: int) -> Memory | None:
        with self.sql_store.session() as sess:
            row = sess.get(MemoryRecord, memory_id)
            return Memory.model_validate(row) if row is not None else None

    def search(self, conversation_id: str, query: str, limit: int = 3) -> list[Memory]:
        """Full-text prefix search scoped to one conversation, ordered by rank."""
        fts_query = sanitize_fts_query(query)
        if not fts_query:
            return []
        try:
            rows = self.sql_store.execute(
                _SEARCH_SQL,
                {"query": fts_query, "conversation_id": conversation_id, "limit": limit},
            )
        except OperationalError as exc:
            logger.debug("FTS query %r rejected: %s", fts_query, exc)
            return []
        return [Memory.model_validate(dict(row)) for row in rows]

    def recent(self, conversation_id: str, limit: int = 5) -> list[Memory]:
        """Most recently accessed memories first, regardless of content."""
        with self.sql_store.session() as sess:
            rows = sess.scalars(
                select(MemoryRecord)
                .where(MemoryRecord.conversation_id == conversation_id)
                .order_by(MemoryRecord.accessed_at.desc(), MemoryRecord.id.desc())
                .limit(limit)
            ).all()
            return [Memory.model_validate(row) for row in rows]

    def count(self, conversation_id: str | None = None) -> int:
        with self.sql_store.session() as sess:
            stmt = select(func.count()).select_from(MemoryRecord)
            if conversation_id is not None:
                stmt = stmt.where(MemoryRecord.conversation_id == conversation_id)
            return int(sess.scalar(stmt) or 0)

    def touch(self, memory_id: int) -> None:
        """Boost salience by 0.1 (capped at 5.0) and refresh accessed_at."""
        with self.sql_store.session() as sess:
            sess.execute(
                update(MemoryRecord)
                .where(MemoryRecord.id == memory_id)
                .values(
                    accessed_at=self._now(),
                    salience=func.min(MemoryRecord.salience + TOUCH_BOOST, MAX_SALIENCE),
                )
                .execution_options(synchronize_session=False)
            )

    def decay_sweep(self) -> None:
        """Decay memories older than a day, then delete any below the salience floor."""
        cutoff = self._now() - DECAY_MIN_AGE_SECONDS
        with self.sql_store.session() as sess:
            decayed = sess.execute(
                update(MemoryRecord)
                .where(MemoryRecord.created_at < cutoff)
                .values(salience=MemoryRecord.salience * DECAY_FACTOR)
                .execution_options(synchronize_session=False)
            ).rowcount
            deleted = sess.execute(
                delete(MemoryRecord)
                .where(MemoryRecord.salience < DELETE_BELOW_SALIENCE)
                .execution_options(synchronize_session=False)
            ).rowcount
        logger.info("Decay sweep: decayed=%s deleted=%s", decayed, deleted)
