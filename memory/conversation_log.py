"""Append-only conversation transcript with bounded global retention."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy import delete, select

from memory.schemas import ConversationTurnRecord
from memory.stores.sql_store import SQLStore
from memory.types.conversation import ConversationTurn

logger = logging.getLogger("bridge.conversation_log")

DEFAULT_RETENTION = 500


class ConversationLog:
    """Stores every completed turn; pruned globally, never edited."""

    def __init__(self, sql_store: SQLStore, clock: Callable[[], float] = time.time) -> None:
        self.sql_store = sql_store
        self.clock = clock

    def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        session_id: str | None = None,
    ) -> None:
        with self.sql_store.session() as sess:
            sess.add(
                ConversationTurnRecord(
                    conversation_id=conversation_id,
                    role=role,
                    content=content if content is not None else "",
                    session_id=session_id,
                    created_at=int(self.clock()),
                )
            )

    def recent(self, conversation_id: str, n: int = 20) -> list[ConversationTurn]:
        """Last n turns across both roles, most recent first."""
        with self.sql_store.session() as sess:
            rows = sess.scalars(
                select(ConversationTurnRecord)
                .where(ConversationTurnRecord.conversation_id == conversation_id)
                .order_by(ConversationTurnRecord.id.desc())
                .limit(n)
            ).all()
            return [ConversationTurn.model_validate(row) for row in rows]

    def render_transcript(self, conversation_id: str, n: int = 20) -> str:
        """Render the last n turns oldest-first for replay into a fresh session."""
        turns = list(reversed(self.recent(conversation_id, n)))
        return "\n\n".join(f"[{turn.role}]: {turn.content}" for turn in turns)

    def prune(self, keep_global_count: int = DEFAULT_RETENTION) -> int:
        """Delete all but the newest keep_global_count rows across every conversation."""
        keep = max(0, int(keep_global_count))
        with self.sql_store.session() as sess:
            newest = (
                select(ConversationTurnRecord.id)
                .order_by(ConversationTurnRecord.id.desc())
                .limit(keep)
            )
            deleted = sess.execute(
                delete(ConversationTurnRecord)
                .where(ConversationTurnRecord.id.not_in(newest))
                .execution_options(synchronize_session=False)
            ).rowcount
        if deleted:
            logger.info("Pruned %d conversation log rows (keeping %d)", deleted, keep)
        return int(deleted or 0)
