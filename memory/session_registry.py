"""Conversation id to agent session handle mapping."""

from __future__ import annotations

from datetime import UTC, datetime

from memory.schemas import SessionRecord
from memory.stores.sql_store import SQLStore


class SessionRegistry:
    """Holds at most one resumable session handle per conversation."""

    def __init__(self, sql_store: SQLStore) -> None:
        self.sql_store = sql_store

    def get(self, conversation_id: str) -> str | None:
        with self.sql_store.session() as sess:
            row = sess.get(SessionRecord, conversation_id)
            return row.session_id if row is not None else None

    def set(self, conversation_id: str, session_id: str) -> None:
        """Upsert the handle, replacing any previous one."""
        with self.sql_store.session() as sess:
            sess.merge(
                SessionRecord(
                    conversation_id=conversation_id,
                    session_id=session_id,
                    updated_at=datetime.now(UTC).isoformat(),
                )
            )

    def clear(self, conversation_id: str) -> None:
        """Drop the mapping. The caller also resets any context baseline for the old session."""
        with self.sql_store.session() as sess:
            row = sess.get(SessionRecord, conversation_id)
            if row is not None:
                sess.delete(row)
