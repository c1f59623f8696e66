"""SQLAlchemy schemas for persistent bridge tables."""

from __future__ import annotations

from sqlalchemy import Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base."""


class MemoryRecord(Base):
    """Extracted fact table, mirrored into the memories_fts index by triggers."""

    __tablename__ = "memories"
    __table_args__ = (
        Index("idx_memories_conversation", "conversation_id", "created_at"),
        Index("idx_memories_sector", "conversation_id", "sector"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(Text)
    topic_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text)
    sector: Mapped[str] = mapped_column(String(16), default="semantic")
    salience: Mapped[float] = mapped_column(Float, default=1.0)
    created_at: Mapped[int] = mapped_column(Integer)
    accessed_at: Mapped[int] = mapped_column(Integer)


class ConversationTurnRecord(Base):
    """Append-only transcript table."""

    __tablename__ = "conversation_log"
    __table_args__ = (Index("idx_conversation_log_conversation", "conversation_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(Text)
    session_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[int] = mapped_column(Integer)


class SessionRecord(Base):
    """Conversation id to resumable agent session handle."""

    __tablename__ = "sessions"

    conversation_id: Mapped[str] = mapped_column(Text, primary_key=True)
    session_id: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[str] = mapped_column(Text)


class ScheduledTaskRecord(Base):
    """Recurring autonomous prompt table."""

    __tablename__ = "scheduled_tasks"
    __table_args__ = (Index("idx_tasks_next_run", "status", "next_run"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    prompt: Mapped[str] = mapped_column(Text)
    schedule: Mapped[str] = mapped_column(String(128))
    next_run: Mapped[int] = mapped_column(Integer)
    last_run: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_result: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active")
    created_at: Mapped[int] = mapped_column(Integer)
