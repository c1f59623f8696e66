"""Conversation transcript models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ConversationTurn(BaseModel):
    """Single role-tagged message in the durable transcript."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    role: str
    content: str
    session_id: str | None = None
    created_at: int
