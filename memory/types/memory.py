"""Extracted fact models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Sector(str, Enum):
    """Memory sector. Decay and retrieval treat both sectors alike."""

    SEMANTIC = "semantic"
    EPISODIC = "episodic"


class Memory(BaseModel):
    """Durable fact extracted from a conversation turn."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    content: str
    sector: str = Sector.SEMANTIC.value
    topic_key: str | None = None
    salience: float = 1.0
    created_at: int
    accessed_at: int
