"""Scheduled task models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class TaskStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class ScheduledTask(BaseModel):
    """Autonomous recurring prompt."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    prompt: str
    schedule: str
    next_run: int
    last_run: int | None = None
    last_result: str | None = None
    status: str = TaskStatus.ACTIVE.value
    created_at: int
