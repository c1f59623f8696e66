"""Typed memory payload models."""

from memory.types.conversation import ConversationTurn
from memory.types.memory import Memory, Sector
from memory.types.task import ScheduledTask, TaskStatus

__all__ = [
    "ConversationTurn",
    "Memory",
    "Sector",
    "ScheduledTask",
    "TaskStatus",
]
