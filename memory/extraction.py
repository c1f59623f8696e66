"""Memorability policy applied once per completed conversation turn."""

from __future__ import annotations

import re

from memory.conversation_log import ConversationLog
from memory.ledger import MemoryLedger
from memory.types.memory import Memory, Sector

SEMANTIC_SIGNALS = re.compile(r"\b(my|i am|i'm|i prefer|remember|always|never)\b", re.IGNORECASE)
MIN_MEMORABLE_LENGTH = 21
COMMAND_PREFIX = "/"


def is_memorable(message: str) -> bool:
    """Short messages and commands are never extracted."""
    return len(message) >= MIN_MEMORABLE_LENGTH and not message.startswith(COMMAND_PREFIX)


def classify_sector(message: str) -> Sector:
    """Self-referential or durable statements are semantic; everything else episodic."""
    return Sector.SEMANTIC if SEMANTIC_SIGNALS.search(message) else Sector.EPISODIC


def save_conversation_turn(
    ledger: MemoryLedger,
    conversation_log: ConversationLog,
    conversation_id: str,
    user_message: str,
    assistant_message: str,
    session_id: str | None = None,
    synthetic: bool = False,
) -> Memory | None:
    """Log both sides of a completed turn and extract a memory when warranted.

    Synthetic turns (context replays, system-injected prompts) are neither logged
    nor extracted so they cannot feed back into later context.
    """
    if synthetic:
        return None

    conversation_log.append(conversation_id, "user", user_message, session_id)
    conversation_log.append(conversation_id, "assistant", assistant_message, session_id)

    if not is_memorable(user_message):
        return None
    return ledger.save(conversation_id, user_message, classify_sector(user_message).value)
