"""Memory injection helper for prompt augmentation."""

from __future__ import annotations

from memory.ledger import MemoryLedger
from memory.types.memory import Memory

OPEN_MARKER = "[Memory context]"
CLOSE_MARKER = "[End memory context]"


class MemoryContextBuilder:
    """Composes keyword and recency layers into the block sent ahead of a message."""

    def __init__(self, ledger: MemoryLedger, search_limit: int = 3, recent_limit: int = 5) -> None:
        self.ledger = ledger
        self.search_limit = search_limit
        self.recent_limit = recent_limit

    def collect(self, conversation_id: str, user_message: str) -> list[Memory]:
        """Search hits first, then recent memories, deduplicated by id. Touches each one."""
        seen: set[int] = set()
        merged: list[Memory] = []
        layers = (
            self.ledger.search(conversation_id, user_message, self.search_limit),
            self.ledger.recent(conversation_id, self.recent_limit),
        )
        for layer in layers:
            for mem in layer:
                if mem.id in seen:
                    continue
                seen.add(mem.id)
                merged.append(mem)
        for mem in merged:
            self.ledger.touch(mem.id)
        return merged

    def build(self, conversation_id: str, user_message: str) -> str:
        """Return the delimited memory block, or '' when nothing is stored."""
        memories = self.collect(conversation_id, user_message)
        if not memories:
            return ""
        lines = [f"- {mem.content} ({mem.sector})" for mem in memories]
        return "\n".join([OPEN_MARKER, *lines, CLOSE_MARKER])


def inject_memory(context_block: str, message: str) -> str:
    """Prepend a memory block to the outgoing message, separated by a blank line."""
    if not context_block:
        return message
    return f"{context_block}\n\n{message}"
