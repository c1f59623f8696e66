"""Retention and forgetting policies."""

from __future__ import annotations

import logging

from memory.conversation_log import DEFAULT_RETENTION, ConversationLog
from memory.ledger import MemoryLedger

logger = logging.getLogger("bridge.forgetting")


class ForgettingPolicy:
    """Applies salience decay to memories and bounds the conversation log."""

    def __init__(
        self,
        ledger: MemoryLedger,
        conversation_log: ConversationLog,
        log_retention: int = DEFAULT_RETENTION,
    ) -> None:
        self.ledger = ledger
        self.conversation_log = conversation_log
        self.log_retention = log_retention

    def run(self) -> dict[str, int]:
        """Decay and evict memories, then prune old transcript rows."""
        before = self.ledger.count()
        self.ledger.decay_sweep()
        evicted = max(0, before - self.ledger.count())
        pruned = self.conversation_log.prune(self.log_retention)
        logger.info("Forgetting sweep done: evicted=%d pruned_turns=%d", evicted, pruned)
        return {"evicted_memories": evicted, "pruned_turns": pruned}
