"""Context-window consumption tracking."""

from __future__ import annotations

import logging
from dataclasses import replace

from llm.base_agent import AgentUsage

logger = logging.getLogger("bridge.context_tracker")

DEFAULT_CONTEXT_LIMIT = 1_000_000
DEFAULT_WARN_RATIO = 0.75

COMPACTION_WARNING = (
    "Context window limit reached: the agent auto-summarized earlier parts of this "
    "conversation and may have lost detail. Send /newchat to start a fresh session."
)


class ContextTracker:
    """Warns when conversational growth eats most of the budget left after a session's baseline.

    Best-effort heuristic. State lives only in process memory, so a restart resets
    every baseline.
    """

    def __init__(
        self,
        context_limit: int = DEFAULT_CONTEXT_LIMIT,
        warn_ratio: float = DEFAULT_WARN_RATIO,
    ) -> None:
        self.context_limit = int(context_limit)
        self.warn_ratio = float(warn_ratio)
        self.last_usage: dict[str, AgentUsage] = {}
        self.session_baseline: dict[str, int] = {}

    @staticmethod
    def _baseline_key(conversation_id: str, session_id: str | None) -> str:
        return session_id or f"conversation:{conversation_id}"

    def record_and_warn(
        self,
        conversation_id: str,
        session_id: str | None,
        usage: AgentUsage | None,
    ) -> str | None:
        """Record a usage snapshot and return a warning string when one is due."""
        try:
            return self._evaluate(conversation_id, session_id, usage)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.debug("Ignoring malformed usage for %s: %s", conversation_id, exc)
            return None

    def _evaluate(
        self,
        conversation_id: str,
        session_id: str | None,
        usage: AgentUsage | None,
    ) -> str | None:
        if usage is None:
            return None
        snapshot = replace(
            usage,
            input_tokens=int(usage.input_tokens),
            output_tokens=int(usage.output_tokens),
            last_call_input_tokens=int(usage.last_call_input_tokens),
            last_call_cache_read=int(usage.last_call_cache_read),
            total_cost_usd=float(usage.total_cost_usd),
        )
        self.last_usage[conversation_id] = snapshot

        if snapshot.did_compact:
            return COMPACTION_WARNING

        key = self._baseline_key(conversation_id, session_id)
        if key not in self.session_baseline:
            self.session_baseline[key] = snapshot.input_tokens
            return None

        baseline = self.session_baseline[key]
        available = self.context_limit - baseline
        if available <= 0:
            return None

        current = snapshot.input_tokens
        conversation_tokens = current - baseline
        pct = conversation_tokens / available
        if pct < self.warn_ratio:
            return None
        logger.info("Context usage for %s at %.0f%%", conversation_id, pct * 100)
        return (
            f"Context window {round(pct * 100)}% used "
            f"({conversation_tokens:,} of {available:,} conversation tokens; "
            f"{current:,}/{self.context_limit:,} total). "
            "Consider /newchat soon."
        )

    def last_usage_for(self, conversation_id: str) -> AgentUsage | None:
        return self.last_usage.get(conversation_id)

    def clear(self, conversation_id: str, session_id: str | None = None) -> None:
        """Forget the baseline so a fresh session measures its own overhead."""
        self.last_usage.pop(conversation_id, None)
        self.session_baseline.pop(self._baseline_key(conversation_id, None), None)
        if session_id:
            self.session_baseline.pop(session_id, None)
