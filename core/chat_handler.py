"""Per-message control flow: memory context, agent turn, persistence, usage warnings."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from governance.context_tracker import ContextTracker
from llm.base_agent import AgentResult, BaseAgent, ProgressCallback
from llm.prompt_engine.memory_injection import MemoryContextBuilder, inject_memory
from memory.conversation_log import ConversationLog
from memory.extraction import save_conversation_turn
from memory.ledger import MemoryLedger
from memory.session_registry import SessionRegistry

logger = logging.getLogger("bridge.chat_handler")

GENERIC_FAILURE = "Something went wrong. Check the logs and try again."
CONTEXT_EXHAUSTED_HINT = (
    "The agent ran out of context for this session. "
    "Send /newchat to start fresh (your memories are kept)."
)
EMPTY_RESPONSE_TEXT = "Done."
RESPIN_TURNS = 20
MEMORY_LIST_LIMIT = 10

_CONTEXT_EXHAUSTED = re.compile(
    r"prompt is too long|context (length|window)|too many tokens|exceed\w*[^.]*context",
    re.IGNORECASE,
)


def looks_like_context_exhaustion(error: BaseException) -> bool:
    return bool(_CONTEXT_EXHAUSTED.search(str(error)))


@dataclass
class ChatReply:
    """Reply text plus an optional context-usage warning to send after it."""

    text: str
    warning: str | None = None
    failed: bool = False


class ChatHandler:
    """Handles one inbound message at a time for any conversation."""

    def __init__(
        self,
        agent: BaseAgent,
        ledger: MemoryLedger,
        conversation_log: ConversationLog,
        sessions: SessionRegistry,
        context_builder: MemoryContextBuilder,
        context_tracker: ContextTracker,
    ) -> None:
        self.agent = agent
        self.ledger = ledger
        self.conversation_log = conversation_log
        self.sessions = sessions
        self.context_builder = context_builder
        self.context_tracker = context_tracker

    # ── Entry point ──────────────────────────────────────────────────

    async def handle_message(
        self,
        conversation_id: str,
        text: str,
        on_progress: ProgressCallback | None = None,
    ) -> ChatReply:
        command = text.strip().split(maxsplit=1)[0].lower() if text.strip() else ""
        if command in ("/newchat", "/forget"):
            return self.new_chat(conversation_id, forget=command == "/forget")
        if command == "/memory":
            return ChatReply(self.describe_memories(conversation_id))
        if command == "/context":
            return ChatReply(self.describe_context(conversation_id))
        if command == "/respin":
            return await self.respin(conversation_id, on_progress)
        return await self._agent_turn(conversation_id, text, on_progress)

    # ── Agent turn ───────────────────────────────────────────────────

    async def _agent_turn(
        self,
        conversation_id: str,
        text: str,
        on_progress: ProgressCallback | None,
        synthetic: bool = False,
    ) -> ChatReply:
        logger.info("Processing message for %s (len=%d)", conversation_id, len(text))
        memory_block = "" if synthetic else self.context_builder.build(conversation_id, text)
        prompt = inject_memory(memory_block, text)
        session_id = self.sessions.get(conversation_id)

        try:
            result = await self.agent.invoke(prompt, session_id, on_progress)
        except Exception as exc:
            logger.exception("Agent error for %s", conversation_id)
            if looks_like_context_exhaustion(exc):
                return ChatReply(CONTEXT_EXHAUSTED_HINT, failed=True)
            return ChatReply(GENERIC_FAILURE, failed=True)

        active_session = self._remember_session(conversation_id, session_id, result)
        response_text = (result.text or "").strip() or EMPTY_RESPONSE_TEXT
        save_conversation_turn(
            self.ledger,
            self.conversation_log,
            conversation_id,
            text,
            response_text,
            session_id=active_session,
            synthetic=synthetic,
        )
        warning = self.context_tracker.record_and_warn(conversation_id, active_session, result.usage)
        return ChatReply(response_text, warning=warning)

    def _remember_session(
        self, conversation_id: str, previous: str | None, result: AgentResult
    ) -> str | None:
        if result.new_session_id and result.new_session_id != previous:
            self.sessions.set(conversation_id, result.new_session_id)
            logger.info("Session saved for %s: %s", conversation_id, result.new_session_id)
        return result.new_session_id or previous

    # ── Commands ─────────────────────────────────────────────────────

    def new_chat(self, conversation_id: str, forget: bool = False) -> ChatReply:
        """Drop the agent session and its context baseline; memories stay."""
        old_session = self.sessions.get(conversation_id)
        self.sessions.clear(conversation_id)
        self.context_tracker.clear(conversation_id, old_session)
        logger.info("Session cleared for %s", conversation_id)
        if forget:
            return ChatReply("Session cleared. Memories will fade naturally over time.")
        return ChatReply("Session cleared. Starting fresh.")

    def describe_memories(self, conversation_id: str) -> str:
        recent = self.ledger.recent(conversation_id, MEMORY_LIST_LIMIT)
        if not recent:
            return "No memories yet."
        lines = [f"[{mem.sector}] {mem.content}" for mem in recent]
        return "Recent memories\n\n" + "\n".join(lines)

    def describe_context(self, conversation_id: str) -> str:
        usage = self.context_tracker.last_usage_for(conversation_id)
        if usage is None:
            return "No usage recorded for this session yet."
        return (
            f"Last turn: {usage.input_tokens:,} input tokens "
            f"({usage.last_call_cache_read:,} from cache), {usage.output_tokens:,} output tokens, "
            f"limit {self.context_tracker.context_limit:,}. "
            f"Cost so far: ${usage.total_cost_usd:.4f}."
        )

    async def respin(
        self, conversation_id: str, on_progress: ProgressCallback | None = None
    ) -> ChatReply:
        """Start a fresh session seeded with the recent transcript."""
        transcript = self.conversation_log.render_transcript(conversation_id, RESPIN_TURNS)
        self.new_chat(conversation_id)
        if not transcript:
            return ChatReply("Session cleared. Nothing to replay.")
        prompt = (
            "[Replaying recent conversation for context]\n\n"
            f"{transcript}\n\n"
            "[End replay] Acknowledge briefly and continue from here."
        )
        return await self._agent_turn(conversation_id, prompt, on_progress, synthetic=True)
