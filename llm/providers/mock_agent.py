"""Deterministic local agent for offline usage and tests."""

from __future__ import annotations

import re
import uuid
from collections import Counter

from llm.base_agent import AgentResult, AgentUsage, BaseAgent, ProgressCallback

_MEMORY_BLOCK = re.compile(r"\[Memory context\].*?\[End memory context\]\s*", re.DOTALL)


class MockAgent(BaseAgent):
    """Rule-based responder that simulates session ids and growing context usage."""

    def __init__(self, tokens_per_char: float = 0.25) -> None:
        self.tokens_per_char = tokens_per_char
        self._context_tokens: dict[str, int] = {}

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        return [token for token in re.split(r"[^a-zA-Z0-9]+", text.lower()) if token]

    @staticmethod
    def _summarize_tokens(tokens: list[str], max_items: int = 8) -> str:
        if not tokens:
            return "no salient terms detected"
        top = Counter(tokens).most_common(max_items)
        return ", ".join(term for term, _ in top)

    async def invoke(
        self,
        prompt: str,
        session_id: str | None,
        on_progress: ProgressCallback | None = None,
    ) -> AgentResult:
        if on_progress is not None:
            on_progress()
        session = session_id or uuid.uuid4().hex
        grown = self._context_tokens.get(session, 0) + int(len(prompt) * self.tokens_per_char)
        self._context_tokens[session] = grown

        message = _MEMORY_BLOCK.sub("", prompt).strip()
        salient = self._summarize_tokens(self._tokenize(message))
        text = f"Local fallback response. Salient terms: {salient}."
        usage = AgentUsage(
            input_tokens=grown,
            output_tokens=int(len(text) * self.tokens_per_char),
            last_call_input_tokens=grown,
        )
        return AgentResult(text=text, new_session_id=session, usage=usage)
