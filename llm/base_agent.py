"""Agent invocation interface and the closed set of agent stream events."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from core.errors import AgentInvocationError

logger = logging.getLogger("bridge.agent")

ProgressCallback = Callable[[], None]


def no_progress() -> None:
    """Progress callback that does nothing."""


@dataclass(frozen=True)
class AgentUsage:
    """Token and cost accounting for one agent turn.

    input_tokens is the full prompt size (fresh + cache read + cache write);
    the last_call_* fields keep the uncached and cache-read parts separately.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    last_call_input_tokens: int = 0
    last_call_cache_read: int = 0
    total_cost_usd: float = 0.0
    did_compact: bool = False


@dataclass(frozen=True)
class AgentResult:
    text: str | None
    new_session_id: str | None = None
    usage: AgentUsage | None = None


class AgentEventKind(str, Enum):
    INIT = "init"
    COMPACT_BOUNDARY = "compact_boundary"
    RESULT = "result"


@dataclass(frozen=True)
class AgentEvent:
    kind: AgentEventKind
    session_id: str | None = None
    text: str | None = None
    usage: AgentUsage | None = None
    is_error: bool = False


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _usage_from_payload(payload: dict[str, Any]) -> AgentUsage:
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    fresh = _int(usage.get("input_tokens"))
    cache_read = _int(usage.get("cache_read_input_tokens"))
    cache_write = _int(usage.get("cache_creation_input_tokens"))
    try:
        cost = float(payload.get("total_cost_usd") or 0.0)
    except (TypeError, ValueError):
        cost = 0.0
    return AgentUsage(
        input_tokens=fresh + cache_read + cache_write,
        output_tokens=_int(usage.get("output_tokens")),
        last_call_input_tokens=fresh,
        last_call_cache_read=cache_read,
        total_cost_usd=cost,
    )


def parse_agent_event(raw: dict[str, Any]) -> AgentEvent | None:
    """Map a raw type/subtype payload onto a known event, or None when irrelevant."""
    kind = raw.get("type")
    subtype = raw.get("subtype")
    if kind == "system" and subtype == "init":
        return AgentEvent(AgentEventKind.INIT, session_id=raw.get("session_id"))
    if kind == "system" and subtype == "compact_boundary":
        return AgentEvent(AgentEventKind.COMPACT_BOUNDARY, session_id=raw.get("session_id"))
    if kind == "result":
        text = raw.get("result")
        return AgentEvent(
            AgentEventKind.RESULT,
            session_id=raw.get("session_id"),
            text=text if isinstance(text, str) else None,
            usage=_usage_from_payload(raw),
            is_error=bool(raw.get("is_error")) or str(subtype or "").startswith("error"),
        )
    return None


def collect_result(events: Iterable[AgentEvent]) -> AgentResult:
    """Fold a turn's events into a single result."""
    session_id: str | None = None
    text: str | None = None
    usage: AgentUsage | None = None
    compacted = False
    finished = False
    for event in events:
        if event.kind is AgentEventKind.INIT:
            session_id = event.session_id or session_id
            logger.info("Session initialized: %s", session_id)
        elif event.kind is AgentEventKind.COMPACT_BOUNDARY:
            compacted = True
            logger.warning("Agent compacted its context")
        elif event.kind is AgentEventKind.RESULT:
            if event.is_error:
                raise AgentInvocationError(event.text or "Agent reported an error result")
            finished = True
            text = event.text
            usage = event.usage
            session_id = session_id or event.session_id
        else:
            raise AssertionError(f"Unhandled agent event kind: {event.kind}")
    if not finished:
        raise AgentInvocationError("Agent stream ended without a result")
    if usage is not None and compacted:
        usage = replace(usage, did_compact=True)
    return AgentResult(text=text, new_session_id=session_id, usage=usage)


class BaseAgent(ABC):
    """Abstract agent invocation interface."""

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        session_id: str | None,
        on_progress: ProgressCallback | None = None,
    ) -> AgentResult:
        """Run one prompt, resuming session_id when given."""
