"""Agent adapter that drives a local agent CLI emitting stream-JSON events."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from core.errors import AgentInvocationError
from llm.base_agent import (
    AgentEvent,
    AgentResult,
    BaseAgent,
    ProgressCallback,
    collect_result,
    parse_agent_event,
)

logger = logging.getLogger("bridge.agent.cli")

DEFAULT_COMMAND = ["claude", "-p", "--output-format", "stream-json", "--verbose"]


class CliAgent(BaseAgent):
    """Spawns one CLI process per turn and folds its JSON-lines output."""

    def __init__(
        self,
        command: list[str] | None = None,
        cwd: Path | None = None,
        resume_flag: str = "--resume",
    ) -> None:
        self.command = list(command or DEFAULT_COMMAND)
        self.cwd = cwd
        self.resume_flag = resume_flag

    def _argv(self, prompt: str, session_id: str | None) -> list[str]:
        argv = list(self.command)
        if session_id:
            argv += [self.resume_flag, session_id]
        argv += ["--", prompt]
        return argv

    async def invoke(
        self,
        prompt: str,
        session_id: str | None,
        on_progress: ProgressCallback | None = None,
    ) -> AgentResult:
        logger.info("Starting agent query (session=%s, prompt_len=%d)", session_id or "new", len(prompt))
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._argv(prompt, session_id),
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise AgentInvocationError(f"Could not start agent CLI: {exc}") from exc

        events: list[AgentEvent] = []
        if proc.stdout is None:
            raise AgentInvocationError("Agent CLI has no stdout pipe")
        async for raw_line in proc.stdout:
            if on_progress is not None:
                on_progress()
            line = raw_line.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping non-JSON agent output: %s", line[:120])
                continue
            if isinstance(payload, dict):
                event = parse_agent_event(payload)
                if event is not None:
                    events.append(event)

        stderr = await proc.stderr.read() if proc.stderr is not None else b""
        returncode = await proc.wait()
        if returncode != 0:
            reported = next((e.text for e in events if e.is_error and e.text), None)
            message = reported or stderr.decode("utf-8", errors="replace").strip() or f"exit code {returncode}"
            raise AgentInvocationError(f"Agent CLI failed: {message}")

        result = collect_result(events)
        logger.info("Agent result received (has_text=%s)", bool(result.text))
        return result
