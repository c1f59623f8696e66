"""Agent event parsing and provider tests."""

from __future__ import annotations

import json
import sys

import pytest

from core.errors import AgentInvocationError
from llm.agent_factory import build_agent
from llm.base_agent import AgentEvent, AgentEventKind, collect_result, parse_agent_event
from llm.providers.cli_agent import CliAgent
from llm.providers.mock_agent import MockAgent

RESULT_PAYLOAD = {
    "type": "result",
    "subtype": "success",
    "result": "All done.",
    "session_id": "abc",
    "total_cost_usd": 0.0123,
    "usage": {
        "input_tokens": 100,
        "cache_read_input_tokens": 2_000,
        "cache_creation_input_tokens": 300,
        "output_tokens": 50,
    },
}


def test_parse_known_and_unknown_events() -> None:
    init = parse_agent_event({"type": "system", "subtype": "init", "session_id": "abc"})
    assert init == AgentEvent(AgentEventKind.INIT, session_id="abc")

    compact = parse_agent_event({"type": "system", "subtype": "compact_boundary"})
    assert compact is not None and compact.kind is AgentEventKind.COMPACT_BOUNDARY

    assert parse_agent_event({"type": "assistant", "message": {}}) is None
    assert parse_agent_event({}) is None


def test_result_usage_counts_cached_prompt_tokens() -> None:
    event = parse_agent_event(RESULT_PAYLOAD)
    assert event is not None and event.usage is not None
    assert event.usage.input_tokens == 2_400
    assert event.usage.last_call_input_tokens == 100
    assert event.usage.last_call_cache_read == 2_000
    assert event.usage.output_tokens == 50
    assert event.usage.total_cost_usd == pytest.approx(0.0123)


def test_collect_result_marks_compaction() -> None:
    events = [
        parse_agent_event({"type": "system", "subtype": "init", "session_id": "abc"}),
        parse_agent_event({"type": "system", "subtype": "compact_boundary"}),
        parse_agent_event(RESULT_PAYLOAD),
    ]
    result = collect_result([e for e in events if e is not None])
    assert result.text == "All done."
    assert result.new_session_id == "abc"
    assert result.usage is not None and result.usage.did_compact


def test_collect_result_without_result_event_raises() -> None:
    with pytest.raises(AgentInvocationError, match="without a result"):
        collect_result([AgentEvent(AgentEventKind.INIT, session_id="abc")])


def test_error_result_raises() -> None:
    event = parse_agent_event({"type": "result", "subtype": "error_during_execution", "result": "boom"})
    assert event is not None
    with pytest.raises(AgentInvocationError, match="boom"):
        collect_result([event])


@pytest.mark.asyncio
async def test_mock_agent_keeps_session_and_grows_usage() -> None:
    agent = MockAgent()
    first = await agent.invoke("[Memory context]\n- ignored (semantic)\n[End memory context]\n\nhello world", None)
    assert first.new_session_id
    assert "hello" in (first.text or "")
    assert "ignored" not in (first.text or "")

    second = await agent.invoke("hello again", first.new_session_id)
    assert second.new_session_id == first.new_session_id
    assert first.usage is not None and second.usage is not None
    assert second.usage.input_tokens > first.usage.input_tokens


@pytest.mark.asyncio
async def test_cli_agent_folds_stream_json_output() -> None:
    lines = [
        {"type": "system", "subtype": "init", "session_id": "cli-session"},
        {"type": "assistant", "message": {"content": []}},
        RESULT_PAYLOAD,
    ]
    script = "import sys\n" + "".join(f"print({json.dumps(json.dumps(line))})\n" for line in lines)
    script += "print('not json')\n"
    ticks: list[int] = []

    agent = CliAgent(command=[sys.executable, "-c", script])
    result = await agent.invoke("hi", None, lambda: ticks.append(1))

    assert result.text == "All done."
    assert result.new_session_id == "cli-session"
    assert ticks


@pytest.mark.asyncio
async def test_cli_agent_failure_without_events_raises() -> None:
    agent = CliAgent(command=[sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"])
    with pytest.raises(AgentInvocationError, match="bad"):
        await agent.invoke("hi", None)


@pytest.mark.asyncio
async def test_cli_agent_missing_binary_raises() -> None:
    agent = CliAgent(command=["definitely-not-a-real-agent-binary"])
    with pytest.raises(AgentInvocationError):
        await agent.invoke("hi", None)


def test_cli_agent_argv_keeps_prompt_positional() -> None:
    agent = CliAgent(command=["agent", "-p"])
    assert agent._argv("hello", "s1") == ["agent", "-p", "--resume", "s1", "--", "hello"]
    assert agent._argv("-v please", None) == ["agent", "-p", "--", "-v please"]


def test_agent_factory_defaults_to_mock() -> None:
    assert isinstance(build_agent({}), MockAgent)
    assert isinstance(build_agent({"agent": {"provider": "cli", "command": ["x"]}}), CliAgent)


INIT_THEN_CRASH = (
    "import json, sys\n"
    "print(json.dumps({'type': 'system', 'subtype': 'init', 'session_id': 's-crash'}), flush=True)\n"
    "sys.exit(1)\n"
)


@pytest.mark.asyncio
async def test_cli_agent_crash_after_init_raises() -> None:
    agent = CliAgent(command=[sys.executable, "-c", INIT_THEN_CRASH])
    with pytest.raises(AgentInvocationError, match="exit code 1"):
        await agent.invoke("hi", None)


@pytest.mark.asyncio
async def test_cli_agent_nonzero_exit_keeps_reported_error() -> None:
    payload = {"type": "result", "subtype": "error_during_execution", "is_error": True, "result": "Prompt is too long"}
    script = f"import sys\nprint({json.dumps(json.dumps(payload))})\nsys.exit(1)\n"
    agent = CliAgent(command=[sys.executable, "-c", script])
    with pytest.raises(AgentInvocationError, match="Prompt is too long"):
        await agent.invoke("hi", None)
