"""Agent provider factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from llm.base_agent import BaseAgent
from llm.providers.cli_agent import CliAgent
from llm.providers.mock_agent import MockAgent


def build_agent(config: dict[str, Any], root: Path | None = None) -> BaseAgent:
    """Build an agent from configuration, defaulting safely to mock."""
    agent_cfg = config.get("agent", {})
    provider = agent_cfg.get("provider", "mock")

    if provider == "cli":
        cwd = agent_cfg.get("cwd")
        return CliAgent(
            command=agent_cfg.get("command") or None,
            cwd=(root / cwd).resolve() if root is not None and cwd else None,
        )
    return MockAgent()
