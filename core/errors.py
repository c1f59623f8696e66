"""Bridge error taxonomy."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for errors raised by the bridge core."""


class InvalidScheduleError(BridgeError, ValueError):
    """Cron expression could not be parsed."""


class TaskNotFoundError(BridgeError, KeyError):
    """No scheduled task with the requested id."""

    def __str__(self) -> str:
        return f"No scheduled task with id {self.args[0]!r}" if self.args else "Task not found"


class AgentInvocationError(BridgeError, RuntimeError):
    """The agent process failed or reported an error result."""
