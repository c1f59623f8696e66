"""Outbound notification sinks."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import typer

logger = logging.getLogger("bridge.notifier")


class BaseNotifier(ABC):
    """Delivers text to the operator's chat."""

    @abstractmethod
    async def send(self, text: str) -> bool:
        """Return True when the message was delivered."""


class ConsoleNotifier(BaseNotifier):
    """Echoes notifications to the terminal."""

    def __init__(self, prefix: str = "bridge") -> None:
        self.prefix = prefix

    async def send(self, text: str) -> bool:
        typer.echo(f"{self.prefix}: {text}")
        return True


async def safe_send(notifier: BaseNotifier | None, text: str) -> bool:
    """Best-effort delivery: failures are logged and swallowed."""
    if notifier is None:
        return False
    try:
        delivered = await notifier.send(text)
    except Exception as exc:
        logger.warning("Notification failed: %s", exc)
        return False
    if not delivered:
        logger.warning("Notification was not delivered")
    return bool(delivered)
