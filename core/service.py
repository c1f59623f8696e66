"""Long-running process: maintenance timer, scheduler and a console front end."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from core.chat_handler import ChatReply
from core.orchestrator import RuntimeBundle

logger = logging.getLogger("bridge.service")

ReadLine = Callable[[], Awaitable[str | None]]
WriteLine = Callable[[str], Awaitable[None]]


class BridgeService:
    """Runs the forgetting sweep and scheduler beside the message loop."""

    def __init__(self, bundle: RuntimeBundle) -> None:
        self.bundle = bundle
        hours = float(bundle.config.get("memory", {}).get("decay_interval_hours", 24))
        self.maintenance_interval_seconds = hours * 60 * 60
        self._maintenance_task: asyncio.Task[None] | None = None

    def run_maintenance(self) -> dict[str, int]:
        return self.bundle.forgetting.run()

    async def _maintenance_loop(self) -> None:
        while True:
            await asyncio.sleep(self.maintenance_interval_seconds)
            try:
                self.run_maintenance()
            except Exception:
                logger.exception("Maintenance sweep failed")

    async def start(self) -> None:
        """Sweep once now, then start the periodic timers."""
        self.run_maintenance()
        self._maintenance_task = asyncio.create_task(self._maintenance_loop(), name="bridge-maintenance")
        self.bundle.scheduler.start()
        logger.info("Bridge service started")

    async def stop(self) -> None:
        await self.bundle.scheduler.stop()
        if self._maintenance_task is not None:
            self._maintenance_task.cancel()
            try:
                await self._maintenance_task
            except asyncio.CancelledError:
                pass
            self._maintenance_task = None
        self.bundle.store.dispose()
        logger.info("Bridge service stopped")

    async def serve_console(self, conversation_id: str, read_line: ReadLine, write_line: WriteLine) -> None:
        """Feed lines from read_line through the chat handler until EOF or exit."""
        await self.start()
        try:
            while True:
                line = await read_line()
                if line is None or line.strip().lower() in {"exit", "quit"}:
                    break
                if not line.strip():
                    continue
                reply: ChatReply = await self.bundle.chat_handler.handle_message(conversation_id, line)
                await write_line(reply.text)
                if reply.warning:
                    await write_line(reply.warning)
        finally:
            await self.stop()
