"""Timer loop that fires due scheduled tasks through the agent."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from core.notifier import BaseNotifier, safe_send
from core.task_store import TaskStore, compute_next_run
from llm.base_agent import BaseAgent, no_progress
from memory.types.task import ScheduledTask

logger = logging.getLogger("bridge.scheduler")

DEFAULT_INTERVAL_SECONDS = 60.0
EMPTY_RESULT_TEXT = "Task completed with no output."


def _preview(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


class Scheduler:
    """Polls for due tasks and runs them one at a time, without a session.

    A failed task keeps its next_run, so it is retried on every tick until it
    succeeds or an operator pauses or deletes it.
    """

    def __init__(
        self,
        task_store: TaskStore,
        agent: BaseAgent,
        notifier: BaseNotifier | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        formatter: Callable[[str], str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.task_store = task_store
        self.agent = agent
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.formatter = formatter or (lambda text: text)
        self.clock = clock
        self._task: asyncio.Task[None] | None = None

    async def run_due_tasks(self) -> dict[str, int]:
        """Fire every due task sequentially; one failure never stops the sweep."""
        tasks = self.task_store.due(self.clock())
        summary = {"ran": 0, "failed": 0}
        if not tasks:
            return summary

        logger.info("Running %d due scheduled task(s)", len(tasks))
        for task in tasks:
            if await self._fire(task):
                summary["ran"] += 1
            else:
                summary["failed"] += 1
        return summary

    async def _fire(self, task: ScheduledTask) -> bool:
        logger.info("Firing task %s: %s", task.id, task.prompt[:60])
        await safe_send(self.notifier, f'Scheduled task running: "{_preview(task.prompt, 80)}"')
        try:
            result = await self.agent.invoke(task.prompt, None, no_progress)
            text = (result.text or "").strip() or EMPTY_RESULT_TEXT
            await safe_send(self.notifier, self.formatter(text))
            next_run = compute_next_run(task.schedule, self.clock())
            self.task_store.mark_run(task.id, next_run, text)
        except Exception:
            logger.exception("Scheduled task %s failed", task.id)
            await safe_send(self.notifier, f'Task failed: "{_preview(task.prompt, 60)}" - check logs.')
            return False
        logger.info("Task %s complete, next run at %d", task.id, next_run)
        return True

    async def run_forever(self) -> None:
        """Tick on a fixed interval until cancelled."""
        logger.info("Scheduler started (checking every %ss)", self.interval_seconds)
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_due_tasks()
            except Exception:
                logger.exception("Scheduler tick failed")

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="bridge-scheduler")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
