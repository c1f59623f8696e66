"""Scheduled task persistence and cron evaluation."""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from datetime import datetime

from croniter import CroniterError, croniter
from sqlalchemy import select, update

from core.errors import InvalidScheduleError, TaskNotFoundError
from memory.schemas import ScheduledTaskRecord
from memory.stores.sql_store import SQLStore
from memory.types.task import ScheduledTask, TaskStatus

RESULT_MAX_CHARS = 500


def compute_next_run(cron_expression: str, now: float | None = None) -> int:
    """Next firing time (Unix seconds) strictly after now, in local time.

    Six-field expressions carry seconds as the first field.
    """
    base = datetime.fromtimestamp(time.time() if now is None else now).astimezone()
    seconds_first = len(str(cron_expression).split()) == 6
    try:
        itr = croniter(cron_expression, base, second_at_beginning=seconds_first)
        return int(itr.get_next(float))
    except (CroniterError, ValueError, KeyError, TypeError) as exc:
        raise InvalidScheduleError(f"Invalid cron expression: {cron_expression!r}") from exc


class TaskStore:
    """CRUD over scheduled_tasks."""

    def __init__(
        self,
        sql_store: SQLStore,
        clock: Callable[[], float] = time.time,
        result_max_chars: int = RESULT_MAX_CHARS,
    ) -> None:
        self.sql_store = sql_store
        self.clock = clock
        self.result_max_chars = result_max_chars

    def create(self, prompt: str, schedule: str) -> ScheduledTask:
        """Validate the schedule and insert an active task due at its next slot."""
        now = self.clock()
        next_run = compute_next_run(schedule, now)
        record = ScheduledTaskRecord(
            id=secrets.token_hex(4),
            prompt=prompt,
            schedule=schedule,
            next_run=next_run,
            status=TaskStatus.ACTIVE.value,
            created_at=int(now),
        )
        with self.sql_store.session() as sess:
            sess.add(record)
            sess.flush()
            return ScheduledTask.model_validate(record)

    def get(self, task_id: str) -> ScheduledTask | None:
        with self.sql_store.session() as sess:
            row = sess.get(ScheduledTaskRecord, task_id)
            return ScheduledTask.model_validate(row) if row is not None else None

    def list_all(self) -> list[ScheduledTask]:
        with self.sql_store.session() as sess:
            rows = sess.scalars(
                select(ScheduledTaskRecord).order_by(
                    ScheduledTaskRecord.created_at.desc(), ScheduledTaskRecord.id
                )
            ).all()
            return [ScheduledTask.model_validate(row) for row in rows]

    def due(self, now: float | None = None) -> list[ScheduledTask]:
        """Active tasks whose next_run has arrived, earliest first."""
        cutoff = int(self.clock() if now is None else now)
        with self.sql_store.session() as sess:
            rows = sess.scalars(
                select(ScheduledTaskRecord)
                .where(ScheduledTaskRecord.status == TaskStatus.ACTIVE.value)
                .where(ScheduledTaskRecord.next_run <= cutoff)
                .order_by(ScheduledTaskRecord.next_run)
            ).all()
            return [ScheduledTask.model_validate(row) for row in rows]

    def mark_run(self, task_id: str, next_run: int, result: str) -> None:
        """Record a successful firing in a single statement."""
        with self.sql_store.session() as sess:
            sess.execute(
                update(ScheduledTaskRecord)
                .where(ScheduledTaskRecord.id == task_id)
                .values(
                    last_run=int(self.clock()),
                    next_run=int(next_run),
                    last_result=result[: self.result_max_chars],
                )
                .execution_options(synchronize_session=False)
            )

    def _set_status(self, task_id: str, status: TaskStatus) -> ScheduledTask:
        with self.sql_store.session() as sess:
            row = sess.get(ScheduledTaskRecord, task_id)
            if row is None:
                raise TaskNotFoundError(task_id)
            row.status = status.value
            sess.flush()
            return ScheduledTask.model_validate(row)

    def pause(self, task_id: str) -> ScheduledTask:
        return self._set_status(task_id, TaskStatus.PAUSED)

    def resume(self, task_id: str) -> ScheduledTask:
        return self._set_status(task_id, TaskStatus.ACTIVE)

    def delete(self, task_id: str) -> None:
        with self.sql_store.session() as sess:
            row = sess.get(ScheduledTaskRecord, task_id)
            if row is None:
                raise TaskNotFoundError(task_id)
            sess.delete(row)
