"""Typer command handlers."""

from __future__ import annotations

import asyncio
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import NoReturn

import typer

from core.errors import BridgeError
from core.logging_setup import configure_logging
from core.orchestrator import Orchestrator, RuntimeBundle
from core.service import BridgeService


def _runtime(root: Path | None = None) -> RuntimeBundle:
    home = os.environ.get("BRIDGE_HOME")
    bundle = Orchestrator(root=root or (Path(home) if home else None)).build()
    configure_logging(bundle.config.get("logging", {}).get("level", "INFO"))
    return bundle


def _fail(exc: BridgeError) -> NoReturn:
    typer.echo(str(exc), err=True)
    raise typer.Exit(code=1)


def _format_ts(unix: int | None) -> str:
    if not unix:
        return "never"
    return datetime.fromtimestamp(unix).strftime("%b %d %I:%M %p")


# ── Chat / runtime ───────────────────────────────────────────────────


def chat(conversation_id: str) -> None:
    """Run the console front end with the scheduler and maintenance timers active."""
    bundle = _runtime()
    service = BridgeService(bundle)

    async def read_line() -> str | None:
        line = await asyncio.to_thread(sys.stdin.readline)
        return line.rstrip("\n") if line else None

    async def write_line(text: str) -> None:
        typer.echo(f"assistant: {text}")

    typer.echo("Chat mode. Type 'exit' to quit.")
    asyncio.run(service.serve_console(conversation_id, read_line, write_line))
    typer.echo("bye")


def run_due() -> None:
    """Fire every due scheduled task once."""
    bundle = _runtime()
    summary = asyncio.run(bundle.scheduler.run_due_tasks())
    typer.echo(json.dumps(summary))


# ── Scheduled tasks ──────────────────────────────────────────────────


def schedule_create(prompt: str, cron: str) -> None:
    bundle = _runtime()
    try:
        task = bundle.tasks.create(prompt, cron)
    except BridgeError as exc:
        typer.echo('Examples: "0 9 * * 1" (Mon 9am)  "0 8 * * *" (daily 8am)  "0 */4 * * *" (every 4h)', err=True)
        _fail(exc)
    typer.echo(f"Task created: {task.id}")
    typer.echo(f"Prompt:       {task.prompt}")
    typer.echo(f"Schedule:     {task.schedule}")
    typer.echo(f"Next run:     {_format_ts(task.next_run)}")


def schedule_list() -> None:
    bundle = _runtime()
    tasks = bundle.tasks.list_all()
    if not tasks:
        typer.echo("No scheduled tasks.")
        return
    typer.echo(f"{len(tasks)} scheduled task{'' if len(tasks) == 1 else 's'}:\n")
    for task in tasks:
        paused = " [PAUSED]" if task.status == "paused" else ""
        typer.echo(f"{task.id}{paused}")
        typer.echo(f"  Prompt:   {task.prompt}")
        typer.echo(f"  Schedule: {task.schedule}")
        typer.echo(f"  Next run: {_format_ts(task.next_run)}")
        typer.echo(f"  Last run: {_format_ts(task.last_run)}")
        typer.echo()


def schedule_delete(task_id: str) -> None:
    bundle = _runtime()
    try:
        bundle.tasks.delete(task_id)
    except BridgeError as exc:
        _fail(exc)
    typer.echo(f"Deleted task: {task_id}")


def schedule_pause(task_id: str) -> None:
    bundle = _runtime()
    try:
        bundle.tasks.pause(task_id)
    except BridgeError as exc:
        _fail(exc)
    typer.echo(f"Paused task: {task_id}")


def schedule_resume(task_id: str) -> None:
    bundle = _runtime()
    try:
        bundle.tasks.resume(task_id)
    except BridgeError as exc:
        _fail(exc)
    typer.echo(f"Resumed task: {task_id}")


# ── Memory / sessions ────────────────────────────────────────────────


def memory_recent(conversation_id: str, limit: int) -> None:
    bundle = _runtime()
    memories = bundle.ledger.recent(conversation_id, limit)
    typer.echo(json.dumps([mem.model_dump() for mem in memories], indent=2))


def memory_search(conversation_id: str, query: str, limit: int) -> None:
    bundle = _runtime()
    memories = bundle.ledger.search(conversation_id, query, limit)
    typer.echo(json.dumps([mem.model_dump() for mem in memories], indent=2))


def memory_sweep() -> None:
    """Run the decay and log-pruning sweep now."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.forgetting.run(), indent=2))


def session_show(conversation_id: str) -> None:
    bundle = _runtime()
    typer.echo(bundle.sessions.get(conversation_id) or "No session.")


def session_clear(conversation_id: str) -> None:
    bundle = _runtime()
    reply = bundle.chat_handler.new_chat(conversation_id)
    typer.echo(reply.text)


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.config, indent=2, default=str))
