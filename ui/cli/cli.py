"""CLI entrypoint for the chat bridge."""

from __future__ import annotations

import typer

from ui.cli import commands

app = typer.Typer(help="Chat-to-agent bridge with durable memory")
schedule_app = typer.Typer(help="Scheduled task commands")
memory_app = typer.Typer(help="Memory commands")
session_app = typer.Typer(help="Session commands")
config_app = typer.Typer(help="Configuration commands")

CONVERSATION_OPTION = typer.Option("console", "--conversation", "-c", help="Conversation id")


@app.command("chat")
def chat_cmd(conversation: str = CONVERSATION_OPTION) -> None:
    """Interactive console chat with scheduler and decay timers running."""
    commands.chat(conversation_id=conversation)


@app.command("run-due")
def run_due_cmd() -> None:
    """Fire all due scheduled tasks once."""
    commands.run_due()


@schedule_app.command("create")
def schedule_create_cmd(
    prompt: str = typer.Argument(..., help="Prompt sent to the agent"),
    cron: str = typer.Argument(..., help='Cron expression, e.g. "0 9 * * 1"'),
) -> None:
    """Create a scheduled task."""
    commands.schedule_create(prompt=prompt, cron=cron)


@schedule_app.command("list")
def schedule_list_cmd() -> None:
    """List scheduled tasks."""
    commands.schedule_list()


@schedule_app.command("delete")
def schedule_delete_cmd(task_id: str) -> None:
    """Delete a scheduled task."""
    commands.schedule_delete(task_id=task_id)


@schedule_app.command("pause")
def schedule_pause_cmd(task_id: str) -> None:
    """Pause a scheduled task."""
    commands.schedule_pause(task_id=task_id)


@schedule_app.command("resume")
def schedule_resume_cmd(task_id: str) -> None:
    """Resume a paused task."""
    commands.schedule_resume(task_id=task_id)


@memory_app.command("recent")
def memory_recent_cmd(
    conversation: str = CONVERSATION_OPTION,
    limit: int = typer.Option(10, min=1, max=100),
) -> None:
    """Show most recently accessed memories."""
    commands.memory_recent(conversation_id=conversation, limit=limit)


@memory_app.command("search")
def memory_search_cmd(
    query: str,
    conversation: str = CONVERSATION_OPTION,
    limit: int = typer.Option(5, min=1, max=100),
) -> None:
    """Full-text search over a conversation's memories."""
    commands.memory_search(conversation_id=conversation, query=query, limit=limit)


@memory_app.command("sweep")
def memory_sweep_cmd() -> None:
    """Run the decay and log-pruning sweep."""
    commands.memory_sweep()


@session_app.command("show")
def session_show_cmd(conversation: str = CONVERSATION_OPTION) -> None:
    """Show the agent session bound to a conversation."""
    commands.session_show(conversation_id=conversation)


@session_app.command("clear")
def session_clear_cmd(conversation: str = CONVERSATION_OPTION) -> None:
    """Forget the agent session for a conversation."""
    commands.session_clear(conversation_id=conversation)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(schedule_app, name="schedule")
app.add_typer(memory_app, name="memory")
app.add_typer(session_app, name="session")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
