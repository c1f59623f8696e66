"""Conversation log, session registry and SQL store tests."""

from __future__ import annotations

from pathlib import Path

from memory.conversation_log import ConversationLog
from memory.session_registry import SessionRegistry
from memory.stores.sql_store import SQLStore


def build_store(tmp_path: Path) -> SQLStore:
    store = SQLStore(db_path=tmp_path / "bridge.db")
    store.create_all()
    return store


def test_store_uses_wal_and_is_idempotent(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    store.create_all()
    rows = store.execute("PRAGMA journal_mode")
    assert str(list(rows[0].values())[0]).lower() == "wal"

    tables = {row["name"] for row in store.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {"memories", "memories_fts", "conversation_log", "sessions", "scheduled_tasks"} <= tables


def test_in_memory_store_supports_full_schema() -> None:
    store = SQLStore(":memory:")
    store.create_all()
    log = ConversationLog(store)
    log.append("chat1", "user", "hello there")
    assert len(log.recent("chat1")) == 1
    store.dispose()


def test_log_recent_is_newest_first_and_scoped(tmp_path: Path) -> None:
    log = ConversationLog(build_store(tmp_path), clock=lambda: 1_700_000_000)
    log.append("chat1", "user", "first question", session_id="s1")
    log.append("chat1", "assistant", "first answer", session_id="s1")
    log.append("chat2", "user", "other chat")

    turns = log.recent("chat1", 10)
    assert [t.content for t in turns] == ["first answer", "first question"]
    assert turns[0].session_id == "s1"
    assert turns[0].created_at == 1_700_000_000
    assert [t.content for t in log.recent("chat2", 10)] == ["other chat"]


def test_render_transcript_is_oldest_first(tmp_path: Path) -> None:
    log = ConversationLog(build_store(tmp_path))
    log.append("chat1", "user", "one")
    log.append("chat1", "assistant", "two")
    log.append("chat1", "user", "three")

    assert log.render_transcript("chat1", 2) == "[assistant]: two\n\n[user]: three"
    assert log.render_transcript("empty", 5) == ""


def test_prune_keeps_newest_rows_globally(tmp_path: Path) -> None:
    log = ConversationLog(build_store(tmp_path))
    for idx in range(6):
        log.append("chat1" if idx % 2 else "chat2", "user", f"message {idx}")

    assert log.prune(keep_global_count=4) == 2
    remaining = [t.content for t in log.recent("chat1", 10)] + [t.content for t in log.recent("chat2", 10)]
    assert sorted(remaining) == ["message 2", "message 3", "message 4", "message 5"]
    assert log.prune(keep_global_count=4) == 0


def test_session_registry_upserts_and_clears(tmp_path: Path) -> None:
    sessions = SessionRegistry(build_store(tmp_path))
    assert sessions.get("chat1") is None

    sessions.set("chat1", "session-a")
    sessions.set("chat1", "session-b")
    sessions.set("chat2", "session-c")
    assert sessions.get("chat1") == "session-b"
    assert sessions.get("chat2") == "session-c"

    sessions.clear("chat1")
    sessions.clear("never-seen")
    assert sessions.get("chat1") is None
    assert sessions.get("chat2") == "session-c"
