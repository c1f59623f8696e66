"""Memory extraction and prompt context tests."""

from __future__ import annotations

from pathlib import Path

from llm.prompt_engine.memory_injection import MemoryContextBuilder, inject_memory
from memory.conversation_log import ConversationLog
from memory.extraction import classify_sector, is_memorable, save_conversation_turn
from memory.ledger import MemoryLedger
from memory.stores.sql_store import SQLStore
from memory.types.memory import Sector


class FakeClock:
    def __init__(self, now: float = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def build_memory(tmp_path: Path, clock: FakeClock | None = None) -> tuple[MemoryLedger, ConversationLog]:
    store = SQLStore(db_path=tmp_path / "bridge.db")
    store.create_all()
    clock = clock or FakeClock()
    return MemoryLedger(store, clock=clock), ConversationLog(store, clock=clock)


def test_memorability_threshold_and_commands() -> None:
    assert not is_memorable("x" * 20)
    assert is_memorable("x" * 21)
    assert not is_memorable("/newchat please start over now")


def test_sector_classification() -> None:
    assert classify_sector("I prefer dark mode in every editor") is Sector.SEMANTIC
    assert classify_sector("Remember the meeting moved to Friday") is Sector.SEMANTIC
    assert classify_sector("the build failed again this morning") is Sector.EPISODIC
    # Whole words only: "myth" is not "my".
    assert classify_sector("that story is a myth from the nineties") is Sector.EPISODIC


def test_save_turn_logs_both_sides_and_extracts(tmp_path: Path) -> None:
    ledger, log = build_memory(tmp_path)
    saved = save_conversation_turn(
        ledger, log, "chat1", "I'm allergic to peanuts, keep that in mind", "Noted.", session_id="s1"
    )

    assert saved is not None
    assert saved.sector == "semantic"
    assert saved.content == "I'm allergic to peanuts, keep that in mind"
    assert [(t.role, t.content) for t in log.recent("chat1")] == [
        ("assistant", "Noted."),
        ("user", "I'm allergic to peanuts, keep that in mind"),
    ]


def test_short_turn_is_logged_but_not_extracted(tmp_path: Path) -> None:
    ledger, log = build_memory(tmp_path)
    assert save_conversation_turn(ledger, log, "chat1", "thanks!", "Any time.") is None
    assert ledger.count("chat1") == 0
    assert len(log.recent("chat1")) == 2


def test_synthetic_turn_is_neither_logged_nor_extracted(tmp_path: Path) -> None:
    ledger, log = build_memory(tmp_path)
    result = save_conversation_turn(
        ledger, log, "chat1", "[Replaying recent conversation for context] my long replay", "ok", synthetic=True
    )
    assert result is None
    assert ledger.count() == 0
    assert log.recent("chat1") == []


def test_context_block_puts_search_hits_before_recent(tmp_path: Path) -> None:
    clock = FakeClock()
    ledger, _ = build_memory(tmp_path, clock)
    dog = ledger.save("chat1", "remember my dog's name is Rex", "semantic")
    clock.now += 60
    lunch = ledger.save("chat1", "lunch at the new ramen place was good", "episodic")
    ledger.save("chat2", "my dog is called Bolt", "semantic")

    builder = MemoryContextBuilder(ledger, search_limit=3, recent_limit=5)
    memories = builder.collect("chat1", "my dog")

    # Rex is older, so recency alone would list lunch first.
    assert [m.id for m in memories] == [dog.id, lunch.id]

    touched = ledger.get(dog.id)
    assert touched is not None and touched.salience > 1.0
    assert touched.accessed_at == clock.now


def test_context_block_format(tmp_path: Path) -> None:
    ledger, _ = build_memory(tmp_path)
    ledger.save("chat1", "I prefer dark mode", "semantic")
    block = MemoryContextBuilder(ledger).build("chat1", "theme?")

    assert block == "[Memory context]\n- I prefer dark mode (semantic)\n[End memory context]"
    assert inject_memory(block, "theme?") == f"{block}\n\ntheme?"


def test_empty_ledger_yields_no_block(tmp_path: Path) -> None:
    ledger, _ = build_memory(tmp_path)
    block = MemoryContextBuilder(ledger).build("chat1", "anything at all")
    assert block == ""
    assert inject_memory(block, "anything at all") == "anything at all"
