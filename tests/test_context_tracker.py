"""Context tracker tests."""

from __future__ import annotations

from governance.context_tracker import COMPACTION_WARNING, ContextTracker
from llm.base_agent import AgentUsage


def usage(input_tokens: int, did_compact: bool = False) -> AgentUsage:
    return AgentUsage(input_tokens=input_tokens, output_tokens=100, did_compact=did_compact)


def test_first_observation_sets_baseline_without_warning() -> None:
    tracker = ContextTracker(context_limit=100_000)
    assert tracker.record_and_warn("chat1", "s1", usage(90_000)) is None
    assert tracker.session_baseline["s1"] == 90_000


def test_warns_at_threshold_of_budget_after_baseline() -> None:
    tracker = ContextTracker(context_limit=100_000, warn_ratio=0.75)
    tracker.record_and_warn("chat1", "s1", usage(20_000))

    assert tracker.record_and_warn("chat1", "s1", usage(79_999)) is None
    warning = tracker.record_and_warn("chat1", "s1", usage(80_000))
    assert warning is not None
    assert warning.startswith("Context window 75% used")


def test_compaction_always_warns() -> None:
    tracker = ContextTracker(context_limit=100_000)
    assert tracker.record_and_warn("chat1", "s1", usage(10, did_compact=True)) == COMPACTION_WARNING


def test_baseline_above_limit_never_warns() -> None:
    tracker = ContextTracker(context_limit=10_000)
    tracker.record_and_warn("chat1", "s1", usage(20_000))
    assert tracker.record_and_warn("chat1", "s1", usage(30_000)) is None


def test_missing_or_malformed_usage_is_ignored() -> None:
    tracker = ContextTracker(context_limit=100_000)
    assert tracker.record_and_warn("chat1", "s1", None) is None
    assert tracker.record_and_warn("chat1", "s1", AgentUsage(input_tokens="lots")) is None  # type: ignore[arg-type]


def test_baselines_are_per_session_with_conversation_fallback() -> None:
    tracker = ContextTracker(context_limit=100_000)
    tracker.record_and_warn("chat1", None, usage(5_000))
    tracker.record_and_warn("chat1", "s1", usage(7_000))
    assert tracker.session_baseline == {"conversation:chat1": 5_000, "s1": 7_000}


def test_clear_resets_baseline_and_last_usage() -> None:
    tracker = ContextTracker(context_limit=100_000)
    tracker.record_and_warn("chat1", "s1", usage(20_000))
    assert tracker.last_usage_for("chat1") is not None

    tracker.clear("chat1", "s1")
    assert tracker.last_usage_for("chat1") is None
    # A fresh baseline is taken, so a large first reading does not warn.
    assert tracker.record_and_warn("chat1", "s1", usage(95_000)) is None


def test_malformed_usage_is_not_kept_as_last_snapshot() -> None:
    tracker = ContextTracker(context_limit=100_000)
    tracker.record_and_warn("chat1", "s1", AgentUsage(input_tokens="lots"))  # type: ignore[arg-type]
    assert tracker.last_usage_for("chat1") is None

    tracker.record_and_warn("chat1", "s1", AgentUsage(input_tokens="1200", output_tokens=3))  # type: ignore[arg-type]
    stored = tracker.last_usage_for("chat1")
    assert stored is not None and stored.input_tokens == 1200
