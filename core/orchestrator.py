"""Top-level application orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.chat_handler import ChatHandler
from core.notifier import BaseNotifier, ConsoleNotifier
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from core.scheduler import Scheduler
from core.task_store import TaskStore
from governance.context_tracker import ContextTracker
from llm.agent_factory import build_agent
from llm.base_agent import BaseAgent
from llm.prompt_engine.memory_injection import MemoryContextBuilder
from memory.consolidation.forgetting import ForgettingPolicy
from memory.conversation_log import ConversationLog
from memory.ledger import MemoryLedger
from memory.session_registry import SessionRegistry
from memory.stores.sql_store import SQLStore

logger = logging.getLogger("bridge.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    store: SQLStore
    ledger: MemoryLedger
    conversation_log: ConversationLog
    sessions: SessionRegistry
    tasks: TaskStore
    agent: BaseAgent
    context_tracker: ContextTracker
    chat_handler: ChatHandler
    forgetting: ForgettingPolicy
    scheduler: Scheduler


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()

    def build(
        self,
        agent: BaseAgent | None = None,
        notifier: BaseNotifier | None = None,
    ) -> RuntimeBundle:
        config = load_effective_config(self.root)
        paths = ensure_runtime_dirs(self.root, config)

        # An unreadable or unwritable database is fatal here.
        store = SQLStore(paths["db_path"])
        store.create_all()
        logger.info("Database ready at %s", paths["db_path"])

        memory_cfg = config.get("memory", {})
        context_cfg = config.get("context", {})
        scheduler_cfg = config.get("scheduler", {})

        ledger = MemoryLedger(store)
        conversation_log = ConversationLog(store)
        sessions = SessionRegistry(store)
        tasks = TaskStore(store, result_max_chars=int(scheduler_cfg.get("result_max_chars", 500)))
        agent = agent or build_agent(config, root=self.root)

        context_tracker = ContextTracker(
            context_limit=int(context_cfg.get("limit", 1_000_000)),
            warn_ratio=float(context_cfg.get("warn_ratio", 0.75)),
        )
        context_builder = MemoryContextBuilder(
            ledger,
            search_limit=int(memory_cfg.get("search_limit", 3)),
            recent_limit=int(memory_cfg.get("recent_limit", 5)),
        )
        chat_handler = ChatHandler(
            agent=agent,
            ledger=ledger,
            conversation_log=conversation_log,
            sessions=sessions,
            context_builder=context_builder,
            context_tracker=context_tracker,
        )
        forgetting = ForgettingPolicy(
            ledger,
            conversation_log,
            log_retention=int(memory_cfg.get("log_retention", 500)),
        )
        scheduler = Scheduler(
            task_store=tasks,
            agent=agent,
            notifier=notifier or ConsoleNotifier(prefix="scheduler"),
            interval_seconds=float(scheduler_cfg.get("interval_seconds", 60)),
        )

        return RuntimeBundle(
            config=config,
            store=store,
            ledger=ledger,
            conversation_log=conversation_log,
            sessions=sessions,
            tasks=tasks,
            agent=agent,
            context_tracker=context_tracker,
            chat_handler=chat_handler,
            forgetting=forgetting,
            scheduler=scheduler,
        )
