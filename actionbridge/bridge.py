from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from actionbridge.classifier import CommandClassifier, known_command_ids
from actionbridge.conditional import ConditionalExecutor
from actionbridge.config import Settings
from actionbridge.executor import ExecutionEngine
from actionbridge.host import (
    CommandRegistry,
    HostContext,
    InMemoryRegistry,
    StaticHostContext,
    UIThread,
)
from actionbridge.state import StateEvaluator
from actionbridge.storage import HistoryStore

logger = logging.getLogger(__name__)


@dataclass
class ActionBridge:
    """Long-lived services shared by every request handler."""

    settings: Settings
    registry: CommandRegistry
    context: HostContext
    ui: UIThread
    classifier: CommandClassifier
    evaluator: StateEvaluator
    engine: ExecutionEngine
    conditional: ConditionalExecutor
    store: HistoryStore

    def start(self) -> None:
        self.store.start()

    def close(self) -> None:
        self.store.stop()
        self.ui.shutdown()
        logger.info("Action bridge stopped")


def standalone_registry(settings: Settings) -> InMemoryRegistry:
    """No-op registry for running the bridge outside an IDE."""
    if settings.commands_file is not None:
        return InMemoryRegistry.from_file(settings.commands_file)
    return InMemoryRegistry.from_ids(known_command_ids())


def build_bridge(
    settings: Settings,
    registry: CommandRegistry | None = None,
    context: HostContext | None = None,
    sleep: Callable[[float], None] = time.sleep,
    load_history: bool = True,
) -> ActionBridge:
    """Wire the services together; the caller owns `start`/`close`."""
    registry = registry if registry is not None else standalone_registry(settings)
    context = context if context is not None else StaticHostContext()
    ui = UIThread()
    classifier = CommandClassifier()
    store = HistoryStore(
        settings.history_file,
        settings.stats_file,
        max_entries=settings.max_history,
        persist_interval_s=settings.persist_interval_s,
        classifier=classifier,
    )
    if load_history:
        store.load()
    evaluator = StateEvaluator(context, registry, ui=ui)
    engine = ExecutionEngine(
        registry, context, ui, classifier=classifier, recorder=store, sleep=sleep
    )
    return ActionBridge(
        settings=settings,
        registry=registry,
        context=context,
        ui=ui,
        classifier=classifier,
        evaluator=evaluator,
        engine=engine,
        conditional=ConditionalExecutor(engine, evaluator),
        store=store,
    )
