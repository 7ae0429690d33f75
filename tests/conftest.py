from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from actionbridge.classifier import CommandClassifier
from actionbridge.executor import ExecutionEngine
from actionbridge.host import InMemoryRegistry, StaticHostContext, UIThread
from actionbridge.storage import HistoryStore


class SleepLog:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def ui() -> Iterator[UIThread]:
    thread = UIThread()
    yield thread
    thread.shutdown()


@pytest.fixture
def context() -> StaticHostContext:
    return StaticHostContext(editor_open=True, vcs=True)


@pytest.fixture
def registry() -> InMemoryRegistry:
    return InMemoryRegistry.from_ids(["SaveAll", "ReformatCode", "OptimizeImports", "CompileProject"])


@pytest.fixture
def store(tmp_path: Path) -> HistoryStore:
    return HistoryStore(tmp_path / "history.json", tmp_path / "stats.json")


@pytest.fixture
def sleep_log() -> SleepLog:
    return SleepLog()


@pytest.fixture
def engine(
    registry: InMemoryRegistry,
    context: StaticHostContext,
    ui: UIThread,
    store: HistoryStore,
    sleep_log: SleepLog,
) -> ExecutionEngine:
    return ExecutionEngine(
        registry, context, ui, classifier=CommandClassifier(), recorder=store, sleep=sleep_log
    )
