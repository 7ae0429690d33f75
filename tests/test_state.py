from __future__ import annotations

import logging

import pytest

from actionbridge.host import DataContext, InMemoryRegistry, OpenFile, StaticHostContext, UIThread
from actionbridge.state import StateEvaluator

PREDICATES = [
    "editor",
    "hasFile",
    "project",
    "terminal",
    "hasModifications",
    "hasErrors",
    "hasSelection",
    "isIndexing",
    "hasGit",
    "fileType:Python",
    "hasExtension:py",
    "focusInToolWindow:Terminal",
    "focusInFile:main.py",
    "SaveAll:enabled",
    "Terminal:window",
    "Run:active",
    "totallyBogus",
]


def _context() -> StaticHostContext:
    return StaticHostContext(
        editor_open=True,
        open_file=OpenFile(name="main.py", extension="py", file_type="Python", default_extension="py"),
        unsaved_changes=True,
        vcs=True,
        focused_window="Terminal",
        visible_windows={"Terminal", "Project"},
        active_windows={"Terminal"},
    )


def _registry() -> InMemoryRegistry:
    registry = InMemoryRegistry.from_ids(["SaveAll"])
    registry.register("CompileProject", enabled=lambda context: context.has_editor)
    return registry


def test_keywords_delegate_to_host() -> None:
    evaluator = StateEvaluator(_context(), _registry())
    assert evaluator.evaluate("editor") is True
    assert evaluator.evaluate("hasFile") is True
    assert evaluator.evaluate("project") is True
    assert evaluator.evaluate("terminal") is True
    assert evaluator.evaluate("projectView") is True
    assert evaluator.evaluate("hasModifications") is True
    assert evaluator.evaluate("hasErrors") is False
    assert evaluator.evaluate("isIndexing") is False
    assert evaluator.evaluate("hasGit") is True
    assert evaluator.evaluate("focusInTerminal") is True
    assert evaluator.evaluate("focusInProject") is False
    assert evaluator.evaluate("focusInToolWindow") is True


def test_parameterized_predicates() -> None:
    evaluator = StateEvaluator(_context(), _registry())
    assert evaluator.evaluate("fileType:python") is True
    assert evaluator.evaluate("fileType:PY") is True
    assert evaluator.evaluate("fileType:Kotlin") is False
    assert evaluator.evaluate("hasExtension:PY") is True
    assert evaluator.evaluate("focusInToolWindow:Terminal") is True
    assert evaluator.evaluate("focusInToolWindow:Project") is False
    # file focus needs the editor to hold focus
    assert evaluator.evaluate("focusInFile:main.py") is False


def test_suffix_predicates() -> None:
    evaluator = StateEvaluator(_context(), _registry())
    assert evaluator.evaluate("SaveAll:enabled") is True
    assert evaluator.evaluate("Missing:enabled") is False
    assert evaluator.evaluate("CompileProject:enabled") is True
    assert evaluator.evaluate("Terminal:window") is True
    assert evaluator.evaluate("Terminal:toolWindow") is True
    assert evaluator.evaluate("Project:active") is False
    assert evaluator.evaluate("Terminal:active") is True


@pytest.mark.parametrize("prefix", ["!", "not:"])
@pytest.mark.parametrize("predicate", PREDICATES)
def test_negation_inverts_result(prefix: str, predicate: str) -> None:
    evaluator = StateEvaluator(_context(), _registry())
    assert evaluator.evaluate(prefix + predicate) is (not evaluator.evaluate(predicate))


def test_unknown_predicate_is_false_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    evaluator = StateEvaluator(_context(), _registry())
    with caplog.at_level(logging.WARNING):
        assert evaluator.evaluate("totallyBogus") is False
    assert "totallyBogus" in caplog.text
    assert evaluator.evaluate("!totallyBogus") is True
    assert evaluator.evaluate("not:totallyBogus") is True


def test_no_project_only_absence_checks_hold() -> None:
    context = StaticHostContext(project_open=False, editor_open=True, visible_windows={"Terminal"})
    registry = InMemoryRegistry()
    registry.register("About", enabled=lambda ctx: ctx == DataContext())
    evaluator = StateEvaluator(context, registry)

    assert evaluator.evaluate("editor") is False
    assert evaluator.evaluate("Terminal:window") is False
    assert evaluator.evaluate("hasExtension:py") is False
    assert evaluator.evaluate("project") is False
    assert evaluator.evaluate("!project") is True
    assert evaluator.evaluate("About:enabled") is True


def test_evaluate_all_reads_live_state_each_time() -> None:
    calls: list[int] = []

    class CountingContext(StaticHostContext):
        def has_unsaved_changes(self) -> bool:
            calls.append(1)
            return len(calls) % 2 == 1

    evaluator = StateEvaluator(CountingContext(), InMemoryRegistry())
    results = evaluator.evaluate_all(["hasModifications", "!hasModifications"])
    assert results == {"hasModifications": True, "!hasModifications": True}
    assert len(calls) == 2


def test_queries_run_on_ui_thread() -> None:
    seen: list[bool] = []
    ui = UIThread()

    class ThreadCheckingContext(StaticHostContext):
        def has_selection(self) -> bool:
            seen.append(ui.is_dispatch_thread())
            return True

    try:
        evaluator = StateEvaluator(ThreadCheckingContext(), InMemoryRegistry(), ui=ui)
        assert evaluator.evaluate("hasSelection") is True
    finally:
        ui.shutdown()
    assert seen == [True]
