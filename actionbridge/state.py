"""Evaluation of state predicates against the live host context."""

from __future__ import annotations

import logging
from collections.abc import Callable

from actionbridge.host import CommandRegistry, DataContext, HostContext, UIThread

logger = logging.getLogger(__name__)

NEGATION_PREFIXES = ("!", "not:")

Query = Callable[[], bool]
ParamQuery = Callable[[str], bool]


class StateEvaluator:
    """Resolves predicate strings such as ``editor``, ``!hasGit`` or ``Run:active``."""

    def __init__(
        self,
        context: HostContext,
        registry: CommandRegistry,
        ui: UIThread | None = None,
    ) -> None:
        self.context = context
        self.registry = registry
        self.ui = ui
        ctx = context
        self._keywords: dict[str, Query] = {
            "editor": ctx.has_open_editor,
            "hasEditor": ctx.has_open_editor,
            "file": ctx.has_open_file,
            "hasFile": ctx.has_open_file,
            "project": ctx.has_project,
            "hasProject": ctx.has_project,
            "projectView": lambda: ctx.is_tool_window_visible("Project"),
            "terminal": lambda: ctx.is_tool_window_visible("Terminal"),
            "hasModifications": ctx.has_unsaved_changes,
            "hasUnsavedChanges": ctx.has_unsaved_changes,
            "hasErrors": ctx.has_errors,
            "hasSelection": ctx.has_selection,
            "isIndexing": ctx.is_indexing,
            "indexing": ctx.is_indexing,
            "focusInEditor": ctx.is_editor_focused,
            "editorHasFocus": ctx.is_editor_focused,
            "focusInProject": lambda: ctx.focused_tool_window() == "Project",
            "focusInTerminal": lambda: ctx.focused_tool_window() == "Terminal",
            "focusInToolWindow": lambda: ctx.focused_tool_window() is not None,
            "hasFocus": ctx.is_ide_focused,
            "ideFocused": ctx.is_ide_focused,
            "hasGit": ctx.has_vcs,
            "gitRepository": ctx.has_vcs,
        }
        self._prefixes: list[tuple[str, ParamQuery]] = [
            ("fileType:", self._has_file_type),
            ("hasExtension:", self._has_extension),
            ("focusInToolWindow:", lambda name: ctx.focused_tool_window() == name),
            ("focusInFile:", lambda name: ctx.focused_file_name() == name),
        ]
        self._suffixes: list[tuple[str, ParamQuery]] = [
            (":enabled", self._is_enabled),
            (":window", ctx.is_tool_window_visible),
            (":toolWindow", ctx.is_tool_window_visible),
            (":active", ctx.is_tool_window_active),
        ]

    def evaluate(self, predicate: str) -> bool:
        negated, body = _strip_negation(predicate.strip())
        if self.ui is not None:
            result = self.ui.invoke_and_wait(lambda: self._resolve(body))
        else:
            result = self._resolve(body)
        return not result if negated else result

    def evaluate_all(self, predicates: list[str]) -> dict[str, bool]:
        """Evaluate each predicate independently against fresh host state."""
        return {predicate: self.evaluate(predicate) for predicate in predicates}

    def _resolve(self, body: str) -> bool:
        query = self._keywords.get(body)
        if query is not None:
            if body in ("project", "hasProject"):
                return query()
            return self.context.has_project() and query()

        for prefix, param_query in self._prefixes:
            if body.startswith(prefix):
                return self.context.has_project() and param_query(body[len(prefix):])

        for suffix, param_query in self._suffixes:
            if body.endswith(suffix):
                argument = body[: -len(suffix)]
                if suffix == ":enabled":
                    return param_query(argument)
                return self.context.has_project() and param_query(argument)

        logger.warning("Unknown state query: %s", body)
        return False

    def _has_file_type(self, wanted: str) -> bool:
        current = self.context.current_file()
        if current is None:
            return False
        wanted = wanted.lower()
        return any(
            value is not None and value.lower() == wanted
            for value in (current.file_type, current.default_extension)
        )

    def _has_extension(self, wanted: str) -> bool:
        current = self.context.current_file()
        if current is None or current.extension is None:
            return False
        return current.extension.lower() == wanted.lower()

    def _is_enabled(self, command_id: str) -> bool:
        if not self.registry.exists(command_id):
            return False
        context = self.context.data_context() if self.context.has_project() else DataContext()
        return self.registry.is_enabled(command_id, context)


def _strip_negation(predicate: str) -> tuple[bool, str]:
    for prefix in NEGATION_PREFIXES:
        if predicate.startswith(prefix):
            return True, predicate[len(prefix):]
    return False, predicate
