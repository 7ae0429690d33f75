"""Timing classification of host commands.

Commands are sorted into timing categories by an ordered rule table. The first
matching rule wins and membership in a named set always comes before the
substring heuristics of the same category. The category decides how long a
chain waits after the command before dispatching the next one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from actionbridge.models.enums import TimingCategory
from actionbridge.types import CommandRequirements

logger = logging.getLogger(__name__)

DELAY_NONE = 0
DELAY_QUICK_UI = 50
DELAY_TOOL_WINDOW = 100
DELAY_TREE_LIST = 150
DELAY_ASYNC_OPERATION = 500

CATEGORY_DELAYS: dict[TimingCategory, int] = {
    TimingCategory.INSTANT: DELAY_NONE,
    TimingCategory.QUICK_UI: DELAY_QUICK_UI,
    TimingCategory.TOOL_WINDOW: DELAY_TOOL_WINDOW,
    TimingCategory.TREE_LIST: DELAY_TREE_LIST,
    TimingCategory.ASYNC_TRIGGER: DELAY_ASYNC_OPERATION,
    TimingCategory.DIALOG: DELAY_NONE,
    TimingCategory.UNKNOWN: DELAY_QUICK_UI,
}

INSTANT_COMMANDS = frozenset(
    {
        # files
        "SaveAll", "SaveDocument", "SaveAs", "ExportToFile",
        # clipboard
        "$Copy", "$Paste", "$Cut", "CopyPaths", "CopyReference",
        "CopyAbsolutePath", "CopyFileName", "CopyPathFromRepositoryRootProvider",
        # navigation
        "GotoDeclaration", "GotoImplementation", "GotoSuperMethod",
        "GotoTypeDeclaration", "ShowUsages", "FindUsages",
        # caret
        "EditorLeft", "EditorRight", "EditorUp", "EditorDown",
        "EditorLineStart", "EditorLineEnd", "EditorPageUp", "EditorPageDown",
        "EditorTextStart", "EditorTextEnd", "EditorNextWord", "EditorPreviousWord",
        # tabs
        "NextTab", "PreviousTab", "CloseContent", "CloseActiveTab",
        # bookmarks
        "ToggleBookmark", "ShowBookmarks", "GotoNextBookmark", "GotoPreviousBookmark",
        # folding
        "CollapseRegion", "ExpandRegion", "CollapseAllRegions", "ExpandAllRegions",
    }
)

QUICK_UI_COMMANDS = frozenset(
    {
        "ReformatCode", "OptimizeImports", "RearrangeCode", "AutoIndentLines",
        "CommentByLineComment", "CommentByBlockComment",
        "EditorToggleShowWhitespaces", "EditorToggleShowLineNumbers",
        "EditorToggleUseSoftWraps", "EditorToggleShowIndentLines",
        "ViewNavigationBar", "ViewStatusBar", "ViewToolBar",
        "EditorSelectWord", "EditorUnSelectWord", "$SelectAll",
    }
)

TOOL_WINDOW_COMMANDS = frozenset(
    {
        "ActivateProjectToolWindow", "ActivateStructureToolWindow",
        "ActivateFavoritesToolWindow", "ActivateVersionControlToolWindow",
        "ActivateTerminalToolWindow", "ActivateDebugToolWindow",
        "ActivateRunToolWindow", "ActivateTODOToolWindow",
        "ActivateProblemsViewToolWindow", "ActivateFindToolWindow",
        "ActivateServicesToolWindow", "ActivateBuildToolWindow",
        "MaximizeToolWindow", "HideActiveWindow", "HideAllWindows",
        "JumpToLastWindow", "StretchWindowToLeft", "StretchWindowToRight",
    }
)

TREE_LIST_COMMANDS = frozenset(
    {
        "Tree-selectFirst", "Tree-selectLast", "Tree-selectNext", "Tree-selectPrevious",
        "Tree-selectParent", "Tree-selectChild",
        "List-selectFirstRow", "List-selectLastRow", "List-selectNextRow",
        "List-selectPreviousRow",
        "$Delete",
    }
)

ASYNC_TRIGGER_COMMANDS = frozenset(
    {
        "CompileDirty", "CompileProject", "BuildProject", "RebuildProject",
        "MakeModule", "Compile", "GenerateSources",
        "Run", "Debug", "RunClass", "DebugClass", "RunConfiguration",
        "ChooseRunConfiguration", "ChooseDebugConfiguration",
        "Git.Pull", "Git.Push", "Git.Fetch", "Git.Merge", "Git.Rebase",
        "Svn.Update", "Svn.Commit", "Hg.Pull", "Hg.Push",
        "Synchronize", "Refresh", "RefreshLinkedCppProjects",
        "Maven.Reimport", "Gradle.RefreshDependencies",
        "ExternalSystem.RefreshAllProjects", "ExternalSystem.ProjectRefreshAction",
    }
)

DIALOG_COMMANDS = frozenset(
    {
        "ShowSettings", "ShowProjectStructureSettings", "EditRunConfigurations",
        "CheckinProject", "Git.Branches", "Vcs.ShowHistoryForBlock",
        "Vcs.ShowTabbedFileHistory", "Vcs.ShowHistoryForRevision",
        "RefactoringMenu", "RenameElement", "Move", "ExtractMethod",
        "ExtractInterface", "ExtractSuperclass", "Inline", "ChangeSignature",
        "SearchEverywhere", "FindInPath", "ReplaceInPath", "StructuralSearchPlugin",
        "About", "NewElement", "NewProject", "OpenFile", "OpenProject",
        "PrintExportToHTML", "ExportSettings", "ImportSettings",
    }
)

EDITOR_PREFIX = "Editor"
ASYNC_RUN_MARKERS = ("Run", "Debug")
ASYNC_MARKERS = ("Build", "Compile", "Make", "Refresh", "Synchronize", "Index")

Rule = Callable[[str], bool]


def _in(names: frozenset[str]) -> Rule:
    return lambda command_id: command_id in names


def _is_dialog(command_id: str) -> bool:
    return (
        ("Show" in command_id and "Settings" in command_id)
        or ("Show" in command_id and "Dialog" in command_id)
        or "Refactor" in command_id
        or command_id.endswith("InPath")
    )


def _is_editor_instant(command_id: str) -> bool:
    return (
        command_id.startswith(EDITOR_PREFIX)
        and "Split" not in command_id
        and "Toggle" not in command_id
        and command_id not in QUICK_UI_COMMANDS
    )


def _is_tool_window(command_id: str) -> bool:
    return command_id.startswith("Activate") and command_id.endswith("ToolWindow")


def _is_tree_or_list(command_id: str) -> bool:
    return command_id.startswith(("Tree-", "List-"))


def _triggers_async(command_id: str) -> bool:
    if "Configuration" not in command_id and any(
        marker in command_id for marker in ASYNC_RUN_MARKERS
    ):
        return True
    return any(marker in command_id for marker in ASYNC_MARKERS)


CLASSIFICATION_RULES: list[tuple[Rule, TimingCategory]] = [
    (_in(DIALOG_COMMANDS), TimingCategory.DIALOG),
    (_is_dialog, TimingCategory.DIALOG),
    (_in(INSTANT_COMMANDS), TimingCategory.INSTANT),
    (_is_editor_instant, TimingCategory.INSTANT),
    (_in(QUICK_UI_COMMANDS), TimingCategory.QUICK_UI),
    (_in(TOOL_WINDOW_COMMANDS), TimingCategory.TOOL_WINDOW),
    (_is_tool_window, TimingCategory.TOOL_WINDOW),
    (_in(TREE_LIST_COMMANDS), TimingCategory.TREE_LIST),
    (_is_tree_or_list, TimingCategory.TREE_LIST),
    (_in(ASYNC_TRIGGER_COMMANDS), TimingCategory.ASYNC_TRIGGER),
    (_triggers_async, TimingCategory.ASYNC_TRIGGER),
]

# (predicate, description); first match wins.
DESCRIPTION_RULES: list[tuple[Rule, str]] = [
    (lambda c: c == "SaveAll", "Save all modified files"),
    (lambda c: c == "ReformatCode", "Reformat current file according to code style"),
    (lambda c: c == "OptimizeImports", "Remove unused imports and organize them"),
    (lambda c: c.startswith("Git."), "Git version control operation"),
    (lambda c: c.startswith("Run"), "Run or execute operation"),
    (lambda c: c.startswith("Debug"), "Debug operation"),
    (lambda c: "Copy" in c, "Copy operation"),
    (lambda c: "Paste" in c, "Paste operation"),
    (_is_tool_window, "Activate tool window"),
    (lambda c: c.startswith("Tree-"), "Tree navigation action"),
]
DEFAULT_DESCRIPTION = "IDE action"

PROJECT_FREE_COMMANDS = frozenset({"About", "ShowSettings"})


def known_command_ids() -> list[str]:
    """All ids named by the classification sets, sorted."""
    return sorted(
        INSTANT_COMMANDS
        | QUICK_UI_COMMANDS
        | TOOL_WINDOW_COMMANDS
        | TREE_LIST_COMMANDS
        | ASYNC_TRIGGER_COMMANDS
        | DIALOG_COMMANDS
    )


class CommandClassifier:
    """Stateless mapping from command id to timing category and delay."""

    def __init__(self, rules: list[tuple[Rule, TimingCategory]] | None = None) -> None:
        self.rules = rules if rules is not None else CLASSIFICATION_RULES

    def classify(self, command_id: str) -> TimingCategory:
        for matches, category in self.rules:
            if matches(command_id):
                return category
        return TimingCategory.UNKNOWN

    def settle_delay(self, command_id: str) -> int:
        """Delay the command needs before a following, non-instant command."""
        return CATEGORY_DELAYS[self.classify(command_id)]

    def delay(self, current_id: str, next_id: str | None) -> int:
        """Smart delay in milliseconds between two consecutive chain commands."""
        current = self.classify(current_id)
        if next_id is None or current is TimingCategory.DIALOG:
            return DELAY_NONE
        if current is TimingCategory.INSTANT and self.classify(next_id) is TimingCategory.INSTANT:
            logger.debug("No delay between instant commands: %s -> %s", current_id, next_id)
            return DELAY_NONE
        delay = CATEGORY_DELAYS[current]
        logger.debug("%s delay %dms for: %s", current.value, delay, current_id)
        return delay

    def is_dialog(self, command_id: str) -> bool:
        return self.classify(command_id) is TimingCategory.DIALOG

    def is_instant(self, command_id: str) -> bool:
        return self.classify(command_id) is TimingCategory.INSTANT

    def requirements(self, command_id: str) -> CommandRequirements:
        return CommandRequirements(
            needs_editor=needs_editor(command_id),
            needs_file=needs_file_selection(command_id),
            needs_project=command_id not in PROJECT_FREE_COMMANDS,
            needs_git=command_id.startswith(("Git.", "Vcs.")),
            needs_build_system=any(
                marker in command_id for marker in ("Build", "Compile", "Make", "Run")
            ),
        )

    def describe(self, command_id: str) -> str:
        for matches, description in DESCRIPTION_RULES:
            if matches(command_id):
                return description
        return DEFAULT_DESCRIPTION


def needs_editor(command_id: str) -> bool:
    return command_id.startswith(EDITOR_PREFIX) or any(
        marker in command_id for marker in ("Reformat", "Optimize", "Comment")
    )


def needs_file_selection(command_id: str) -> bool:
    return any(marker in command_id for marker in ("Copy", "Move", "Delete", "Rename"))
