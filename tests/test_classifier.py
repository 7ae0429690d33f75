from __future__ import annotations

import pytest

from actionbridge.classifier import DIALOG_COMMANDS, CommandClassifier
from actionbridge.models.enums import TimingCategory

classifier = CommandClassifier()


@pytest.mark.parametrize(
    ("command_id", "category", "settle_ms"),
    [
        ("SaveAll", TimingCategory.INSTANT, 0),
        ("CompileProject", TimingCategory.ASYNC_TRIGGER, 500),
        ("RenameElement", TimingCategory.DIALOG, 0),
        ("ActivateTerminalToolWindow", TimingCategory.TOOL_WINDOW, 100),
        ("ReformatCode", TimingCategory.QUICK_UI, 50),
        ("Tree-selectNext", TimingCategory.TREE_LIST, 150),
        ("SomethingPlain", TimingCategory.UNKNOWN, 50),
    ],
)
def test_classify_known_scenarios(command_id: str, category: TimingCategory, settle_ms: int) -> None:
    assert classifier.classify(command_id) is category
    assert classifier.settle_delay(command_id) == settle_ms


def test_heuristics_follow_rule_precedence() -> None:
    assert classifier.classify("ShowProjectSettings") is TimingCategory.DIALOG
    assert classifier.classify("ShowDiffDialog") is TimingCategory.DIALOG
    assert classifier.classify("RefactorThis") is TimingCategory.DIALOG
    assert classifier.classify("ReplaceInPath") is TimingCategory.DIALOG
    assert classifier.classify("EditorDuplicate") is TimingCategory.INSTANT
    assert classifier.classify("EditorSplitLine") is not TimingCategory.INSTANT
    assert classifier.classify("EditorToggleCase") is not TimingCategory.INSTANT
    assert classifier.classify("EditorToggleUseSoftWraps") is TimingCategory.QUICK_UI
    assert classifier.classify("ActivateDatabaseToolWindow") is TimingCategory.TOOL_WINDOW
    assert classifier.classify("List-scrollDown") is TimingCategory.TREE_LIST
    assert classifier.classify("RunTests") is TimingCategory.ASYNC_TRIGGER
    assert classifier.classify("EditConfigurationRunner") is TimingCategory.UNKNOWN
    assert classifier.classify("ReindexAll") is TimingCategory.UNKNOWN
    assert classifier.classify("RebuildIndex") is TimingCategory.ASYNC_TRIGGER


def test_named_set_wins_over_heuristics() -> None:
    # "ChooseRunConfiguration" contains Configuration but is listed as async.
    assert classifier.classify("ChooseRunConfiguration") is TimingCategory.ASYNC_TRIGGER
    # listed as instant even though it starts with Show
    assert classifier.classify("ShowUsages") is TimingCategory.INSTANT


@pytest.mark.parametrize("command_id", sorted(DIALOG_COMMANDS))
def test_dialog_commands_never_wait(command_id: str) -> None:
    assert classifier.delay(command_id, "ReformatCode") == 0
    assert classifier.delay(command_id, "CompileProject") == 0


@pytest.mark.parametrize("command_id", ["SaveAll", "CompileProject", "ReformatCode", "Nope"])
def test_last_command_has_no_delay(command_id: str) -> None:
    assert classifier.delay(command_id, None) == 0


def test_instant_pair_has_no_delay() -> None:
    assert classifier.delay("SaveAll", "EditorLineEnd") == 0
    assert classifier.delay("EditorLeft", "$Copy") == 0


def test_delay_uses_current_category() -> None:
    assert classifier.delay("CompileProject", "SaveAll") == 500
    assert classifier.delay("ActivateTerminalToolWindow", "SaveAll") == 100
    assert classifier.delay("Tree-selectFirst", "SaveAll") == 150
    assert classifier.delay("ReformatCode", "SaveAll") == 50
    assert classifier.delay("UnclassifiedThing", "SaveAll") == 50


def test_save_then_reformat_resolves_to_instant_delay() -> None:
    # SaveAll is instant, so its own category delay of 0 applies.
    assert classifier.delay("SaveAll", "ReformatCode") == 0


def test_requirements_and_description() -> None:
    requirements = classifier.requirements("ReformatCode")
    assert requirements.needs_editor is True
    assert requirements.needs_file is False
    assert requirements.needs_project is True
    assert classifier.requirements("Git.Pull").needs_git is True
    assert classifier.requirements("About").needs_project is False
    assert classifier.requirements("BuildProject").needs_build_system is True

    assert classifier.describe("SaveAll") == "Save all modified files"
    assert classifier.describe("Git.Fetch") == "Git version control operation"
    assert classifier.describe("ActivateRunToolWindow") == "Activate tool window"
    assert classifier.describe("Whatever") == "IDE action"
