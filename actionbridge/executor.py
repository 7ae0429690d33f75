"""Single-command invocation and chain sequencing against the host registry."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from actionbridge.classifier import CommandClassifier, needs_editor, needs_file_selection
from actionbridge.host import CommandRegistry, DataContext, HostContext, UIThread
from actionbridge.models.enums import ErrorKind
from actionbridge.types import ExecutionResult
from actionbridge.utils import monotonic_ms

logger = logging.getLogger(__name__)

SMART_DELAY = -1

TRIGGERED_MESSAGE = "Command triggered successfully"
ACCEPTED_MESSAGE = "Command accepted for execution"


class ExecutionRecorder(Protocol):
    def record(
        self,
        command_id: str,
        success: bool,
        elapsed_ms: int,
        error_kind: ErrorKind | None = None,
        chained_with: list[str] | None = None,
    ) -> None:
        ...


@dataclass(frozen=True)
class DisabledReason:
    error_kind: ErrorKind
    suggestion: str
    required_context: list[str]


Diagnosis = Callable[[str, DataContext], "DisabledReason | None"]


def _editor_required(command_id: str, context: DataContext) -> DisabledReason | None:
    if context.has_editor:
        return None
    return DisabledReason(
        ErrorKind.EDITOR_REQUIRED,
        "Open a file in the editor first, then try again.",
        ["Editor"],
    )


def _file_required(command_id: str, context: DataContext) -> DisabledReason | None:
    if context.has_file or context.has_file_selection:
        return None
    return DisabledReason(
        ErrorKind.FILE_REQUIRED,
        "Select a file in the Project view or open one in the editor.",
        ["File selection"],
    )


def _repository_required(command_id: str, context: DataContext) -> DisabledReason | None:
    return DisabledReason(
        ErrorKind.REPOSITORY_REQUIRED,
        "Command requires a Git repository. Ensure your project is under version control.",
        ["Git repository"],
    )


def _build_system_required(command_id: str, context: DataContext) -> DisabledReason | None:
    return DisabledReason(
        ErrorKind.BUILD_SYSTEM_REQUIRED,
        "Configure your build system (Maven/Gradle) or run configuration first.",
        ["Build configuration"],
    )


def _tree_focus_required(command_id: str, context: DataContext) -> DisabledReason | None:
    return DisabledReason(
        ErrorKind.MISSING_CONTEXT,
        "Focus on a tree or list component first (e.g., Project view, Structure view).",
        ["Tree/List focus"],
    )


def _is_vcs_command(command_id: str) -> bool:
    return command_id.startswith(("Git.", "Vcs.")) or any(
        marker in command_id for marker in ("Commit", "Push", "Pull")
    )


def _is_build_command(command_id: str) -> bool:
    return any(marker in command_id for marker in ("Build", "Compile", "Make", "Run", "Debug"))


def _is_tree_command(command_id: str) -> bool:
    return command_id.startswith(("Tree-", "List-"))


# First matching pattern decides; a diagnosis returning None means the
# context it checks is present and the generic reason applies.
DISABLED_RULES: list[tuple[Callable[[str], bool], Diagnosis]] = [
    (needs_editor, _editor_required),
    (needs_file_selection, _file_required),
    (_is_vcs_command, _repository_required),
    (_is_build_command, _build_system_required),
    (_is_tree_command, _tree_focus_required),
]


def diagnose_disabled(command_id: str, context: DataContext) -> DisabledReason:
    """Explain why a command is disabled in `context`."""
    if not context.has_project:
        return DisabledReason(
            ErrorKind.PROJECT_REQUIRED,
            "No project is open. Open a project in the IDE first.",
            ["Project"],
        )
    for matches, diagnosis in DISABLED_RULES:
        if matches(command_id):
            reason = diagnosis(command_id, context)
            if reason is not None:
                return reason
            break
    return DisabledReason(
        ErrorKind.MISSING_CONTEXT,
        f"Command '{command_id}' requires specific context. Try: 1) Open a file, "
        "2) Select items in Project view, 3) Focus on the appropriate tool window.",
        ["Appropriate context"],
    )


class ExecutionEngine:
    """Invokes host commands on the UI thread and sequences chains of them."""

    def __init__(
        self,
        registry: CommandRegistry,
        context: HostContext,
        ui: UIThread,
        classifier: CommandClassifier | None = None,
        recorder: ExecutionRecorder | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.registry = registry
        self.context = context
        self.ui = ui
        self.classifier = classifier or CommandClassifier()
        self.recorder = recorder
        self.sleep = sleep

    def execute(self, command_id: str) -> ExecutionResult:
        """Post the command to the UI thread and return once it is accepted."""
        return self._post(command_id, None)

    def _post(self, command_id: str, chained_with: list[str] | None) -> ExecutionResult:
        if not self.registry.exists(command_id):
            result = _not_found(command_id)
            self._record(result, 0, chained_with)
            return result

        def run() -> ExecutionResult:
            started = monotonic_ms()
            result = self._invoke(command_id)
            self._record(result, monotonic_ms() - started, chained_with)
            return result

        self.ui.invoke_later(run)
        return ExecutionResult(command_id=command_id, success=True, message=ACCEPTED_MESSAGE)

    def execute_and_wait(
        self, command_id: str, chained_with: list[str] | None = None
    ) -> ExecutionResult:
        """Invoke the command and block until its handler returns.

        Dialog commands are still posted asynchronously so the caller never
        waits on a modal surface.
        """
        if self.classifier.is_dialog(command_id):
            logger.info("Posting dialog command asynchronously: %s", command_id)
            return self._post(command_id, chained_with)

        started = monotonic_ms()
        if not self.registry.exists(command_id):
            result = _not_found(command_id)
        else:
            try:
                result = self.ui.invoke_and_wait(lambda: self._invoke(command_id))
            except Exception as exc:
                logger.exception("Failed to dispatch command: %s", command_id)
                result = _unknown_error(command_id, exc)
        self._record(result, monotonic_ms() - started, chained_with)
        return result

    def execute_chain(
        self,
        command_ids: list[str],
        delay_ms: int = SMART_DELAY,
        *,
        force: bool = False,
    ) -> list[ExecutionResult]:
        """Run commands in order, stopping at the first failure unless forced.

        A negative `delay_ms` selects the classifier's smart delay between
        each pair of commands.
        """
        results: list[ExecutionResult] = []
        smart = delay_ms < 0
        last = len(command_ids) - 1

        for index, command_id in enumerate(command_ids):
            logger.info("Executing command %d/%d: %s", index + 1, len(command_ids), command_id)
            following = command_ids[index + 1:] or None
            result = self.execute_and_wait(command_id, chained_with=following)
            results.append(result)

            if not result.success:
                if not force:
                    logger.warning(
                        "Stopping chain at failing command '%s': %s", command_id, result.error
                    )
                    break
                logger.info("Command failed but chain is forced to continue: %s", command_id)
                continue

            if index < last:
                next_id = command_ids[index + 1]
                delay = self.classifier.delay(command_id, next_id) if smart else delay_ms
                if delay > 0:
                    logger.info("Delay %dms after '%s' before '%s'", delay, command_id, next_id)
                    self.sleep(delay / 1000)

        succeeded = sum(1 for result in results if result.success)
        logger.info("Chain completed. %d/%d succeeded", succeeded, len(command_ids))
        return results

    def _invoke(self, command_id: str) -> ExecutionResult:
        try:
            context = self.context.data_context()
            if not self.registry.is_enabled(command_id, context):
                logger.warning("Command is disabled: %s (%s)", command_id, context)
                reason = diagnose_disabled(command_id, context)
                return ExecutionResult(
                    command_id=command_id,
                    success=False,
                    error="Command is disabled in current context",
                    error_kind=reason.error_kind,
                    suggestion=reason.suggestion,
                    required_context=reason.required_context,
                )
            self.registry.invoke(command_id, context)
        except Exception as exc:
            logger.exception("Error executing command: %s", command_id)
            return _unknown_error(command_id, exc)
        return ExecutionResult(command_id=command_id, success=True, message=TRIGGERED_MESSAGE)

    def _record(
        self, result: ExecutionResult, elapsed_ms: int, chained_with: list[str] | None
    ) -> None:
        if self.recorder is None:
            return
        self.recorder.record(
            result.command_id,
            result.success,
            max(0, elapsed_ms),
            error_kind=result.error_kind,
            chained_with=chained_with,
        )


def _not_found(command_id: str) -> ExecutionResult:
    logger.warning("Command not found: %s", command_id)
    return ExecutionResult(
        command_id=command_id,
        success=False,
        error=f"Command not found: {command_id}",
        error_kind=ErrorKind.NOT_FOUND,
        suggestion=(
            "Check available commands with /list or search with "
            f"/search?q={command_id[:5]}"
        ),
    )


def _unknown_error(command_id: str, exc: Exception) -> ExecutionResult:
    return ExecutionResult(
        command_id=command_id,
        success=False,
        error=str(exc) or exc.__class__.__name__,
        error_kind=ErrorKind.UNKNOWN,
        suggestion="Check the IDE log for details. Restart the IDE if the problem persists.",
    )
