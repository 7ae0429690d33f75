"""Interfaces to the host IDE plus in-process reference implementations.

The bridge never talks to a concrete IDE directly. It needs a command registry,
a live UI context and a single UI-affinity thread on which every invocation and
every UI query runs. `InMemoryRegistry` and `StaticHostContext` implement the
first two for the standalone server and for tests.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict

from actionbridge.utils import read_json

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataContext(BaseModel):
    """Snapshot of the UI context a single invocation runs against."""

    model_config = ConfigDict(frozen=True)

    has_project: bool = False
    has_editor: bool = False
    has_file: bool = False
    has_file_selection: bool = False
    focused_tool_window: str | None = None


class OpenFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    extension: str | None = None
    file_type: str | None = None
    default_extension: str | None = None


@runtime_checkable
class CommandRegistry(Protocol):
    """Lookup from command id to an invocable host handler."""

    def exists(self, command_id: str) -> bool:
        ...

    def is_enabled(self, command_id: str, context: DataContext) -> bool:
        ...

    def invoke(self, command_id: str, context: DataContext) -> None:
        """Perform the command; raise on failure."""
        ...

    def list_ids(self) -> list[str]:
        ...


@runtime_checkable
class HostContext(Protocol):
    """Live UI and editor state of the host."""

    def data_context(self) -> DataContext:
        ...

    def has_project(self) -> bool:
        ...

    def has_open_editor(self) -> bool:
        ...

    def has_open_file(self) -> bool:
        ...

    def has_unsaved_changes(self) -> bool:
        ...

    def has_errors(self) -> bool:
        ...

    def has_selection(self) -> bool:
        ...

    def is_indexing(self) -> bool:
        ...

    def is_editor_focused(self) -> bool:
        ...

    def is_ide_focused(self) -> bool:
        ...

    def focused_tool_window(self) -> str | None:
        ...

    def focused_file_name(self) -> str | None:
        ...

    def current_file(self) -> OpenFile | None:
        ...

    def has_vcs(self) -> bool:
        ...

    def is_tool_window_visible(self, tool_window_id: str) -> bool:
        ...

    def is_tool_window_active(self, tool_window_id: str) -> bool:
        ...

    def tool_windows(self) -> dict[str, dict[str, bool]]:
        ...


class UIThread:
    """Single dispatch thread that owns every host invocation."""

    def __init__(self, name: str = "ui-dispatch") -> None:
        self._local = threading.local()
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=name,
            initializer=self._mark_dispatch_thread,
        )

    def _mark_dispatch_thread(self) -> None:
        self._local.is_dispatch = True

    def is_dispatch_thread(self) -> bool:
        return getattr(self._local, "is_dispatch", False)

    def invoke_later(self, fn: Callable[[], T]) -> Future[T]:
        """Queue `fn` on the UI thread and return without waiting."""
        return self._executor.submit(fn)

    def invoke_and_wait(self, fn: Callable[[], T]) -> T:
        """Run `fn` on the UI thread and block until it returns or raises."""
        if self.is_dispatch_thread():
            return fn()
        return self._executor.submit(fn).result()

    def flush(self) -> None:
        """Wait until everything queued so far has run."""
        self.invoke_and_wait(lambda: None)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


Handler = Callable[[DataContext], None]
EnabledCheck = Callable[[DataContext], bool]


def _noop(context: DataContext) -> None:
    return None


def _always(context: DataContext) -> bool:
    return True


@dataclass
class RegisteredCommand:
    handler: Handler = _noop
    enabled: EnabledCheck = _always


class InMemoryRegistry:
    """Dictionary-backed command registry."""

    def __init__(self) -> None:
        self._commands: dict[str, RegisteredCommand] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_ids(cls, command_ids: Iterable[str]) -> InMemoryRegistry:
        registry = cls()
        for command_id in command_ids:
            registry.register(command_id)
        return registry

    @classmethod
    def from_file(cls, path: Path) -> InMemoryRegistry:
        """Build a registry of no-op commands from a JSON list of ids."""
        payload = read_json(path)
        if not isinstance(payload, list):
            raise ValueError(f"{path} must contain a JSON list of command ids")
        return cls.from_ids(str(command_id) for command_id in payload)

    def register(
        self,
        command_id: str,
        handler: Handler | None = None,
        enabled: EnabledCheck | None = None,
    ) -> None:
        with self._lock:
            self._commands[command_id] = RegisteredCommand(
                handler=handler or _noop,
                enabled=enabled or _always,
            )

    def exists(self, command_id: str) -> bool:
        return command_id in self._commands

    def is_enabled(self, command_id: str, context: DataContext) -> bool:
        command = self._commands.get(command_id)
        return command is not None and command.enabled(context)

    def invoke(self, command_id: str, context: DataContext) -> None:
        command = self._commands.get(command_id)
        if command is None:
            raise KeyError(command_id)
        command.handler(context)

    def list_ids(self) -> list[str]:
        return sorted(self._commands)


@dataclass
class StaticHostContext:
    """Host UI state held as plain attributes."""

    project_open: bool = True
    editor_open: bool = False
    open_file: OpenFile | None = None
    file_selection: list[str] = field(default_factory=list)
    unsaved_changes: bool = False
    errors: bool = False
    selection: bool = False
    indexing: bool = False
    editor_focused: bool = False
    ide_focused: bool = True
    focused_window: str | None = None
    vcs: bool = False
    visible_windows: set[str] = field(default_factory=set)
    active_windows: set[str] = field(default_factory=set)
    available_windows: set[str] = field(
        default_factory=lambda: {"Project", "Structure", "Terminal", "Run", "Debug"}
    )

    def data_context(self) -> DataContext:
        return DataContext(
            has_project=self.project_open,
            has_editor=self.project_open and self.editor_open,
            has_file=self.project_open and self.open_file is not None,
            has_file_selection=self.project_open and bool(self.file_selection),
            focused_tool_window=self.focused_window if self.project_open else None,
        )

    def has_project(self) -> bool:
        return self.project_open

    def has_open_editor(self) -> bool:
        return self.editor_open

    def has_open_file(self) -> bool:
        return self.open_file is not None

    def has_unsaved_changes(self) -> bool:
        return self.unsaved_changes

    def has_errors(self) -> bool:
        return self.errors

    def has_selection(self) -> bool:
        return self.selection

    def is_indexing(self) -> bool:
        return self.indexing

    def is_editor_focused(self) -> bool:
        return self.editor_focused

    def is_ide_focused(self) -> bool:
        return self.ide_focused

    def focused_tool_window(self) -> str | None:
        return self.focused_window

    def focused_file_name(self) -> str | None:
        if not self.editor_focused or self.open_file is None:
            return None
        return self.open_file.name

    def current_file(self) -> OpenFile | None:
        return self.open_file

    def has_vcs(self) -> bool:
        return self.vcs

    def is_tool_window_visible(self, tool_window_id: str) -> bool:
        return tool_window_id in self.visible_windows

    def is_tool_window_active(self, tool_window_id: str) -> bool:
        return tool_window_id in self.active_windows

    def tool_windows(self) -> dict[str, dict[str, bool]]:
        if not self.project_open:
            return {}
        names = self.available_windows | self.visible_windows | self.active_windows
        return {
            name: {
                "visible": name in self.visible_windows,
                "active": name in self.active_windows,
                "available": name in self.available_windows,
            }
            for name in sorted(names)
        }
