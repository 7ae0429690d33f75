from __future__ import annotations

from enum import Enum


class TimingCategory(str, Enum):
    INSTANT = "instant"
    QUICK_UI = "quick-ui"
    TOOL_WINDOW = "tool-window"
    TREE_LIST = "tree-list"
    ASYNC_TRIGGER = "async"
    DIALOG = "dialog"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    MISSING_CONTEXT = "missing_context"
    DISABLED = "disabled"
    PROJECT_REQUIRED = "project_required"
    EDITOR_REQUIRED = "editor_required"
    FILE_REQUIRED = "file_required"
    REPOSITORY_REQUIRED = "repository_required"
    BUILD_SYSTEM_REQUIRED = "build_system_required"
    UNKNOWN = "unknown"
