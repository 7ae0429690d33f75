from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from actionbridge.models.enums import ErrorKind

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ExecutionResult(BaseModel):
    """Outcome of a single command invocation."""

    model_config = ConfigDict(**_WIRE, frozen=True)

    command_id: str
    success: bool
    message: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    suggestion: str | None = None
    required_context: list[str] | None = None


class ConditionalResult(BaseModel):
    """Outcome of an if/then/else or OR-chain evaluation."""

    model_config = _WIRE

    success: bool
    executed_commands: list[str] = Field(default_factory=list)
    message: str | None = None
    error: str | None = None
    condition_met: bool | None = None


class HistoryEntry(BaseModel):
    """One completed invocation as kept in the history log."""

    model_config = ConfigDict(**_WIRE, frozen=True)

    command_id: str
    timestamp: str
    success: bool
    execution_time_ms: int
    error_kind: ErrorKind | None = None
    chained_with: list[str] | None = None


class CommandStats(BaseModel):
    """Aggregated statistics for one command id."""

    model_config = _WIRE

    command_id: str
    execution_count: int
    success_count: int
    failure_count: int
    average_time_ms: int
    last_used: str
    commonly_chained_with: dict[str, int] = Field(default_factory=dict)


class UsagePattern(BaseModel):
    model_config = _WIRE

    sequence: list[str]
    frequency: int
    average_time_ms: int
    suggestion: str | None = None


class CommandRequirements(BaseModel):
    """Context a command is expected to need, inferred from its id."""

    model_config = _WIRE

    needs_editor: bool
    needs_file: bool
    needs_project: bool
    needs_git: bool
    needs_build_system: bool


def dump(model: BaseModel) -> dict:
    """Serialize a model the way it goes over the wire and to disk."""
    return model.model_dump(mode="json", by_alias=True)
