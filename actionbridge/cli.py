from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from actionbridge.classifier import CommandClassifier
from actionbridge.config import Settings
from actionbridge.storage import HistoryStore

app = typer.Typer(help="Action Bridge CLI")
console = Console()

DataDirOption = Annotated[
    Path | None, typer.Option("--data-dir", "-d", help="Directory holding history and stats")
]


@app.callback()
def main(
    log_level: Annotated[str, typer.Option("--log-level", help="Logging level")] = "INFO",
) -> None:
    """Run IDE command actions over a local HTTP bridge."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"unknown log level: {log_level}")
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _settings(data_dir: Path | None) -> Settings:
    settings = Settings.from_env()
    if data_dir is not None:
        settings.data_dir = data_dir
    return settings


def _store(data_dir: Path | None) -> HistoryStore:
    settings = _settings(data_dir)
    store = HistoryStore(settings.history_file, settings.stats_file, max_entries=settings.max_history)
    store.load()
    return store


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Listen address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Listen port")] = None,
    commands: Annotated[
        Path | None, typer.Option("--commands", "-c", help="JSON list of command ids to expose")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Start the local HTTP bridge with a standalone command registry."""
    import uvicorn

    from actionbridge.bridge import build_bridge
    from actionbridge.server import create_app

    settings = _settings(data_dir)
    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port
    if commands is not None:
        if not commands.exists():
            raise typer.BadParameter(f"commands file not found: {commands}")
        settings.commands_file = commands

    bridge = build_bridge(settings)
    uvicorn.run(create_app(bridge), host=settings.host, port=settings.port, log_level="info")


@app.command()
def classify(
    command_ids: Annotated[list[str], typer.Argument(help="Command ids in chain order")],
) -> None:
    """Show timing category and smart delays for a chain of commands."""
    classifier = CommandClassifier()
    table = Table(title="Command Timing")
    for column in ["command", "category", "settle_ms", "delay_before_next_ms"]:
        table.add_column(column)

    for index, command_id in enumerate(command_ids):
        next_id = command_ids[index + 1] if index + 1 < len(command_ids) else None
        table.add_row(
            command_id,
            classifier.classify(command_id).value,
            str(classifier.settle_delay(command_id)),
            str(classifier.delay(command_id, next_id)),
        )
    console.print(table)


@app.command()
def history(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of entries")] = 50,
    data_dir: DataDirOption = None,
) -> None:
    """List recent executions, newest first."""
    store = _store(data_dir)
    table = Table(title="Execution History")
    for column in ["timestamp", "command", "success", "time_ms", "error_kind", "chained_with"]:
        table.add_column(column)

    for entry in store.recent_history(limit):
        table.add_row(
            entry.timestamp,
            entry.command_id,
            str(entry.success),
            str(entry.execution_time_ms),
            "" if entry.error_kind is None else entry.error_kind.value,
            ",".join(entry.chained_with or []),
        )
    console.print(table)


@app.command()
def stats(
    action: Annotated[str | None, typer.Option("--action", "-a", help="Single command id")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of commands")] = 20,
    data_dir: DataDirOption = None,
) -> None:
    """Show per-command statistics."""
    store = _store(data_dir)
    if action is not None:
        found = store.stats_for(action)
        if found is None:
            console.print(f"No statistics available for action: {action}")
            raise typer.Exit(code=1)
        rows = [found]
    else:
        rows = store.top_commands(limit)

    table = Table(title="Command Statistics")
    for column in ["command", "executions", "successes", "failures", "avg_ms", "last_used"]:
        table.add_column(column)
    for item in rows:
        table.add_row(
            item.command_id,
            str(item.execution_count),
            str(item.success_count),
            str(item.failure_count),
            str(item.average_time_ms),
            item.last_used,
        )
    console.print(table)


@app.command()
def suggestions(data_dir: DataDirOption = None) -> None:
    """Print usage suggestions derived from history."""
    store = _store(data_dir)
    items = store.suggestions()
    if not items:
        console.print("No suggestions yet.")
        return
    for item in items:
        console.print(f"- {item}")


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    data_dir: DataDirOption = None,
) -> None:
    """Erase history and statistics."""
    if not yes:
        typer.confirm("Erase all history and statistics?", abort=True)
    store = _store(data_dir)
    store.clear()
    console.print(f"Cleared history in {store.history_path.parent}")


if __name__ == "__main__":
    app()
