from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from actionbridge.cli import app
from actionbridge.storage import HistoryStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("actionbridge.cli.console", Console(width=200))


def _seed(data_dir: Path) -> None:
    store = HistoryStore(data_dir / "history.json", data_dir / "stats.json")
    store.record("SaveAll", True, 5, chained_with=["ReformatCode"])
    store.record("ReformatCode", False, 7)
    store.persist()


def test_classify() -> None:
    result = runner.invoke(app, ["classify", "SaveAll", "CompileProject"])

    assert result.exit_code == 0
    assert "instant" in result.output
    assert "async" in result.output


def test_history_and_stats(tmp_path: Path) -> None:
    _seed(tmp_path)

    history = runner.invoke(app, ["history", "--data-dir", str(tmp_path)])
    stats = runner.invoke(app, ["stats", "--data-dir", str(tmp_path)])

    assert history.exit_code == 0
    assert "ReformatCode" in history.output
    assert stats.exit_code == 0
    assert "SaveAll" in stats.output


def test_stats_for_unknown_action_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["stats", "--action", "Nope", "--data-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "No statistics available for action: Nope" in result.output


def test_clear_with_confirmation_flag(tmp_path: Path) -> None:
    _seed(tmp_path)

    result = runner.invoke(app, ["clear", "--yes", "--data-dir", str(tmp_path)])

    assert result.exit_code == 0
    store = HistoryStore(tmp_path / "history.json", tmp_path / "stats.json")
    store.load()
    assert store.recent_history(10) == []


def test_clear_aborts_without_confirmation(tmp_path: Path) -> None:
    _seed(tmp_path)

    result = runner.invoke(app, ["clear", "--data-dir", str(tmp_path)], input="n\n")

    assert result.exit_code == 1
    assert (tmp_path / "history.json").read_text() != "[]"
