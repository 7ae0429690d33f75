from __future__ import annotations

import logging
from pathlib import Path

import pytest

from actionbridge.bridge import standalone_registry
from actionbridge.classifier import known_command_ids
from actionbridge.config import DEFAULT_PORT, Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ["HOST", "PORT", "DATA_DIR", "PERSIST_INTERVAL", "COMMANDS_FILE"]:
        monkeypatch.delenv(f"ACTIONBRIDGE_{name}", raising=False)

    settings = Settings.from_env()

    assert settings.host == "127.0.0.1"
    assert settings.port == DEFAULT_PORT
    assert settings.commands_file is None
    assert settings.history_file.name == "history.json"


def test_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ACTIONBRIDGE_PORT", "8123")
    monkeypatch.setenv("ACTIONBRIDGE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ACTIONBRIDGE_PERSIST_INTERVAL", "2.5")

    settings = Settings.from_env()

    assert settings.port == 8123
    assert settings.persist_interval_s == 2.5
    assert settings.stats_file == tmp_path / "stats.json"


def test_invalid_values_keep_defaults(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("ACTIONBRIDGE_PORT", "not-a-port")
    monkeypatch.setenv("ACTIONBRIDGE_PERSIST_INTERVAL", "soon")

    with caplog.at_level(logging.WARNING):
        settings = Settings.from_env()

    assert settings.port == DEFAULT_PORT
    assert settings.persist_interval_s == 30.0
    assert "Invalid ACTIONBRIDGE_PORT 'not-a-port', keeping 63343" in caplog.text


def test_standalone_registry_from_file(tmp_path: Path) -> None:
    commands = tmp_path / "commands.json"
    commands.write_text('["SaveAll", "Custom.Action"]')

    registry = standalone_registry(Settings(data_dir=tmp_path, commands_file=commands))

    assert registry.list_ids() == ["Custom.Action", "SaveAll"]


def test_standalone_registry_rejects_non_list(tmp_path: Path) -> None:
    commands = tmp_path / "commands.json"
    commands.write_text('{"SaveAll": true}')

    with pytest.raises(ValueError):
        standalone_registry(Settings(data_dir=tmp_path, commands_file=commands))


def test_standalone_registry_defaults_to_known_ids(tmp_path: Path) -> None:
    registry = standalone_registry(Settings(data_dir=tmp_path))
    assert registry.list_ids() == known_command_ids()
