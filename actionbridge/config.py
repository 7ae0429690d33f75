"""
Runtime configuration for the action bridge.

Environment Variables:
    ACTIONBRIDGE_HOST: listener address (default: 127.0.0.1)
    ACTIONBRIDGE_PORT: listener port (default: 63343)
    ACTIONBRIDGE_DATA_DIR: directory holding history.json and stats.json
        (default: ~/.actionbridge)
    ACTIONBRIDGE_PERSIST_INTERVAL: seconds between history snapshots (default: 30)
    ACTIONBRIDGE_COMMANDS_FILE: JSON list of command ids for the standalone registry
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from actionbridge.storage import MAX_HISTORY_ENTRIES, PERSIST_INTERVAL_S

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 63343
DEFAULT_DATA_DIR = Path.home() / ".actionbridge"


@dataclass
class Settings:
    """Configuration for the server, the store and the standalone host."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    persist_interval_s: float = PERSIST_INTERVAL_S
    max_history: int = MAX_HISTORY_ENTRIES
    commands_file: Path | None = None

    @property
    def history_file(self) -> Path:
        return self.data_dir / "history.json"

    @property
    def stats_file(self) -> Path:
        return self.data_dir / "stats.json"

    @classmethod
    def from_env(cls) -> Settings:
        """Create settings from environment variables."""
        settings = cls()

        if host := os.environ.get("ACTIONBRIDGE_HOST"):
            settings.host = host
        if port := os.environ.get("ACTIONBRIDGE_PORT"):
            settings.port = _parse(port, int, settings.port, "ACTIONBRIDGE_PORT")
        if data_dir := os.environ.get("ACTIONBRIDGE_DATA_DIR"):
            settings.data_dir = Path(data_dir).expanduser()
        if interval := os.environ.get("ACTIONBRIDGE_PERSIST_INTERVAL"):
            settings.persist_interval_s = _parse(
                interval, float, settings.persist_interval_s, "ACTIONBRIDGE_PERSIST_INTERVAL"
            )
        if commands_file := os.environ.get("ACTIONBRIDGE_COMMANDS_FILE"):
            settings.commands_file = Path(commands_file).expanduser()

        return settings


def _parse(raw: str, kind: Callable[[str], T], default: T, name: str) -> T:
    try:
        return kind(raw)
    except ValueError:
        logger.warning("Invalid %s '%s', keeping %s", name, raw, default)
        return default
