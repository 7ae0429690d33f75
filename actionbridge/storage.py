from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from actionbridge.classifier import CommandClassifier
from actionbridge.models.enums import ErrorKind
from actionbridge.types import CommandStats, HistoryEntry, UsagePattern, dump
from actionbridge.utils import now_iso, read_json, write_json

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 1000
PERSIST_INTERVAL_S = 30.0
PATTERN_SEPARATOR = ","

ALIAS_MIN_FREQUENCY = 10
ALIAS_MIN_LENGTH = 3
SLOW_AVERAGE_MS = 1000
SLOW_MIN_EXECUTIONS = 5

_HISTORY_ADAPTER = TypeAdapter(list[HistoryEntry])
_STATS_ADAPTER = TypeAdapter(dict[str, CommandStats])


class HistoryStore:
    """Bounded execution history with per-command statistics and chain patterns.

    The store is the only writer of its three structures. Writes are serialized
    by one lock; reads copy without it and may observe a history trim that has
    not yet reached the statistics.
    """

    def __init__(
        self,
        history_path: Path,
        stats_path: Path,
        max_entries: int = MAX_HISTORY_ENTRIES,
        persist_interval_s: float = PERSIST_INTERVAL_S,
        classifier: CommandClassifier | None = None,
    ) -> None:
        self.history_path = history_path
        self.stats_path = stats_path
        self.max_entries = max_entries
        self.persist_interval_s = persist_interval_s
        self.classifier = classifier or CommandClassifier()
        self._history: deque[HistoryEntry] = deque(maxlen=max_entries)
        self._stats: dict[str, CommandStats] = {}
        self._patterns: Counter[str] = Counter()
        self._lock = threading.Lock()
        self._persist_lock = threading.Lock()
        self._stop = threading.Event()
        self._persister: threading.Thread | None = None

    def load(self) -> None:
        """Replace in-memory state with the persisted snapshot, if readable."""
        try:
            raw = read_json(self.history_path)
            if raw is not None:
                entries = _HISTORY_ADAPTER.validate_python(raw)
                with self._lock:
                    self._history.clear()
                    self._history.extend(entries[-self.max_entries:])
                logger.info("Loaded %d history entries", len(self._history))
        except (OSError, ValueError, ValidationError):
            logger.warning("Failed to load history from %s", self.history_path, exc_info=True)

        try:
            raw = read_json(self.stats_path)
            if raw is not None:
                stats = _STATS_ADAPTER.validate_python(raw)
                with self._lock:
                    self._stats = dict(stats)
                logger.info("Loaded statistics for %d commands", len(self._stats))
        except (OSError, ValueError, ValidationError):
            logger.warning("Failed to load stats from %s", self.stats_path, exc_info=True)

    def persist(self) -> None:
        """Rewrite both snapshot files in full, one writer at a time."""
        try:
            with self._persist_lock:
                with self._lock:
                    history = [dump(entry) for entry in self._history]
                    stats = {command_id: dump(item) for command_id, item in self._stats.items()}
                write_json(self.history_path, history)
                write_json(self.stats_path, stats)
            logger.debug("Persisted %d history entries and %d stats", len(history), len(stats))
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to persist history data")

    def start(self) -> None:
        """Start the periodic persister thread."""
        if self._persister is not None:
            return
        self._stop.clear()
        self._persister = threading.Thread(
            target=self._persist_loop, name="history-persister", daemon=True
        )
        self._persister.start()

    def stop(self) -> None:
        """Stop the persister and write a final snapshot."""
        self._stop.set()
        if self._persister is not None:
            self._persister.join()
            self._persister = None
        self.persist()

    def _persist_loop(self) -> None:
        while not self._stop.wait(self.persist_interval_s):
            self.persist()

    def record(
        self,
        command_id: str,
        success: bool,
        elapsed_ms: int,
        error_kind: ErrorKind | None = None,
        chained_with: list[str] | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            command_id=command_id,
            timestamp=now_iso(),
            success=success,
            execution_time_ms=elapsed_ms,
            error_kind=error_kind,
            chained_with=list(chained_with) if chained_with else None,
        )
        with self._lock:
            self._history.append(entry)
            self._update_stats(entry)
            if entry.chained_with:
                self._patterns[_pattern_key(entry)] += 1
        return entry

    def _update_stats(self, entry: HistoryEntry) -> None:
        current = self._stats.get(entry.command_id)
        chained = Counter(entry.chained_with or [])
        if current is None:
            self._stats[entry.command_id] = CommandStats(
                command_id=entry.command_id,
                execution_count=1,
                success_count=int(entry.success),
                failure_count=int(not entry.success),
                average_time_ms=entry.execution_time_ms,
                last_used=entry.timestamp,
                commonly_chained_with=dict(chained),
            )
            return

        count = current.execution_count
        merged = Counter(current.commonly_chained_with)
        merged.update(chained)
        self._stats[entry.command_id] = current.model_copy(
            update={
                "execution_count": count + 1,
                "success_count": current.success_count + int(entry.success),
                "failure_count": current.failure_count + int(not entry.success),
                "average_time_ms": (current.average_time_ms * count + entry.execution_time_ms)
                // (count + 1),
                "last_used": entry.timestamp,
                "commonly_chained_with": dict(merged),
            }
        )

    def recent_history(self, limit: int = 50) -> list[HistoryEntry]:
        """Most recent entries first."""
        if limit <= 0:
            return []
        entries = list(self._history)
        return entries[-limit:][::-1]

    def top_commands(self, limit: int = 20) -> list[CommandStats]:
        stats = list(self._stats.values())
        stats.sort(key=lambda item: item.execution_count, reverse=True)
        return stats[: max(0, limit)]

    def stats_for(self, command_id: str) -> CommandStats | None:
        return self._stats.get(command_id)

    def common_patterns(self, min_frequency: int = 3) -> list[UsagePattern]:
        history = list(self._history)
        patterns: list[UsagePattern] = []
        for key, frequency in list(self._patterns.items()):
            if frequency < min_frequency:
                continue
            sequence = key.split(PATTERN_SEPARATOR)
            times = [
                entry.execution_time_ms
                for entry in history
                if entry.command_id == sequence[0] and entry.chained_with == sequence[1:]
            ]
            patterns.append(
                UsagePattern(
                    sequence=sequence,
                    frequency=frequency,
                    average_time_ms=sum(times) // len(times) if times else 0,
                    suggestion=self._pattern_suggestion(sequence, frequency),
                )
            )
        patterns.sort(key=lambda pattern: pattern.frequency, reverse=True)
        return patterns

    def _pattern_suggestion(self, sequence: list[str], frequency: int) -> str | None:
        if frequency >= ALIAS_MIN_FREQUENCY and len(sequence) >= ALIAS_MIN_LENGTH:
            return "Consider creating an alias for this frequently used sequence"
        if any(
            _is_save(first) and _is_save(second)
            for first, second in zip(sequence, sequence[1:])
        ):
            return "Duplicate save commands detected - consider removing redundant saves"
        if all(self.classifier.is_instant(command_id) for command_id in sequence):
            return "This sequence executes instantly with smart delays"
        return None

    def suggestions(self) -> list[str]:
        suggestions = [
            pattern.suggestion for pattern in self.common_patterns() if pattern.suggestion
        ]
        stats = list(self._stats.values())

        for item in stats:
            if item.failure_count > item.success_count:
                suggestions.append(
                    f"Command '{item.command_id}' fails frequently "
                    f"({item.failure_count}/{item.execution_count}). "
                    f"Check requirements with /explain?action={item.command_id}"
                )

        slow = [
            item
            for item in stats
            if item.average_time_ms > SLOW_AVERAGE_MS and item.execution_count > SLOW_MIN_EXECUTIONS
        ]
        slow.sort(key=lambda item: item.average_time_ms, reverse=True)
        if slow:
            listed = ", ".join(f"{item.command_id} ({item.average_time_ms}ms)" for item in slow[:3])
            suggestions.append(f"Slow commands detected: {listed}")
        return suggestions

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
            self._stats.clear()
            self._patterns.clear()
        self.persist()
        logger.info("History and statistics cleared")


def _pattern_key(entry: HistoryEntry) -> str:
    return PATTERN_SEPARATOR.join([entry.command_id, *(entry.chained_with or [])])


def _is_save(command_id: str) -> bool:
    return command_id.startswith("Save")
