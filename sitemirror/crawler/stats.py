"""Thread-safe run statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .types import FetchOutcome, RunStatistics


class StatsCollector:
    """Collect download counts, warnings, and errors across workers.

    Every mutation is a single increment or append under the collector lock.
    """

    def __init__(self, base: RunStatistics | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or RunStatistics()

        self._outcome_counts: dict[str, int] = defaultdict(int)
        self._status_code_counts: dict[str, int] = defaultdict(int)
        self._bytes_total = 0
        self._batches: list[dict[str, Any]] = []
        self._frontier_snapshot: dict[str, int] = {}
        self._custom_counters: dict[str, int] = defaultdict(int)

    def record_outcome(self, outcome: FetchOutcome) -> None:
        """Record one classified download outcome."""

        with self._lock:
            self._outcome_counts[outcome.status.value] += 1
            if outcome.status_code is not None:
                self._status_code_counts[str(outcome.status_code)] += 1

    def record_saved(self, size: int = 0) -> None:
        """Count one successful download."""

        with self._lock:
            self._core.downloads += 1
            self._bytes_total += max(0, int(size))

    def record_warning(self, message: str) -> None:
        with self._lock:
            self._core.warnings.append(message)

    def record_error(self, message: str) -> None:
        with self._lock:
            self._core.errors.append(message)

    def record_batch(self, phase: str, size: int) -> None:
        """Append one scheduler round to the batch history."""

        with self._lock:
            self._batches.append({"phase": phase, "size": int(size)})

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a custom counter for ad-hoc instrumentation."""

        if not name or value == 0:
            return
        with self._lock:
            self._custom_counters[name] += value

    def finish(self) -> None:
        """Mark run as finished."""

        with self._lock:
            self._core.finish()

    @property
    def downloads(self) -> int:
        with self._lock:
            return self._core.downloads

    @property
    def warnings(self) -> list[str]:
        with self._lock:
            return list(self._core.warnings)

    @property
    def errors(self) -> list[str]:
        with self._lock:
            return list(self._core.errors)

    def counter(self, name: str) -> int:
        with self._lock:
            return int(self._custom_counters.get(name, 0))

    def outcome_count(self, status: str) -> int:
        with self._lock:
            return int(self._outcome_counts.get(status, 0))

    def batch_sizes(self, phase: str | None = None) -> list[int]:
        with self._lock:
            return [
                batch["size"]
                for batch in self._batches
                if phase is None or batch["phase"] == phase
            ]

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = (
                _parse_iso_utc(self._core.finished_at)
                if self._core.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            return {
                **core,
                "duration_seconds": duration_seconds,
                "outcomes": dict(self._outcome_counts),
                "status_code_counts": dict(self._status_code_counts),
                "bytes_total": self._bytes_total,
                "batches": [dict(batch) for batch in self._batches],
                "frontier": dict(self._frontier_snapshot),
                "custom_counters": dict(self._custom_counters),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
