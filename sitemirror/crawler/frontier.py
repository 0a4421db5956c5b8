"""Thread-safe frontier queue plus the run's visited/path/auxiliary sets."""

from __future__ import annotations

import os
import queue
import threading
from pathlib import Path
from typing import Iterable

from .types import FrontierItem
from .url import visit_key


class Frontier:
    """Shared crawl state owned by the run and handed to every worker.

    - FIFO queue of pending items; duplicates may sit in the queue and are
      dropped on dequeue once their key has been claimed.
    - Visited set and written-path set with atomic check-and-insert.
    - Auxiliary set drained once per outer-loop iteration.

    Locks only guard in-memory structures; nothing here performs I/O.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[FrontierItem] = queue.Queue()
        self._lock = threading.Lock()

        self._visited: set[str] = set()
        self._written_paths: set[str] = set()
        self._auxiliary: dict[str, str] = {}
        self._rename_tokens: dict[str, str] = {}

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._released_count = 0
        self._skipped_seen_count = 0

    def try_claim(self, key: str) -> bool:
        """Mark `key` visited; False when it was already claimed."""

        normalized = visit_key(key)
        with self._lock:
            if normalized in self._visited:
                return False
            self._visited.add(normalized)
            return True

    def release(self, key: str) -> None:
        """Un-claim `key` so a requeued item can be attempted again."""

        normalized = visit_key(key)
        with self._lock:
            if normalized in self._visited:
                self._visited.discard(normalized)
                self._released_count += 1

    def is_claimed(self, key: str) -> bool:
        with self._lock:
            return visit_key(key) in self._visited

    def enqueue(self, item: FrontierItem) -> None:
        self._queue.put(item)
        with self._lock:
            self._enqueued_count += 1

    def enqueue_many(self, items: Iterable[FrontierItem]) -> None:
        for item in items:
            self.enqueue(item)

    def try_dequeue(self) -> FrontierItem | None:
        """Pop the next unclaimed item without blocking, or None when empty."""

        while True:
            try:
                item = self._queue.get(block=False)
            except queue.Empty:
                return None

            with self._lock:
                self._dequeued_count += 1
                if visit_key(item.key) in self._visited:
                    self._skipped_seen_count += 1
                    continue
            return item

    def dequeue_batch(self, max_items: int) -> list[FrontierItem]:
        """Pop up to `max_items` unclaimed items with distinct keys."""

        if max_items <= 0:
            raise ValueError("max_items must be > 0")

        items: list[FrontierItem] = []
        keys: set[str] = set()
        while len(items) < max_items:
            item = self.try_dequeue()
            if item is None:
                break
            key = visit_key(item.key)
            if key in keys:
                with self._lock:
                    self._skipped_seen_count += 1
                continue
            keys.add(key)
            items.append(item)
        return items

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        """Approximate queue size."""

        return self._queue.qsize()

    def add_auxiliary(self, url: str) -> bool:
        """Record an auxiliary resource URL; False when already pending."""

        key = visit_key(url)
        with self._lock:
            if key in self._auxiliary:
                return False
            self._auxiliary[key] = url
            return True

    def drain_auxiliary(self) -> list[str]:
        """Return pending auxiliary URLs in discovery order and clear the set."""

        with self._lock:
            urls = list(self._auxiliary.values())
            self._auxiliary.clear()
        return urls

    def has_auxiliary(self) -> bool:
        with self._lock:
            return bool(self._auxiliary)

    def try_claim_path(self, path: str | Path) -> bool:
        """Reserve a destination path for writing; False when already written."""

        key = self._path_key(path)
        with self._lock:
            if key in self._written_paths:
                return False
            self._written_paths.add(key)
            return True

    def is_path_claimed(self, path: str | Path) -> bool:
        key = self._path_key(path)
        with self._lock:
            return key in self._written_paths

    @staticmethod
    def _path_key(path: str | Path) -> str:
        return os.path.normcase(os.path.abspath(str(path))).casefold()

    def rename_token_for(self, key: str, candidate: str) -> str:
        """Return the rename token bound to `key`, binding `candidate` if none is."""

        normalized = visit_key(key)
        with self._lock:
            return self._rename_tokens.setdefault(normalized, candidate)

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for stats reporting."""

        with self._lock:
            return {
                "queue_size": self._queue.qsize(),
                "visited": len(self._visited),
                "written_paths": len(self._written_paths),
                "auxiliary_pending": len(self._auxiliary),
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
                "released": self._released_count,
                "skipped_seen": self._skipped_seen_count,
            }


__all__ = ["Frontier"]
