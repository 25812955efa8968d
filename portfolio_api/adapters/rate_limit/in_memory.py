"""In-memory rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a map lock guards the dicts, a per-key lock guards each
  record's read-modify-write.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from portfolio_api.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitRecord


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dict-backed store with one mutex per key.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker enforces its
        own independent limits.
    """

    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._map_lock = threading.RLock()

    def get(self, key: str) -> RateLimitRecord | None:
        with self._map_lock:
            return self._records.get(key)

    def set(self, key: str, record: RateLimitRecord) -> None:
        with self._map_lock:
            self._records[key] = record

    def delete(self, key: str) -> None:
        with self._map_lock:
            self._records.pop(key, None)
            self._key_locks.pop(key, None)

    def prune(self, is_stale: Callable[[RateLimitRecord], bool]) -> int:
        removed = 0
        with self._map_lock:
            for key, record in list(self._records.items()):
                key_lock = self._key_locks.get(key)
                # A held key lock means an admit is in flight; keep the record.
                if key_lock is not None and key_lock.locked():
                    continue
                if is_stale(record):
                    del self._records[key]
                    self._key_locks.pop(key, None)
                    removed += 1
        return removed

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        while True:
            with self._map_lock:
                key_lock = self._key_locks.setdefault(key, threading.Lock())
            key_lock.acquire()
            with self._map_lock:
                current = self._key_locks.get(key)
                if current is key_lock:
                    break
                if current is None:
                    self._key_locks[key] = key_lock
                    break
            # The lock was swept and replaced while we waited; retry on the new one.
            key_lock.release()
        try:
            yield
        finally:
            key_lock.release()

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._records)
