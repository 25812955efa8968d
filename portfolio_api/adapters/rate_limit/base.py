"""Rate limit store interface.

The limiter depends on this abstraction (not the concrete implementation) so
the process-wide in-memory map can later be swapped for a shared cache such as
Redis with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class RateLimitRecord:
    """Request history for one ``(limit_class, client_key)`` pair.

    Attributes:
        key: Namespaced store key, ``"{limit_class}:{client_key}"``.
        window_start: UNIX time of the oldest retained request.
        timestamps: Request times inside the window, oldest first.
    """

    key: str
    window_start: float
    timestamps: list[float] = field(default_factory=list)

    def prune(self, cutoff: float) -> None:
        """Drop timestamps at or before ``cutoff`` and realign the window."""
        self.timestamps = [t for t in self.timestamps if t > cutoff]
        if self.timestamps:
            self.window_start = self.timestamps[0]


class AbstractRateLimitStore(ABC):
    """Storage for rate limit records.

    ``lock(key)`` delimits the read-modify-write critical section for a key;
    callers must hold it around ``get`` + ``set`` so concurrent admits for the
    same key cannot both observe "under limit".
    """

    @abstractmethod
    def get(self, key: str) -> RateLimitRecord | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, record: RateLimitRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def prune(self, is_stale: Callable[[RateLimitRecord], bool]) -> int:
        """Delete every record for which ``is_stale`` returns True.

        Returns:
            Number of records removed.
        """
        raise NotImplementedError

    @abstractmethod
    def lock(self, key: str) -> AbstractContextManager[None]:
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError
