"""Per-IP sliding-window rate limiting.

Each limit class (chatbot, contact, global) has its own window and threshold.
The limiter keeps the timestamps of admitted requests per
``(limit_class, client_key)`` in an injected store, prunes them lazily on
every admit, and periodically sweeps records whose timestamps have all
expired.

Rate limiting strategy:
- Sliding log: a request is admitted when fewer than ``max_requests`` were
  admitted in the last ``window_seconds``.
- Rejected requests are not recorded, so a blocked client regains access as
  soon as its oldest admitted request leaves the window.
- Repeated rejections are tracked per client as violations for observability.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from portfolio_api.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitRecord
from portfolio_api.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from portfolio_api.core.config import RateLimitSettings, settings

logger = logging.getLogger(__name__)

# Violation entries are forgotten after a day without new rejections.
VIOLATION_TTL_SECONDS = 24 * 60 * 60


class LimitClass(str, Enum):
    CHATBOT = "chatbot"
    CONTACT = "contact"
    GLOBAL = "global"


class DecisionReason(str, Enum):
    RATE_LIMITED = "RATE_LIMITED"
    ORIGIN_REJECTED = "ORIGIN_REJECTED"


@dataclass(frozen=True)
class LimitClassConfig:
    window_seconds: int
    max_requests: int
    message: str

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


@dataclass(frozen=True)
class SecurityDecision:
    """Admission verdict for one request.

    Attributes:
        admitted: Whether the request may proceed.
        reason: Why it was refused, when it was.
        retry_after_seconds: Suggested wait time when rate limited.
        limit: Max requests per window for the limit class.
        remaining: Requests left in the current window.
        reset_at: UNIX epoch seconds when the oldest retained request expires.
        violations: Rejections recorded for the client so far, when refused.
    """

    admitted: bool
    reason: DecisionReason | None = None
    retry_after_seconds: int | None = None
    limit: int | None = None
    remaining: int | None = None
    reset_at: int | None = None
    violations: int | None = None

    def rate_limit_headers(self) -> dict[str, str]:
        if self.limit is None:
            return {}
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining if self.remaining is not None else 0),
            "X-RateLimit-Reset": str(self.reset_at if self.reset_at is not None else 0),
        }
        if self.retry_after_seconds is not None:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


@dataclass
class _Violations:
    count: int
    last_violation: float


def build_limit_table(cfg: RateLimitSettings) -> dict[LimitClass, LimitClassConfig]:
    """Translate flat settings into the per-class limit table."""

    return {
        LimitClass.CHATBOT: LimitClassConfig(
            window_seconds=cfg.chatbot_window_seconds,
            max_requests=cfg.chatbot_requests,
            message=cfg.chatbot_message,
        ),
        LimitClass.CONTACT: LimitClassConfig(
            window_seconds=cfg.contact_window_seconds,
            max_requests=cfg.contact_requests,
            message=cfg.contact_message,
        ),
        LimitClass.GLOBAL: LimitClassConfig(
            window_seconds=cfg.global_window_seconds,
            max_requests=cfg.global_requests,
            message=cfg.global_message,
        ),
    }


class SlidingWindowRateLimiter:
    """Rate limiter keeping a log of admitted request times per key.

    Args:
        limits: Configuration for every limit class this limiter serves.
        store: Record storage; defaults to a fresh in-memory store.
        clock: Time source returning UNIX time in seconds.
    """

    def __init__(
        self,
        limits: Mapping[LimitClass, LimitClassConfig],
        *,
        store: AbstractRateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._limits = dict(limits)
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock
        self._violations: dict[str, _Violations] = {}
        self._violations_lock = threading.Lock()

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def config_for(self, limit_class: LimitClass) -> LimitClassConfig:
        try:
            return self._limits[limit_class]
        except KeyError:
            raise ValueError(f"unknown limit class: {limit_class!r}") from None

    @staticmethod
    def _store_key(limit_class: LimitClass, client_key: str) -> str:
        return f"{limit_class.value}:{client_key}"

    def admit(self, limit_class: LimitClass, client_key: str) -> SecurityDecision:
        """Check and consume one request from the client's budget.

        The prune, count and append steps run under the store's per-key lock,
        so concurrent calls for the same key cannot admit past the limit.

        Args:
            limit_class: Which limit table entry applies.
            client_key: Client identifier, normally the IP address.

        Returns:
            SecurityDecision with the verdict and rate limit metadata.

        Raises:
            ValueError: If the key is empty or the class is unknown.
        """

        if not client_key:
            raise ValueError("client_key must be a non-empty string")

        config = self.config_for(limit_class)
        key = self._store_key(limit_class, client_key)

        with self._store.lock(key):
            now = self._clock()
            record = self._store.get(key) or RateLimitRecord(key=key, window_start=now)
            record.prune(now - config.window_seconds)

            if len(record.timestamps) >= config.max_requests:
                oldest = record.timestamps[0]
                self._store.set(key, record)
                retry_after = max(1, math.ceil(oldest + config.window_seconds - now))
                violations = self._record_violation(client_key, now)
                return SecurityDecision(
                    admitted=False,
                    reason=DecisionReason.RATE_LIMITED,
                    retry_after_seconds=retry_after,
                    violations=violations,
                    limit=config.max_requests,
                    remaining=0,
                    reset_at=math.ceil(oldest + config.window_seconds),
                )

            if not record.timestamps:
                record.window_start = now
            record.timestamps.append(now)
            self._store.set(key, record)

            return SecurityDecision(
                admitted=True,
                limit=config.max_requests,
                remaining=config.max_requests - len(record.timestamps),
                reset_at=math.ceil(record.timestamps[0] + config.window_seconds),
            )

    def _record_violation(self, client_key: str, now: float) -> int:
        with self._violations_lock:
            entry = self._violations.get(client_key)
            if entry is None:
                entry = self._violations[client_key] = _Violations(count=0, last_violation=now)
            entry.count += 1
            entry.last_violation = now
            return entry.count

    def violations(self, client_key: str) -> int:
        with self._violations_lock:
            entry = self._violations.get(client_key)
            return entry.count if entry else 0

    def sweep(self, now: float | None = None) -> int:
        """Evict records whose timestamps have all left their window.

        Args:
            now: Reference time; defaults to the limiter clock.

        Returns:
            Number of rate limit records removed.
        """

        now = self._clock() if now is None else now
        windows = {cls.value: cfg.window_seconds for cls, cfg in self._limits.items()}

        def is_stale(record: RateLimitRecord) -> bool:
            limit_class = record.key.split(":", 1)[0]
            window = windows.get(limit_class, 0)
            return all(t <= now - window for t in record.timestamps)

        removed = self._store.prune(is_stale)

        with self._violations_lock:
            expired = [
                ip
                for ip, entry in self._violations.items()
                if now - entry.last_violation > VIOLATION_TTL_SECONDS
            ]
            for ip in expired:
                del self._violations[ip]

        logger.info(
            "rate_limit.sweep",
            extra={
                "removed_records": removed,
                "remaining_records": len(self._store),
                "removed_violations": len(expired),
            },
        )
        return removed


_limiter: SlidingWindowRateLimiter | None = None
_limiter_config: dict[LimitClass, LimitClassConfig] | None = None


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If the limit table changes (primarily in tests), the limiter is rebuilt.
    """

    global _limiter, _limiter_config

    config = build_limit_table(settings.rate_limit)
    if _limiter is None or _limiter_config != config:
        _limiter = SlidingWindowRateLimiter(config)
        _limiter_config = config

    return _limiter


async def run_periodic_sweep(
    limiter_factory: Callable[[], SlidingWindowRateLimiter] = get_rate_limiter,
    interval_seconds: float | None = None,
) -> None:
    """Sweep stale records forever; cancel the task to stop it."""

    interval = interval_seconds or settings.rate_limit.sweep_interval_seconds
    while True:
        await asyncio.sleep(interval)
        limiter_factory().sweep()
