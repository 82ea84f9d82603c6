"""Request pacing and daily quota tracking.

RateLimiter is the single pacing gate for every archive request; share one
instance between everything that talks to the same source. QuotaTracker
counts requests per source per day against a pluggable store.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import date
from typing import Protocol

from gamerecon.core.errors import QuotaExceededError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum interval between requests.

    acquire() blocks until the interval since the previous request has
    passed. The lock is held while sleeping so callers are serialized in
    arrival order and the effective rate stays bounded under concurrency.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    def acquire(self) -> float:
        """Wait for the next slot.

        Returns:
            Seconds spent waiting
        """
        with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self._min_interval:
                    waited = self._min_interval - elapsed
                    self._sleep(waited)
            self._last_request = self._clock()
            return waited


class QuotaStore(Protocol):
    def get_count(self, source: str, day: date) -> int: ...

    def increment(self, source: str, day: date) -> int: ...


class InMemoryQuotaStore:
    """Process-local quota counts."""

    def __init__(self) -> None:
        self._counts: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def get_count(self, source: str, day: date) -> int:
        with self._lock:
            return self._counts.get((source, day.isoformat()), 0)

    def increment(self, source: str, day: date) -> int:
        with self._lock:
            key = (source, day.isoformat())
            self._counts[key] = self._counts.get(key, 0) + 1
            return self._counts[key]


class QuotaTracker:
    """Daily request budget for one source.

    A daily_limit of None means unlimited; requests are still counted.
    """

    def __init__(
        self,
        source: str,
        daily_limit: int | None = None,
        store: QuotaStore | None = None,
        today: Callable[[], date] = date.today,
    ):
        self._source = source
        self._daily_limit = daily_limit
        self._store = store if store is not None else InMemoryQuotaStore()
        self._today = today
        self._lock = threading.Lock()

    @property
    def source(self) -> str:
        return self._source

    def used_today(self) -> int:
        return self._store.get_count(self._source, self._today())

    def remaining_today(self) -> int | None:
        if self._daily_limit is None:
            return None
        return max(0, self._daily_limit - self.used_today())

    def consume(self) -> int:
        """Record one request.

        Returns:
            Count for today including this request

        Raises:
            QuotaExceededError: if today's limit is already used up
        """
        with self._lock:
            day = self._today()
            if self._daily_limit is not None:
                used = self._store.get_count(self._source, day)
                if used >= self._daily_limit:
                    logger.warning(
                        "[QUOTA] %s daily limit reached (%d/%d)",
                        self._source,
                        used,
                        self._daily_limit,
                    )
                    raise QuotaExceededError(
                        f"Daily quota exhausted for {self._source} ({used}/{self._daily_limit})"
                    )
            return self._store.increment(self._source, day)
