"""Time-boxed keyed cache with pluggable storage and an injected clock.

One slot per key. A slot is overwritten whole on every successful refresh and
never partially updated. There is no locking: two callers that both see a
stale slot both run the producer, and whichever finishes last is what stays
cached.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.cache.storage import CacheEntry, CacheStorage, InMemoryStorage
from src.observability.metrics import CACHE_LOOKUPS_TOTAL

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], int]


def epoch_millis() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class FreshnessCache:
    """Serve a stored value while it is younger than the caller's TTL."""

    def __init__(self, storage: CacheStorage | None = None, clock: Clock = epoch_millis) -> None:
        self._storage = storage if storage is not None else InMemoryStorage()
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    def peek(self, key: str) -> CacheEntry | None:
        """Return the stored entry for ``key`` without refreshing it."""
        return self._storage.get(key)

    def is_fresh(self, entry: CacheEntry, ttl_millis: int) -> bool:
        return self._clock() - entry.stored_at < ttl_millis

    async def get_or_refresh(self, key: str, ttl_millis: int, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for ``key``, refreshing it when stale or absent.

        If the producer fails and any entry exists (even a stale one), that entry
        is returned as a degraded fallback. With nothing stored, the failure
        propagates.
        """
        entry = self._storage.get(key)
        if entry is not None and self.is_fresh(entry, ttl_millis):
            CACHE_LOOKUPS_TOTAL.labels(outcome="hit").inc()
            cached: T = entry.value
            return cached

        try:
            value = await producer()
        except Exception:
            # Re-read: a concurrent refresher may have stored something meanwhile.
            fallback = self._storage.get(key)
            if fallback is None:
                CACHE_LOOKUPS_TOTAL.labels(outcome="error").inc()
                raise
            CACHE_LOOKUPS_TOTAL.labels(outcome="stale_fallback").inc()
            logger.warning(
                "Refresh of '%s' failed; serving entry stored at %d",
                key,
                fallback.stored_at,
                exc_info=True,
            )
            stale: T = fallback.value
            return stale

        self._storage.set(key, CacheEntry(value=value, stored_at=self._clock()))
        CACHE_LOOKUPS_TOTAL.labels(outcome="refresh").inc()
        return value

    def invalidate(self, key: str) -> None:
        self._storage.delete(key)


def ttl_from_seconds(seconds: int | float) -> int:
    return int(seconds * 1000)
