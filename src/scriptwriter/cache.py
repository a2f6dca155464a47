"""In-memory TTL cache with single-flight misses.

Wraps the expensive upstream lookups (marketplace listings, version lists) so
repeated requests within the TTL are served from memory. Expired entries are
indistinguishable from absent ones and are evicted lazily on read, or in bulk
by ``cleanup_expired()`` (see schedulers.py).

Misses for the same key are serialised with a per-key ``asyncio.Lock``: the
first caller runs the factory, later callers wait and then read its entry.
Factory errors propagate to the caller and are never stored, so the next call
retries. Cancellation behaves the same way: the existing entry for the key,
stale or not, is left untouched.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from scriptwriter.models.cache import CacheEntry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import timedelta

log = structlog.get_logger()

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TTLCache:
    """Process-wide key → value cache with per-entry absolute expiry."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._enabled = enabled
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._entries.values() if entry.is_valid(now))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._valid_entry(key) is not None

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on miss or expiry."""
        entry = self._valid_entry(key)
        return None if entry is None else entry.value

    def set(self, key: str, value: T, ttl: timedelta) -> T:
        """Store ``value`` under ``key`` until now + ``ttl``."""
        if not self._enabled:
            return value
        now = self._clock()
        # Single assignment: readers see either the old entry or the new one.
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + ttl,
        )
        log.debug("cache_set", key=key, expires_at=(now + ttl).isoformat())
        return value

    async def get_or_create(
        self,
        key: str,
        ttl: timedelta,
        factory: Callable[[], T | Awaitable[T]],
    ) -> T:
        """Return the cached value for ``key`` or build it with ``factory``.

        ``factory`` may be sync or async. At most one factory call per key is
        in flight at a time.
        """
        entry = self._valid_entry(key)
        if entry is not None:
            log.debug(
                "cache_hit",
                key=key,
                remaining_seconds=int(entry.time_remaining(self._clock()).total_seconds()),
            )
            return entry.value

        if not self._enabled:
            return await _call(factory)

        lock = self._locks.setdefault(key, asyncio.Lock())
        # Holders and waiters both count; cleanup_expired only drops locks with none.
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                # Another caller may have filled the entry while we waited.
                entry = self._valid_entry(key)
                if entry is not None:
                    log.debug("cache_hit", key=key, after_wait=True)
                    return entry.value

                log.debug("cache_miss", key=key)
                value = await _call(factory)
                return self.set(key, value, ttl)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def remove(self, key: str) -> bool:
        """Drop ``key``. Returns True if an entry (valid or not) was removed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            log.debug("cache_removed", key=key)
        return removed

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        log.info("cache_cleared", entries=count)

    def cleanup_expired(self) -> int:
        """Evict every expired entry. Returns the number evicted."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]
        idle_locks = [key for key in self._locks if key not in self._lock_users]
        for key in idle_locks:
            del self._locks[key]
        if expired:
            log.debug("cache_cleanup_complete", evicted=len(expired))
        return len(expired)

    def _valid_entry(self, key: str) -> CacheEntry[Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock()):
            del self._entries[key]
            return None
        return entry


async def _call(factory: Callable[[], T | Awaitable[T]]) -> T:
    result = factory()
    if inspect.isawaitable(result):
        return await result
    return result
