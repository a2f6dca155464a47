from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """Cached value with an absolute expiry.

    Entries are immutable; the cache replaces them wholesale on refresh.
    """

    key: str
    value: T
    created_at: datetime
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at

    def time_remaining(self, now: datetime) -> timedelta:
        remaining = self.expires_at - now
        return remaining if remaining > timedelta(0) else timedelta(0)
