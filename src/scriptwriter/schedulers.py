"""Background scheduler coroutine for cache maintenance."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from scriptwriter.state import AppState

log = structlog.get_logger()


async def run_cache_cleanup_scheduler(state: AppState) -> None:
    """Evict expired cache entries every ``cache.cleanup_interval_minutes``.

    Reads already evict lazily; the sweep only bounds memory held by keys that
    are never read again. Runs until cancelled.
    """
    interval_seconds = state.settings.cache.cleanup_interval_minutes * 60

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            evicted = state.cache.cleanup_expired()
        except Exception:
            log.warning("cache_cleanup_error", exc_info=True)
            continue
        log.debug("cache_cleanup_ran", evicted=evicted)
