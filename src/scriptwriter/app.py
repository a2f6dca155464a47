"""Runtime wiring.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState inside the ``lifespan`` async context manager
- Start and stop the cache cleanup task
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import structlog

from scriptwriter import __version__
from scriptwriter.cache import TTLCache
from scriptwriter.catalog import PackageCatalog
from scriptwriter.config import Settings
from scriptwriter.fetcher import build_http_client
from scriptwriter.lts import get_latest_lts_version
from scriptwriter.marketplace import MarketplaceClient
from scriptwriter.nuget import NuGetClient
from scriptwriter.schedulers import run_cache_cleanup_scheduler
from scriptwriter.state import AppState
from scriptwriter.validator import CommandValidator

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # stdout is left to the caller for script output
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the process lifetime."""
    settings = settings or Settings()
    setup_logging(settings)

    log.info("scriptwriter_starting", version=__version__)

    http_client = build_http_client(settings.http)
    cache = TTLCache(enabled=settings.cache.enabled)
    marketplace = MarketplaceClient(http_client, settings.marketplace)
    nuget = NuGetClient(http_client, settings.nuget)
    catalog = PackageCatalog(
        cache=cache,
        marketplace=marketplace,
        versions=nuget,
        settings=settings,
    )

    state = AppState(
        settings=settings,
        cache=cache,
        validator=CommandValidator(),
        http_client=http_client,
        marketplace=marketplace,
        nuget=nuget,
        catalog=catalog,
    )

    cache_cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

    log.info(
        "scriptwriter_started",
        cache_enabled=settings.cache.enabled,
        cache_ttl_minutes=settings.cache.ttl_minutes,
        lifecycle_records=len(settings.lifecycle),
    )

    try:
        yield state
    finally:
        cache_cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cache_cleanup_task
        await http_client.aclose()
        log.info("scriptwriter_stopping")


async def latest_lts_version(state: AppState) -> str | None:
    """Resolve the recommended LTS version from configuration and the catalog."""
    if state.catalog is None:
        raise RuntimeError("Catalog not initialized")
    return await get_latest_lts_version(state.settings.lifecycle, state.catalog)
