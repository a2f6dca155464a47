"""Application state container.

AppState is created once at startup by ``app.lifespan`` and handed to every
consumer, so the cache is an explicit shared service rather than a global.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from scriptwriter.cache import TTLCache
    from scriptwriter.catalog import PackageCatalog
    from scriptwriter.config import Settings
    from scriptwriter.marketplace import MarketplaceClient
    from scriptwriter.nuget import NuGetClient
    from scriptwriter.validator import CommandValidator


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    cache: TTLCache
    validator: CommandValidator
    http_client: httpx.AsyncClient | None = None
    marketplace: MarketplaceClient | None = None
    nuget: NuGetClient | None = None
    catalog: PackageCatalog | None = None
