"""Cache-backed package catalog.

Composes the marketplace aggregator and the version source behind the TTL
cache. Every expensive lookup goes through ``TTLCache.get_or_create`` with the
configured TTL; a miss runs the upstream fetch once, concurrent misses wait
for it. The strict upstream variants are used as factories, so a failed or
truncated fetch is returned degraded to the caller but never stored.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from scriptwriter.errors import IncompleteListingError, ScriptWriterError
from scriptwriter.marketplace import MarketplaceQuery

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from scriptwriter.config import Settings
    from scriptwriter.marketplace import MarketplaceClient
    from scriptwriter.models.marketplace import PackageRecord
    from scriptwriter.protocols import CacheProtocol, VersionSourceProtocol

log = structlog.get_logger()

ALL_PACKAGES_KEY = "allPackages"
ALL_TEMPLATES_KEY = "allTemplates"


def versions_cache_key(package_id: str) -> str:
    return f"{package_id}_Versions"


def parse_package_picks(text: str | None) -> dict[str, str | None]:
    """Parse ``"Id|1.2.3,Other"`` into ``{"Id": "1.2.3", "Other": None}``.

    Empty items are skipped; a later pick of the same id wins.
    """
    picks: dict[str, str | None] = {}
    if not text:
        return picks
    for item in text.split(","):
        package_id, _, version = item.strip().partition("|")
        package_id = package_id.strip()
        if not package_id:
            continue
        picks[package_id] = version.strip() or None
    return picks


class PackageCatalog:
    """Cached access to marketplace listings and published versions."""

    def __init__(
        self,
        *,
        cache: CacheProtocol,
        marketplace: MarketplaceClient,
        versions: VersionSourceProtocol,
        settings: Settings,
    ) -> None:
        self._cache = cache
        self._marketplace = marketplace
        self._versions = versions
        self._settings = settings

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.cache.ttl_minutes)

    async def get_all_packages(self) -> list[PackageRecord]:
        return await self._get_listing(ALL_PACKAGES_KEY, MarketplaceQuery.PACKAGES)

    async def get_all_templates(self) -> list[PackageRecord]:
        return await self._get_listing(ALL_TEMPLATES_KEY, MarketplaceQuery.TEMPLATES)

    async def get_package_versions(self, package_id: str) -> list[str]:
        """Published versions of ``package_id``, newest first, via the cache.

        A failed lookup returns ``[]`` without caching it, so the next call
        asks upstream again.
        """
        key = versions_cache_key(package_id)
        try:
            return await self._cache.get_or_create(
                key,
                self.ttl,
                lambda: self._versions.fetch_package_versions(package_id),
            )
        except ScriptWriterError as exc:
            log.warning("catalog_result_not_cached", key=key, code=exc.code, error=exc.message)
            return []

    async def get_template_versions(self) -> list[str]:
        return await self.get_package_versions(self._settings.nuget.template_package)

    async def populate_package_versions(
        self,
        packages: Iterable[PackageRecord],
        picks: Mapping[str, str | None],
    ) -> list[PackageRecord]:
        """Attach version lists and picked versions to the picked packages.

        Only records whose ``package_id`` appears in ``picks`` are touched.
        Returns the enriched records in listing order.
        """
        enriched: list[PackageRecord] = []
        for package in packages:
            if package.package_id not in picks:
                continue
            package.package_versions = await self.get_package_versions(package.package_id)
            package.selected_version = picks[package.package_id] or ""
            enriched.append(package)
        log.debug("package_versions_populated", picked=len(picks), enriched=len(enriched))
        return enriched

    def clear(self) -> None:
        """Drop cached listings and the template version list."""
        self._cache.remove(ALL_PACKAGES_KEY)
        self._cache.remove(ALL_TEMPLATES_KEY)
        self._cache.remove(versions_cache_key(self._settings.nuget.template_package))
        log.info("catalog_cache_cleared")

    async def _get_listing(self, key: str, query: MarketplaceQuery) -> list[PackageRecord]:
        """Cached marketplace listing; a truncated walk is returned but not stored."""
        try:
            return await self._cache.get_or_create(
                key, self.ttl, lambda: self._marketplace.fetch_complete(query)
            )
        except IncompleteListingError as exc:
            log.warning(
                "catalog_result_not_cached",
                key=key,
                code=exc.code,
                records=len(exc.records),
                total=exc.total,
            )
            return exc.records
