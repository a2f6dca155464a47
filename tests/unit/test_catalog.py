"""Unit tests for scriptwriter.catalog."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from scriptwriter.cache import TTLCache
from scriptwriter.catalog import (
    ALL_PACKAGES_KEY,
    ALL_TEMPLATES_KEY,
    PackageCatalog,
    parse_package_picks,
    versions_cache_key,
)
from scriptwriter.errors import ErrorCode, IncompleteListingError, ScriptWriterError
from scriptwriter.marketplace import MarketplaceQuery
from scriptwriter.models.marketplace import PackageRecord

if TYPE_CHECKING:
    from scriptwriter.config import Settings
    from tests.conftest import FakeClock


class StubMarketplace:
    def __init__(self) -> None:
        self.package_calls = 0
        self.template_calls = 0
        # Number of upcoming package walks that stop after the first record
        self.truncated_walks = 0

    async def fetch_complete(self, query: MarketplaceQuery) -> list[PackageRecord]:
        if query is MarketplaceQuery.TEMPLATES:
            self.template_calls += 1
            return [PackageRecord(package_id="Umbraco.Templates", title="Umbraco")]

        self.package_calls += 1
        records = [
            PackageRecord(package_id="uSync", title="uSync"),
            PackageRecord(package_id="Umbraco.Forms", title="Forms"),
            PackageRecord(package_id="Our.Umbraco.GMaps", title="GMaps"),
        ]
        if self.truncated_walks:
            self.truncated_walks -= 1
            raise IncompleteListingError(records[:1], total=len(records))
        return records


class StubVersionSource:
    def __init__(self) -> None:
        self.calls: list[str] = []
        # Number of upcoming lookups that fail as an unreachable index would
        self.failures = 0

    async def get_package_versions(self, package_id: str) -> list[str]:
        try:
            return await self.fetch_package_versions(package_id)
        except ScriptWriterError:
            return []

    async def fetch_package_versions(self, package_id: str) -> list[str]:
        self.calls.append(package_id)
        await asyncio.sleep(0)
        if self.failures:
            self.failures -= 1
            raise ScriptWriterError(
                code=ErrorCode.VERSION_INDEX_FETCH_FAILED,
                message="connection refused",
                suggestion="retry",
                recoverable=True,
            )
        return [f"{package_id}-2.0.0", f"{package_id}-1.0.0"]


@pytest.fixture()
def marketplace() -> StubMarketplace:
    return StubMarketplace()


@pytest.fixture()
def versions() -> StubVersionSource:
    return StubVersionSource()


@pytest.fixture()
def catalog(
    settings: Settings,
    clock: FakeClock,
    marketplace: StubMarketplace,
    versions: StubVersionSource,
) -> PackageCatalog:
    return PackageCatalog(
        cache=TTLCache(clock=clock),
        marketplace=marketplace,  # type: ignore[arg-type]
        versions=versions,
        settings=settings,
    )


class TestParsePackagePicks:
    def test_ids_with_and_without_versions(self) -> None:
        assert parse_package_picks("uSync|14.0.0,Umbraco.Forms") == {
            "uSync": "14.0.0",
            "Umbraco.Forms": None,
        }

    def test_blank_items_and_whitespace(self) -> None:
        assert parse_package_picks(" uSync | 14.0.0 ,, |1.0,") == {"uSync": "14.0.0"}

    def test_later_pick_wins(self) -> None:
        assert parse_package_picks("uSync|13.0.0,uSync|14.0.0") == {"uSync": "14.0.0"}

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty(self, text: str | None) -> None:
        assert parse_package_picks(text) == {}


class TestCachedLookups:
    async def test_packages_cached_within_ttl(
        self, catalog: PackageCatalog, marketplace: StubMarketplace, clock: FakeClock
    ) -> None:
        first = await catalog.get_all_packages()
        clock.advance(timedelta(minutes=59))
        second = await catalog.get_all_packages()

        assert second is first
        assert marketplace.package_calls == 1

    async def test_packages_refetched_after_ttl(
        self, catalog: PackageCatalog, marketplace: StubMarketplace, clock: FakeClock
    ) -> None:
        await catalog.get_all_packages()
        clock.advance(timedelta(minutes=61))
        await catalog.get_all_packages()

        assert marketplace.package_calls == 2

    async def test_templates_cached_separately(
        self, catalog: PackageCatalog, marketplace: StubMarketplace
    ) -> None:
        templates = await catalog.get_all_templates()
        await catalog.get_all_templates()
        await catalog.get_all_packages()

        assert [t.package_id for t in templates] == ["Umbraco.Templates"]
        assert marketplace.template_calls == 1
        assert marketplace.package_calls == 1

    async def test_versions_single_flight_per_package(
        self, catalog: PackageCatalog, versions: StubVersionSource
    ) -> None:
        results = await asyncio.gather(
            catalog.get_package_versions("uSync"),
            catalog.get_package_versions("uSync"),
            catalog.get_package_versions("Umbraco.Forms"),
        )

        assert results[0] == ["uSync-2.0.0", "uSync-1.0.0"]
        assert results[1] is results[0]
        assert sorted(versions.calls) == ["Umbraco.Forms", "uSync"]

    async def test_template_versions_use_configured_package(
        self, catalog: PackageCatalog, versions: StubVersionSource, settings: Settings
    ) -> None:
        await catalog.get_template_versions()
        assert versions.calls == [settings.nuget.template_package]

    async def test_ttl_follows_settings(self, catalog: PackageCatalog) -> None:
        assert catalog.ttl == timedelta(minutes=60)


class TestFailuresNotCached:
    async def test_failed_version_lookup_retried_on_next_call(
        self, catalog: PackageCatalog, versions: StubVersionSource, settings: Settings
    ) -> None:
        versions.failures = 1

        assert await catalog.get_template_versions() == []
        recovered = await catalog.get_template_versions()

        template = settings.nuget.template_package
        assert recovered == [f"{template}-2.0.0", f"{template}-1.0.0"]
        assert versions.calls == [template, template]

    async def test_recovered_versions_are_cached(
        self, catalog: PackageCatalog, versions: StubVersionSource
    ) -> None:
        versions.failures = 1

        await catalog.get_package_versions("uSync")
        await catalog.get_package_versions("uSync")
        await catalog.get_package_versions("uSync")

        assert versions.calls == ["uSync", "uSync"]

    async def test_truncated_listing_returned_but_refetched(
        self, catalog: PackageCatalog, marketplace: StubMarketplace
    ) -> None:
        marketplace.truncated_walks = 1

        partial = await catalog.get_all_packages()
        complete = await catalog.get_all_packages()
        again = await catalog.get_all_packages()

        assert [p.package_id for p in partial] == ["uSync"]
        assert len(complete) == 3
        assert again is complete
        assert marketplace.package_calls == 2


class TestPopulatePackageVersions:
    async def test_only_picked_packages_enriched(
        self, catalog: PackageCatalog, versions: StubVersionSource
    ) -> None:
        packages = await catalog.get_all_packages()
        picks = parse_package_picks("Our.Umbraco.GMaps|3.0.0,uSync,Not.Listed|1.0.0")

        enriched = await catalog.populate_package_versions(packages, picks)

        assert [p.package_id for p in enriched] == ["uSync", "Our.Umbraco.GMaps"]
        assert enriched[0].selected_version == ""
        assert enriched[1].selected_version == "3.0.0"
        assert enriched[1].package_versions == [
            "Our.Umbraco.GMaps-2.0.0",
            "Our.Umbraco.GMaps-1.0.0",
        ]
        assert sorted(versions.calls) == ["Our.Umbraco.GMaps", "uSync"]

    async def test_no_picks(self, catalog: PackageCatalog, versions: StubVersionSource) -> None:
        packages = await catalog.get_all_packages()
        assert await catalog.populate_package_versions(packages, {}) == []
        assert versions.calls == []


class TestClear:
    async def test_clear_drops_listings_and_template_versions(
        self,
        catalog: PackageCatalog,
        marketplace: StubMarketplace,
        versions: StubVersionSource,
        settings: Settings,
    ) -> None:
        await catalog.get_all_packages()
        await catalog.get_all_templates()
        await catalog.get_template_versions()
        await catalog.get_package_versions("uSync")

        catalog.clear()

        await catalog.get_all_packages()
        await catalog.get_all_templates()
        await catalog.get_template_versions()
        await catalog.get_package_versions("uSync")

        assert marketplace.package_calls == 2
        assert marketplace.template_calls == 2
        assert versions.calls.count(settings.nuget.template_package) == 2
        # Per-package version entries survive a clear
        assert versions.calls.count("uSync") == 1

    def test_cache_keys(self) -> None:
        assert ALL_PACKAGES_KEY == "allPackages"
        assert ALL_TEMPLATES_KEY == "allTemplates"
        assert versions_cache_key("uSync") == "uSync_Versions"
