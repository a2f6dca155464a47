"""Shared test fixtures for the scriptwriter test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from scriptwriter.config import (
    CacheSettings,
    MarketplaceSettings,
    NuGetSettings,
    Settings,
)
from scriptwriter.models.versions import SupportLifecycleRecord

MARKETPLACE_BASE_URL = "https://marketplace.test/api/v1.0"
FLAT_CONTAINER_URL = "https://nuget.test/v3-flatcontainer"
SEARCH_URL = "https://search.nuget.test/query"


class FakeClock:
    """Manually advanced UTC clock for cache expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    """Settings pointing every upstream at test hosts."""
    return Settings(
        marketplace=MarketplaceSettings(base_url=MARKETPLACE_BASE_URL),
        nuget=NuGetSettings(flat_container_url=FLAT_CONTAINER_URL, search_url=SEARCH_URL),
        cache=CacheSettings(ttl_minutes=60),
    )


@pytest.fixture()
def lifecycle() -> list[SupportLifecycleRecord]:
    """v13 LTS still in security support, v14 STS."""
    return [
        SupportLifecycleRecord(
            version=13,
            release_type="LTS",
            release_date="2023-01-01",
            security_phase="2026-01-01",
            end_of_life="2026-12-14",
        ),
        SupportLifecycleRecord(
            version=14,
            release_type="STS",
            release_date="2024-01-01",
            security_phase="2025-01-01",
            end_of_life="2025-03-01",
        ),
    ]
