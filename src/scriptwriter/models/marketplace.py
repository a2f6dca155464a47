from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MARKETPLACE_SITE_URL = "https://marketplace.umbraco.com"


class _MarketplaceModel(BaseModel):
    """Marketplace payloads use camelCase keys; unknown keys are ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Category(_MarketplaceModel):
    id: UUID | None = None
    name: str = ""


class PackageRecord(_MarketplaceModel):
    """Single package or template returned by the marketplace."""

    id: UUID | None = None
    package_id: str = ""
    title: str = ""
    summary: str = Field(default="", alias="description")
    authors: str = ""
    icon_url: str = ""
    downloads: int = Field(default=0, alias="numberOfNuGetDownloads")
    tags: list[str] = []
    umbraco_major_versions_supported: list[int] = []
    license_types: list[str] = []
    minimum_umbraco_version_number: str = ""
    latest_version_number: str = ""
    is_hq: bool = Field(default=False, alias="isHQ")
    is_hq_supported: bool = Field(default=False, alias="isHQSupported")
    is_promoted: bool = False
    is_partner: bool = False
    category: Category = Category()

    # Filled in per request by PackageCatalog.populate_package_versions
    package_versions: list[str] = []
    selected_version: str = ""

    @property
    def url(self) -> str:
        return f"{MARKETPLACE_SITE_URL}/package/{self.package_id.lower()}"

    @property
    def image(self) -> str:
        return f"{MARKETPLACE_SITE_URL}/{self.icon_url}"


class MarketplacePage(_MarketplaceModel):
    """One page of a marketplace listing."""

    results: list[PackageRecord | None] = []
    total_results: int = 0
