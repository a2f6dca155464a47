"""Marketplace aggregation: walk a paginated listing until every record is in.

The marketplace reports the total result count only on page 1, and each later
request's size depends on how many records have been collected so far, so
pages are fetched strictly one after another. The last page ("tail page") is
shrunk to exactly the remaining count.

Upstream failures never escape ``fetch_all``: the loop stops and whatever was
accumulated is returned. Callers must treat the result as possibly incomplete.
``fetch_complete`` runs the same walk but raises ``IncompleteListingError``
instead, for callers that must not store a truncated listing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from scriptwriter.errors import IncompleteListingError
from scriptwriter.models.marketplace import MarketplacePage, PackageRecord

if TYPE_CHECKING:
    from scriptwriter.config import MarketplaceSettings

log = structlog.get_logger()

_PACKAGE_FIELDS = ",".join(
    [
        "numberOfNuGetDownloads",
        "authors",
        "packageType",
        "licenseTypes",
        "iconUrl",
        "minimumUmbracoVersionNumber",
        "maximumUmbracoVersionNumber",
        "isCertifiedToWorkOnUmbracoCloud",
        "isPromoted",
        "isPartner",
        "isHQ",
        "isHQSupported",
        "id",
        "title",
        "description",
        "packageId",
        "tags",
        "umbracoMajorVersionsSupported",
        "iconDominantColor",
        "Category",
    ]
)


class MarketplaceQuery(StrEnum):
    PACKAGES = "packages"
    TEMPLATES = "templates"


@dataclass
class PagingState:
    """Progress of one ``fetch_all`` call."""

    page_number: int = 1
    page_size: int = 50
    total: int = 0
    fetched: int = 0
    is_tail: bool = False

    @property
    def has_more(self) -> bool:
        # Page 1 is always requested: the total is unknown until it arrives.
        return self.page_number == 1 or self.fetched < self.total

    def advance_to_next_page(self) -> None:
        """Size the upcoming request, shrinking it to the remainder on the tail page."""
        remaining = self.total - self.fetched
        self.is_tail = self.page_number > 1 and remaining < self.page_size
        if self.is_tail:
            self.page_size = remaining


def build_query_params(
    query: MarketplaceQuery,
    *,
    page_size: int,
    page_number: int,
    template_category_id: str,
) -> dict[str, str | int]:
    """Query string for one marketplace page."""
    if query is MarketplaceQuery.PACKAGES:
        params: dict[str, str | int] = {
            "orderBy": "MostDownloads",
            "fields": _PACKAGE_FIELDS,
        }
    elif query is MarketplaceQuery.TEMPLATES:
        params = {
            "packageType": "Template",
            "categoryId": template_category_id,
            "fields": "title,packageId",
        }
    else:
        raise ValueError(f"Unknown marketplace query: {query!r}")
    params["pageSize"] = page_size
    params["pageNumber"] = page_number
    return params


class MarketplaceClient:
    """Sequential pager over the marketplace package listing."""

    def __init__(self, client: httpx.AsyncClient, settings: MarketplaceSettings) -> None:
        self._client = client
        self._settings = settings

    @property
    def packages_url(self) -> str:
        return f"{self._settings.base_url.rstrip('/')}/packages"

    async def fetch_all_packages(self) -> list[PackageRecord]:
        return await self.fetch_all(MarketplaceQuery.PACKAGES)

    async def fetch_all_templates(self) -> list[PackageRecord]:
        return await self.fetch_all(MarketplaceQuery.TEMPLATES)

    async def fetch_all(self, query: MarketplaceQuery) -> list[PackageRecord]:
        """Collect every record for ``query``.

        Never raises for upstream failures; returns the records gathered
        before the failure (possibly none).
        """
        try:
            return await self.fetch_complete(query)
        except IncompleteListingError as exc:
            return exc.records

    async def fetch_complete(self, query: MarketplaceQuery) -> list[PackageRecord]:
        """Collect every record for ``query``, or raise.

        Raises IncompleteListingError, carrying the partial records, when the
        walk stops before the reported total.
        """
        state = PagingState(page_size=self._settings.page_size)
        records: list[PackageRecord] = []
        query_log = log.bind(query=str(query))
        complete = True

        while state.has_more:
            state.advance_to_next_page()

            page = await self._fetch_page(query, state, query_log)
            if page is None:
                complete = False
                break

            if state.page_number == 1:
                state.total = page.total_results

            received = [record for record in page.results if record is not None]
            records.extend(received)
            state.fetched = len(records)
            query_log.debug(
                "marketplace_page_fetched",
                page_number=state.page_number,
                page_size=state.page_size,
                received=len(received),
                fetched=state.fetched,
                total=state.total,
            )

            if state.is_tail:
                break
            if not received and state.fetched < state.total:
                # An empty page before the reported total would never advance.
                query_log.warning(
                    "marketplace_page_empty",
                    page_number=state.page_number,
                    fetched=state.fetched,
                    total=state.total,
                )
                complete = False
                break

            state.page_number += 1

        query_log.info(
            "marketplace_fetch_complete",
            records=len(records),
            total=state.total,
            partial=not complete,
        )
        if not complete:
            raise IncompleteListingError(records, state.total)
        return records

    async def _fetch_page(
        self,
        query: MarketplaceQuery,
        state: PagingState,
        query_log: structlog.typing.FilteringBoundLogger,
    ) -> MarketplacePage | None:
        """Request one page. Returns ``None`` on any transport or decoding failure."""
        params = build_query_params(
            query,
            page_size=state.page_size,
            page_number=state.page_number,
            template_category_id=self._settings.template_category_id,
        )
        try:
            response = await self._client.get(self.packages_url, params=params)
        except httpx.HTTPError as exc:
            query_log.warning(
                "marketplace_fetch_failed",
                reason="network_error",
                page_number=state.page_number,
                error=str(exc),
            )
            return None

        if not response.is_success:
            query_log.warning(
                "marketplace_fetch_failed",
                reason="http_status",
                page_number=state.page_number,
                status_code=response.status_code,
            )
            return None

        try:
            return MarketplacePage.model_validate(response.json())
        except (ValueError, ValidationError):
            query_log.warning(
                "marketplace_fetch_failed",
                reason="invalid_payload",
                page_number=state.page_number,
                exc_info=True,
            )
            return None
