"""Published-version lookups against NuGet.

Two independent paths:

- the flat-container index (``index.json``, JSON, ascending), which degrades
  to an empty list on any failure (``fetch_package_versions`` is the strict
  variant that raises, used behind the cache);
- the legacy package Atom feed (``atom.xml``), whose failures propagate as
  ``ScriptWriterError``.

The asymmetry matches how each path is used: the flat index feeds
interactive version pickers where "no versions" is an acceptable answer, the
feed is an explicit lookup whose caller decides how to report failure.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from scriptwriter.errors import ErrorCode, ScriptWriterError
from scriptwriter.models.versions import (
    NuGetSearchResponse,
    NuGetSearchResult,
    PackageVersionIndex,
)

if TYPE_CHECKING:
    from scriptwriter.config import NuGetSettings

log = structlog.get_logger()

_ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


def parse_atom_versions(xml_content: str) -> list[str]:
    """Extract version numbers from an Atom feed, in feed order.

    The version is the last ``/``-separated segment of each entry's ``id``.
    Raises ``xml.etree.ElementTree.ParseError`` on malformed XML.
    """
    root = ET.fromstring(xml_content)
    versions: list[str] = []
    for entry in root.iterfind("atom:entry", _ATOM_NS):
        entry_id = entry.findtext("atom:id", default="", namespaces=_ATOM_NS).strip()
        if entry_id:
            versions.append(entry_id.split("/")[-1])
    return versions


class NuGetClient:
    """Version Source backed by the NuGet flat container and package feeds."""

    def __init__(self, client: httpx.AsyncClient, settings: NuGetSettings) -> None:
        self._client = client
        self._settings = settings

    def flat_index_url(self, package_id: str) -> str:
        base = self._settings.flat_container_url.rstrip("/")
        return f"{base}/{package_id.lower()}/index.json"

    async def get_package_versions(self, package_id: str) -> list[str]:
        """Published versions of ``package_id``, newest first.

        Returns an empty list on any failure (network, status, body).
        """
        try:
            return await self.fetch_package_versions(package_id)
        except ScriptWriterError as exc:
            log.warning(
                "package_versions_fetch_failed",
                package_id=package_id,
                code=exc.code,
                error=exc.message,
            )
            return []

    async def fetch_package_versions(self, package_id: str) -> list[str]:
        """Published versions of ``package_id``, newest first.

        Raises ScriptWriterError (VERSION_INDEX_FETCH_FAILED) on any failure.
        """
        url = self.flat_index_url(package_id)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ScriptWriterError(
                code=ErrorCode.VERSION_INDEX_FETCH_FAILED,
                message=f"Failed to fetch version index {url}: {exc}",
                suggestion="NuGet may be temporarily unavailable; retry later.",
                recoverable=True,
            ) from exc

        try:
            index = PackageVersionIndex.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ScriptWriterError(
                code=ErrorCode.VERSION_INDEX_FETCH_FAILED,
                message=f"Version index {url} has an unexpected body: {exc}",
                suggestion="Check that flat_container_url points at a NuGet flat container.",
                recoverable=True,
            ) from exc

        log.debug("package_versions_fetched", package_id=package_id, count=len(index.versions))
        return list(reversed(index.versions))

    async def get_feed_versions(self, package_url: str) -> list[str]:
        """Versions listed in ``{package_url}/atom.xml``, in feed order.

        Raises ScriptWriterError for a blank URL, or when the feed cannot be
        fetched or parsed.
        """
        if not package_url or not package_url.strip():
            raise ScriptWriterError(
                code=ErrorCode.INVALID_INPUT,
                message="Package feed URL must not be empty.",
                suggestion="Pass the package's feed URL, without the atom.xml suffix.",
                recoverable=False,
            )

        url = f"{package_url.strip().rstrip('/')}/atom.xml"
        try:
            response = await self._client.get(url, headers={"Accept": "application/xml"})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ScriptWriterError(
                code=ErrorCode.VERSION_FEED_FETCH_FAILED,
                message=f"Failed to fetch version feed {url}: {exc}",
                suggestion="The package feed may be temporarily unavailable.",
                recoverable=True,
            ) from exc

        try:
            versions = parse_atom_versions(response.text)
        except ET.ParseError as exc:
            raise ScriptWriterError(
                code=ErrorCode.VERSION_FEED_INVALID,
                message=f"Version feed {url} is not valid Atom XML: {exc}",
                suggestion="Check that the package URL points at a package feed.",
                recoverable=False,
            ) from exc

        log.debug("feed_versions_fetched", url=url, count=len(versions))
        return versions

    async def search_packages(self, term: str, take: int = 20) -> list[NuGetSearchResult]:
        """Search NuGet for stable packages matching ``term``.

        Blank terms return an empty list without a request; so does any failure.
        """
        if not term or not term.strip():
            return []

        params: dict[str, str | int] = {"q": term.strip(), "take": take, "prerelease": "false"}
        try:
            response = await self._client.get(self._settings.search_url, params=params)
            if not response.is_success:
                log.warning(
                    "package_search_failed",
                    term=term,
                    reason="http_status",
                    status_code=response.status_code,
                )
                return []
            return NuGetSearchResponse.model_validate(response.json()).data
        except httpx.HTTPError as exc:
            log.warning("package_search_failed", term=term, reason="network_error", error=str(exc))
            return []
        except (ValueError, ValidationError):
            log.warning("package_search_failed", term=term, reason="invalid_payload", exc_info=True)
            return []
