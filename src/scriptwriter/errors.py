from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scriptwriter.models.marketplace import PackageRecord


class ErrorCode(StrEnum):
    VERSION_INDEX_FETCH_FAILED = "VERSION_INDEX_FETCH_FAILED"
    VERSION_FEED_FETCH_FAILED = "VERSION_FEED_FETCH_FAILED"
    VERSION_FEED_INVALID = "VERSION_FEED_INVALID"
    MARKETPLACE_INCOMPLETE = "MARKETPLACE_INCOMPLETE"
    INVALID_INPUT = "INVALID_INPUT"


class ScriptWriterError(Exception):
    """Raised for expected failure conditions that the caller must handle.

    The public degrading paths (``MarketplaceClient.fetch_all``,
    ``NuGetClient.get_package_versions``) catch these and return partial or
    empty results. The strict variants behind them raise, so the catalog can
    keep failures out of the cache.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class IncompleteListingError(ScriptWriterError):
    """A marketplace walk stopped early. ``records`` holds what was collected."""

    def __init__(self, records: list[PackageRecord], total: int) -> None:
        super().__init__(
            code=ErrorCode.MARKETPLACE_INCOMPLETE,
            message=f"Marketplace listing incomplete: {len(records)} of {total} records",
            suggestion="The marketplace may be temporarily unavailable; retry later.",
            recoverable=True,
        )
        self.records = records
        self.total = total
