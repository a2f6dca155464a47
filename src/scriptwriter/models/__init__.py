from __future__ import annotations

from scriptwriter.models.cache import CacheEntry
from scriptwriter.models.marketplace import Category, MarketplacePage, PackageRecord
from scriptwriter.models.validation import CommandPattern, Diagnostic, ValidationResult
from scriptwriter.models.versions import (
    NuGetSearchResponse,
    NuGetSearchResult,
    PackageVersionIndex,
    SupportLifecycleRecord,
)

__all__ = [
    # marketplace
    "Category",
    "PackageRecord",
    "MarketplacePage",
    # versions
    "PackageVersionIndex",
    "SupportLifecycleRecord",
    "NuGetSearchResult",
    "NuGetSearchResponse",
    # cache
    "CacheEntry",
    # validation
    "CommandPattern",
    "Diagnostic",
    "ValidationResult",
]
