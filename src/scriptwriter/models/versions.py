from __future__ import annotations

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class PackageVersionIndex(BaseModel):
    """Body of a flat-container ``index.json``: versions in ascending publish order."""

    versions: list[str]


class SupportLifecycleRecord(BaseModel):
    """Support lifecycle of one major version, as configured.

    Dates are compared against a local "start of tomorrow" instant, so they are
    normalised to naive local datetimes on load.
    """

    version: int  # major version number
    release_date: datetime
    release_type: str | None = None  # "LTS" | "STS"
    support_phase: datetime | None = None
    security_phase: datetime | None = None
    end_of_life: datetime | None = None
    url: str | None = None

    @field_validator(
        "release_date", "support_phase", "security_phase", "end_of_life", mode="before"
    )
    @classmethod
    def normalise_date(cls, v: object) -> object:
        if v is None or v == "":
            return None
        if isinstance(v, str):
            v = datetime.fromisoformat(v)
        elif isinstance(v, date) and not isinstance(v, datetime):
            v = datetime.combine(v, time.min)
        if isinstance(v, datetime) and v.tzinfo is not None:
            v = v.astimezone().replace(tzinfo=None)
        return v


class NuGetSearchResult(BaseModel):
    """Single hit from the NuGet search service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = ""
    version: str = ""
    description: str = ""
    authors: list[str] = []
    total_downloads: int = 0
    verified: bool = False
    tags: list[str] = []


class NuGetSearchResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    total_hits: int = 0
    data: list[NuGetSearchResult] = []
