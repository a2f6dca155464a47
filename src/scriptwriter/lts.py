"""Recommended long-term-support version resolution.

Combines the configured support lifecycle table with the live list of
published template versions. Missing data at any step yields ``None``;
nothing here raises for absent configuration.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scriptwriter.models.versions import SupportLifecycleRecord
    from scriptwriter.protocols import TemplateVersionsProtocol

log = structlog.get_logger()

LTS_RELEASE_TYPE = "LTS"


def reference_instant(now: datetime | None = None) -> datetime:
    """Start of the next local calendar day.

    A release that becomes effective today already counts as released.
    """
    now = now or datetime.now()
    return datetime.combine(now.date() + timedelta(days=1), time.min)


def select_lts_release(
    records: Sequence[SupportLifecycleRecord] | None,
    reference: datetime,
) -> SupportLifecycleRecord | None:
    """Last LTS record in list order that is released and in security support at ``reference``.

    List order decides ties; the table is expected in ascending major order.
    """
    selected = None
    for record in records or ():
        if (
            record.release_type == LTS_RELEASE_TYPE
            and record.release_date < reference
            and record.security_phase is not None
            and record.security_phase >= reference
        ):
            selected = record
    return selected


def first_stable_version(versions: Sequence[str], major: int) -> str | None:
    """First version of ``major`` in ``versions`` without a pre-release suffix."""
    # Dotted prefix so major 1 does not match 13.x
    prefix = f"{major}."
    for candidate in versions:
        if "-" in candidate:
            continue
        if candidate == str(major) or candidate.startswith(prefix):
            return candidate
    return None


async def get_latest_lts_version(
    records: Sequence[SupportLifecycleRecord] | None,
    versions: TemplateVersionsProtocol,
    *,
    now: datetime | None = None,
) -> str | None:
    """Current recommended LTS version string, or ``None`` if it cannot be determined."""
    if not records:
        return None

    reference = reference_instant(now)
    release = select_lts_release(records, reference)
    if release is None:
        log.info("lts_release_not_found", reference=reference.isoformat())
        return None

    published = await versions.get_template_versions()
    if not published:
        return None

    latest = first_stable_version(published, release.version)
    log.debug("lts_version_resolved", major=release.version, version=latest)
    return latest
