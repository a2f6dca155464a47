"""Shared HTTP client construction.

Every upstream call (marketplace pages, version indexes, Atom feeds, search)
goes through one ``httpx.AsyncClient`` created at startup. The clients in
marketplace.py and nuget.py receive it via constructor injection; the
lifespan in app.py owns its lifecycle.
"""

from __future__ import annotations

import httpx

from scriptwriter.config import HttpSettings


def build_http_client(settings: HttpSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    settings = settings or HttpSettings()
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )
