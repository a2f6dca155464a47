"""Protocol interfaces for swappable components.

The catalog and the LTS resolver reference these protocols, not the concrete
implementations, so tests can pass lightweight in-memory stand-ins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import timedelta

T = TypeVar("T")


class CacheProtocol(Protocol):
    """Interface for the lookup cache."""

    def get(self, key: str) -> Any | None: ...

    async def get_or_create(
        self,
        key: str,
        ttl: timedelta,
        factory: Callable[[], T | Awaitable[T]],
    ) -> T: ...

    def remove(self, key: str) -> bool: ...

    def clear(self) -> None: ...

    def cleanup_expired(self) -> int: ...


class VersionSourceProtocol(Protocol):
    """Interface for the published-version lookup."""

    async def get_package_versions(self, package_id: str) -> list[str]: ...

    async def fetch_package_versions(self, package_id: str) -> list[str]:
        """Like ``get_package_versions`` but raises ScriptWriterError on failure."""
        ...


class TemplateVersionsProtocol(Protocol):
    """Anything that can list the tracked template package's versions, newest first."""

    async def get_template_versions(self) -> list[str]: ...
