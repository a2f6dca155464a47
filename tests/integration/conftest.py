"""Integration test fixtures.

Provides a fully wired AppState from ``app.lifespan`` with every upstream
pointed at the test hosts in tests/conftest.py. HTTP is mocked per test with
respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from scriptwriter.app import lifespan
from scriptwriter.config import Settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from scriptwriter.models.versions import SupportLifecycleRecord
    from scriptwriter.state import AppState


@pytest.fixture()
def app_settings(settings: Settings, lifecycle: list[SupportLifecycleRecord]) -> Settings:
    return settings.model_copy(update={"lifecycle": lifecycle})


@pytest.fixture()
async def app_state(app_settings: Settings) -> AsyncGenerator[AppState, None]:
    async with lifespan(app_settings) as state:
        yield state
