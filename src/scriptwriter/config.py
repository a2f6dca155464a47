"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SCRIPTWRITER__CACHE__TTL_MINUTES=120)
  2. scriptwriter.yaml      (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have defaults. The support
lifecycle table lives under ``lifecycle:`` in the YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from scriptwriter.models.versions import SupportLifecycleRecord


def _find_config_file() -> str | None:
    """Return the path of the first scriptwriter.yaml found, or None."""
    candidates = [
        Path("scriptwriter.yaml"),
        Path(platformdirs.user_config_dir("scriptwriter")) / "scriptwriter.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class MarketplaceSettings(BaseModel):
    base_url: str = "https://api.marketplace.umbraco.com/api/v1.0"
    page_size: int = Field(default=50, gt=0)
    template_category_id: str = "b239f1b7-31f6-4665-bf03-2ab985c64ac0"


class NuGetSettings(BaseModel):
    flat_container_url: str = "https://api.nuget.org/v3-flatcontainer"
    search_url: str = "https://azuresearch-usnc.nuget.org/query"
    # Package whose published versions drive LTS resolution
    template_package: str = "Umbraco.Templates"


class HttpSettings(BaseModel):
    timeout_seconds: float = 30.0
    user_agent: str = "scriptwriter/1.0"


class CacheSettings(BaseModel):
    enabled: bool = True
    ttl_minutes: int = 60
    cleanup_interval_minutes: int = 30


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SCRIPTWRITER__MARKETPLACE__PAGE_SIZE=25
        env_prefix="SCRIPTWRITER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    marketplace: MarketplaceSettings = MarketplaceSettings()
    nuget: NuGetSettings = NuGetSettings()
    http: HttpSettings = HttpSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()
    # Ordered ascending by major version; the LTS resolver relies on list order
    lifecycle: list[SupportLifecycleRecord] = []

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
