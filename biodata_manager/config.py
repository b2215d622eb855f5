"""Runtime settings for the dataset manager."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

TOOL_NAME = "biodata-manager"
TOOL_VERSION = "0.1.0"
DEFAULT_CONFIG_FILENAME = "biodata.json"


def _default_project_root() -> Path:
    return Path.cwd() / ".biodata"


def _default_cache_root() -> Path:
    return Path.home() / ".cache" / TOOL_NAME


class Settings(BaseSettings):
    """Configuration shared by the store, registry clients and CLI."""

    model_config = SettingsConfigDict(
        env_prefix="BIODATA_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Working-directory scoped tier
    project_root: Path = Field(default_factory=_default_project_root)

    # User-global tier, durable across invocations
    cache_root: Path = Field(default_factory=_default_cache_root)

    # Declarative batch file consumed by ``fetch`` without a specifier
    config_path: Path = Path(DEFAULT_CONFIG_FILENAME)

    ncbi_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("BIODATA_NCBI_API_KEY", "NCBI_API_KEY"),
    )

    user_agent: str = f"{TOOL_NAME}/{TOOL_VERSION}"

    # Seconds
    http_timeout: float = 30.0
    download_timeout: float = 300.0

    log_level: str = "INFO"

    # Overrides PATH when looking up external executables
    tool_path: Optional[str] = None

    @property
    def tool_identity(self) -> str:
        return f"{TOOL_NAME}/{TOOL_VERSION}"


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, applying keyword overrides."""
    cleaned = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**cleaned)


__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "Settings",
    "TOOL_NAME",
    "TOOL_VERSION",
    "load_settings",
]
