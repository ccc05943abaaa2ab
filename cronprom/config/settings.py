from __future__ import annotations

"""Process settings using Pydantic Settings.

Loads configuration from environment variables and optional .env file. The
metric definitions themselves live in the YAML file at ``CRONPROM_CONFIG_PATH``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cronprom.version import DEFAULT_COMMIT, DEFAULT_DATE, __version__


class Settings(BaseSettings):
    """Top-level process configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # serve
    config_path: Optional[Path] = Field(default=None, validation_alias="CRONPROM_CONFIG_PATH")

    # push
    push_url: Optional[str] = Field(default=None, validation_alias="CRONPROM_URL")
    push_timeout_seconds: float = Field(default=10.0, validation_alias="CRONPROM_PUSH_TIMEOUT")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    # Build info, normally injected by the release pipeline
    build_version: str = Field(default=__version__, validation_alias="CRONPROM_BUILD_VERSION")
    build_commit: str = Field(default=DEFAULT_COMMIT, validation_alias="CRONPROM_BUILD_COMMIT")
    build_date: str = Field(default=DEFAULT_DATE, validation_alias="CRONPROM_BUILD_DATE")

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in levels:
            raise ValueError("Invalid LOG_LEVEL")
        return v.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""

    return Settings()
