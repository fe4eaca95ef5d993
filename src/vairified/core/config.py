"""
Configuration management for the Vairified client.

Uses Pydantic settings for type-safe configuration with environment variable support.
Every setting can be overridden via a ``VAIRIFIED_``-prefixed environment variable
or a ``.env`` file:

    VAIRIFIED_API_KEY=vair_pk_xxx
    VAIRIFIED_ENV=staging
    VAIRIFIED_TIMEOUT=10
"""

import logging
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Named API environment presets."""

    PRODUCTION = "production"
    STAGING = "staging"
    LOCAL = "local"

    @property
    def base_url(self) -> str:
        return ENVIRONMENT_URLS[self]


# "production" points to the current active API
ENVIRONMENT_URLS: dict[Environment, str] = {
    Environment.PRODUCTION: "https://api-next.vairified.com/api/v1",
    Environment.STAGING: "https://api-staging.vairified.com/api/v1",
    Environment.LOCAL: "http://localhost:3001/api/v1",
}

DEFAULT_ENVIRONMENT = Environment.PRODUCTION
DEFAULT_TIMEOUT = 30.0


class Settings(BaseSettings):
    """
    Client settings with environment variable support.

    Values passed explicitly to the client always take precedence over these.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAIRIFIED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Authentication
    # ==========================================================================
    api_key: Optional[str] = Field(
        default=None,
        description="Partner API key (vair_pk_xxx)",
    )

    # ==========================================================================
    # Endpoint Selection
    # ==========================================================================
    env: Optional[str] = Field(
        default=None,
        description="production, staging, local",
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Explicit API base URL, overrides the environment preset",
    )

    # ==========================================================================
    # Requests
    # ==========================================================================
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
