"""
Core module for the Vairified client.

This module provides the foundational components:
- Configuration management (config.py)
- Wire payload types (types.py)
- HTTP request execution (http.py)

Usage:
    from vairified.core import Settings, get_settings, Environment
    from vairified.core.http import BaseApiClient
"""

# Configuration
from .config import (
    DEFAULT_ENVIRONMENT,
    DEFAULT_TIMEOUT,
    ENVIRONMENT_URLS,
    Environment,
    Settings,
    configure_logging,
    get_settings,
)

# Types
from .types import (
    ApiModel,
    LegacySearchPlayerData,
    MemberData,
    SearchPlayerData,
    SearchResultsData,
    coerce_rating,
)

__all__ = [
    # Config
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_TIMEOUT",
    "ENVIRONMENT_URLS",
    "Environment",
    "Settings",
    "configure_logging",
    "get_settings",
    # Types
    "ApiModel",
    "LegacySearchPlayerData",
    "MemberData",
    "SearchPlayerData",
    "SearchResultsData",
    "coerce_rating",
]
