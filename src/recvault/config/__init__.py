"""Configuration for RecVault.

Settings are pydantic-settings models loaded from TOML files, .env files
and ``RECVAULT_`` environment variables.
"""

from recvault.config.loader import (
    SettingsLoader,
    configure,
    get_config,
    load_settings,
    reload_config,
)
from recvault.config.models import (
    APISettings,
    AppSettings,
    CacheSettings,
    LoggingSettings,
    NamedCacheSettings,
    RetryPolicySettings,
    RetrySettings,
    Settings,
    SyncSettings,
    TMDBSettings,
    TraktSettings,
)

__all__ = [
    "APISettings",
    "AppSettings",
    "CacheSettings",
    "LoggingSettings",
    "NamedCacheSettings",
    "RetryPolicySettings",
    "RetrySettings",
    "Settings",
    "SettingsLoader",
    "SyncSettings",
    "TMDBSettings",
    "TraktSettings",
    "configure",
    "get_config",
    "load_settings",
    "reload_config",
]
