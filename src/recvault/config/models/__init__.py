"""Configuration models for RecVault."""

from recvault.config.models.api_settings import APISettings, TMDBSettings, TraktSettings
from recvault.config.models.app_settings import AppSettings, LoggingSettings, SyncSettings
from recvault.config.models.cache_settings import CacheSettings, NamedCacheSettings
from recvault.config.models.retry_settings import RetryPolicySettings, RetrySettings
from recvault.config.models.settings import Settings

__all__ = [
    "APISettings",
    "AppSettings",
    "CacheSettings",
    "LoggingSettings",
    "NamedCacheSettings",
    "RetryPolicySettings",
    "RetrySettings",
    "Settings",
    "SyncSettings",
    "TMDBSettings",
    "TraktSettings",
]
