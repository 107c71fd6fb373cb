"""Cache configuration model.

Capacity and lifetime of each named cache, and where and how often the
caches are persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, PositiveFloat

from recvault.shared.constants import (
    DEFAULT_NAMED_CACHES,
    CacheDefaults,
    FileSystem,
)


class NamedCacheSettings(BaseModel):
    """Sizing of one named cache."""

    max_size: int = Field(gt=0, description="Maximum number of entries")
    ttl_seconds: PositiveFloat | None = Field(
        default=CacheDefaults.DEFAULT_TTL,
        description="Entry lifetime in seconds; None disables expiry",
    )


def _default_named_caches() -> dict[str, NamedCacheSettings]:
    return {
        name: NamedCacheSettings(max_size=max_size, ttl_seconds=ttl)
        for name, (max_size, ttl) in DEFAULT_NAMED_CACHES.items()
    }


class CacheSettings(BaseModel):
    """Cache registry and persistence configuration."""

    persistence_dir: str = Field(
        default=FileSystem.CACHE_DIRECTORY,
        description="Directory holding persisted cache snapshots",
    )
    persistence_enabled: bool = Field(default=True)
    persist_interval: float = Field(
        default=CacheDefaults.PERSIST_INTERVAL,
        gt=0,
        description="Seconds between periodic snapshots",
    )
    stats_interval: float = Field(
        default=CacheDefaults.STATS_INTERVAL,
        gt=0,
        description="Seconds between cache statistics log lines",
    )
    compression_level: int = Field(
        default=CacheDefaults.COMPRESSION_LEVEL,
        ge=1,
        le=9,
    )
    named: dict[str, NamedCacheSettings] = Field(default_factory=_default_named_caches)


__all__ = ["CacheSettings", "NamedCacheSettings"]
