"""Registry of named bounded caches.

One ``CacheRegistry`` is built at startup from configuration and handed to
every component that needs cache access. It aggregates statistics, converts
all caches to a serializable payload for persistence, and keeps a few
ancillary counters that are persisted alongside the caches.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from typing import Any

from recvault.config.models.cache_settings import CacheSettings
from recvault.core.bounded_cache import BoundedTTLCache, CacheEntry
from recvault.shared.constants import CounterNames, PersistenceLayout
from recvault.shared.errors import (
    ApplicationError,
    create_cache_not_found_error,
    create_validation_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time statistics of one named cache."""

    name: str
    size: int
    max_size: int
    ttl_seconds: float | None

    @property
    def usage_percentage(self) -> float:
        return round(self.size / self.max_size * 100, 2) if self.max_size else 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["usage_percentage"] = self.usage_percentage
        return data


class CacheRegistry:
    """Owns the named caches of one process.

    Args:
        clock: Time source shared by every cache the registry creates.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._caches: dict[str, BoundedTTLCache] = {}
        self._counters: dict[str, int] = {CounterNames.QUERY_COUNTER: 0}
        self._counter_lock = threading.Lock()

    def register(
        self,
        name: str,
        max_size: int,
        ttl_seconds: float | None = None,
    ) -> BoundedTTLCache:
        """Create the cache ``name``; re-registering returns the existing one."""
        if name == PersistenceLayout.STATS_NAME:
            raise create_validation_error(
                f"'{name}' is reserved for counters",
                field="name",
                operation="register_cache",
            )
        existing = self._caches.get(name)
        if existing is not None:
            return existing

        cache = BoundedTTLCache(max_size, ttl_seconds, name=name, clock=self._clock)
        self._caches[name] = cache
        logger.debug(
            "Registered cache '%s' (max_size=%d, ttl=%s)", name, max_size, ttl_seconds
        )
        return cache

    def get(self, name: str) -> BoundedTTLCache:
        try:
            return self._caches[name]
        except KeyError:
            raise create_cache_not_found_error(name) from None

    def names(self) -> list[str]:
        return list(self._caches)

    def __contains__(self, name: object) -> bool:
        return name in self._caches

    def __iter__(self):
        return iter(self._caches.items())

    # Statistics -------------------------------------------------------

    def stats_snapshot(self) -> dict[str, CacheStats]:
        return {
            name: CacheStats(
                name=name,
                size=cache.size,
                max_size=cache.max_size,
                ttl_seconds=cache.ttl_seconds,
            )
            for name, cache in self._caches.items()
        }

    def log_stats(self) -> None:
        """Emit one log line per cache with its current usage."""
        for stats in self.stats_snapshot().values():
            logger.info(
                "Cache '%s': %d/%d entries (%.2f%%)",
                stats.name,
                stats.size,
                stats.max_size,
                stats.usage_percentage,
                extra={"operation": "cache_stats", "context": stats.to_dict()},
            )

    # Counters ---------------------------------------------------------

    def increment_counter(self, name: str = CounterNames.QUERY_COUNTER, amount: int = 1) -> int:
        with self._counter_lock:
            value = self._counters.get(name, 0) + amount
            self._counters[name] = value
            return value

    def get_counter(self, name: str = CounterNames.QUERY_COUNTER) -> int:
        with self._counter_lock:
            return self._counters.get(name, 0)

    def set_counter(self, value: int, name: str = CounterNames.QUERY_COUNTER) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise create_validation_error(
                f"Counter '{name}' must be a non-negative integer, got {value!r}",
                field=name,
                operation="set_counter",
            )
        with self._counter_lock:
            self._counters[name] = value

    def counters(self) -> dict[str, int]:
        with self._counter_lock:
            return dict(self._counters)

    # Serialization ----------------------------------------------------

    def serialize_cache(self, name: str) -> dict[str, Any]:
        """Live entries of one cache in recency order, tagged with its configuration."""
        cache = self.get(name)
        return {
            "max_size": cache.max_size,
            "ttl_seconds": cache.ttl_seconds,
            "entries": [entry.to_dict() for entry in cache.snapshot()],
        }

    def serialize_all(self) -> dict[str, dict[str, Any]]:
        """Payload for every cache plus the counters under the reserved stats name."""
        payload = {name: self.serialize_cache(name) for name in self._caches}
        payload[PersistenceLayout.STATS_NAME] = {"counters": self.counters()}
        return payload

    def restore_cache(self, name: str, data: dict[str, Any]) -> int:
        """Replace the contents of ``name`` with a serialized payload.

        The running configuration wins over the one recorded in ``data``.
        Expired entries are dropped.

        Returns:
            Number of entries loaded.
        """
        cache = self.get(name)
        entries = [CacheEntry.from_dict(item) for item in data.get("entries", [])]
        loaded = cache.restore(entries)
        if data.get("max_size") not in (None, cache.max_size):
            logger.info(
                "Cache '%s' was persisted with max_size=%s; using configured %d",
                name,
                data.get("max_size"),
                cache.max_size,
            )
        return loaded

    def restore_counters(self, data: dict[str, Any]) -> None:
        for counter, value in (data.get("counters") or {}).items():
            try:
                self.set_counter(value, counter)
            except ApplicationError:
                logger.warning("Ignoring invalid persisted counter '%s'", counter)

    def restore_all(self, payload: dict[str, dict[str, Any]]) -> dict[str, int]:
        """Restore every known cache found in ``payload``.

        Unknown names are skipped with a warning.

        Returns:
            Entries loaded per cache name.
        """
        loaded: dict[str, int] = {}
        for name, data in payload.items():
            if name == PersistenceLayout.STATS_NAME:
                self.restore_counters(data)
            elif name in self._caches:
                loaded[name] = self.restore_cache(name, data)
            else:
                logger.warning("Skipping persisted data for unknown cache '%s'", name)
        return loaded

    # Administration ---------------------------------------------------

    def clear_named(self, name: str) -> int:
        """Clear one cache and return its prior size."""
        previous = self.get(name).clear()
        logger.info(
            "Cleared cache '%s' (%d entries)",
            name,
            previous,
            extra={
                "operation": "clear_cache",
                "context": {"cache": name, "previous_size": previous},
            },
        )
        return previous

    def clear_all(self) -> dict[str, int]:
        return {name: self.clear_named(name) for name in self._caches}

    def list_keys(self, name: str) -> list[str]:
        return self.get(name).keys()

    def remove_item(self, name: str, key: str) -> bool:
        return self.get(name).delete(key)

    def remove_matching(
        self,
        name: str,
        predicate: Callable[[str, Any], bool],
    ) -> list[str]:
        """Delete every live entry of ``name`` for which ``predicate(key, value)`` holds.

        Returns:
            The removed keys.
        """
        cache = self.get(name)
        removed = [
            entry.key for entry in cache.snapshot() if predicate(entry.key, entry.value)
        ]
        for key in removed:
            cache.delete(key)
        if removed:
            logger.info("Removed %d entries from cache '%s'", len(removed), name)
        return removed


def create_default_registry(
    settings: CacheSettings,
    *,
    clock: Callable[[], float] = time.time,
    names: Iterable[str] | None = None,
) -> CacheRegistry:
    """Build a registry holding every configured named cache.

    Args:
        settings: Cache configuration.
        clock: Time source for the caches.
        names: Restrict the registry to these cache names.
    """
    registry = CacheRegistry(clock=clock)
    wanted = set(names) if names is not None else None
    for name, named in settings.named.items():
        if wanted is None or name in wanted:
            registry.register(name, named.max_size, named.ttl_seconds)
    return registry
