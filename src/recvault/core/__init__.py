"""Core building blocks: the bounded TTL cache and periodic tasks."""

from recvault.core.bounded_cache import BoundedTTLCache, CacheEntry
from recvault.core.periodic import PeriodicTask

__all__ = ["BoundedTTLCache", "CacheEntry", "PeriodicTask"]
