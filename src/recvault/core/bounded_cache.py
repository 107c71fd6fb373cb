"""Bounded in-memory cache with per-entry time-to-live.

Recency is tracked with a single ordered mapping: every write and every
live read moves the key to the tail, so the head is always the
least-recently-touched key and the only eviction candidate. Keys touched
within the same clock tick are ordered by access sequence, not by time,
which makes this an approximation of strict LRU.

Expiry is lazy. An expired entry stays in memory (and counts towards
``size``) until a ``get``/``has`` touches it or ``purge_expired`` runs.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from typing import Any

_MISSING = object()


class CacheEntry:
    """A single cached value with its recency marker and absolute expiry."""

    __slots__ = ("key", "value", "inserted_at", "expires_at")

    def __init__(
        self,
        key: str,
        value: Any,
        inserted_at: float,
        expires_at: float | None = None,
    ) -> None:
        self.key = key
        self.value = value
        self.inserted_at = inserted_at
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "inserted_at": self.inserted_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            key=str(data["key"]),
            value=data.get("value"),
            inserted_at=float(data.get("inserted_at") or 0.0),
            expires_at=(
                float(data["expires_at"]) if data.get("expires_at") is not None else None
            ),
        )

    def __repr__(self) -> str:
        return f"CacheEntry(key={self.key!r}, expires_at={self.expires_at!r})"


class BoundedTTLCache:
    """Capacity- and lifetime-bounded key/value store.

    Args:
        max_size: Maximum number of entries held at once.
        ttl_seconds: Lifetime of an entry measured from its last write;
            None keeps entries until evicted.
        name: Name used in diagnostics.
        clock: Returns the current time in seconds.

    All operations are guarded by one lock per instance, since ``get``
    mutates recency as well as ``set``/``delete``/``clear``.
    """

    def __init__(
        self,
        max_size: int,
        ttl_seconds: float | None = None,
        *,
        name: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            msg = f"max_size must be at least 1, got {max_size}"
            raise ValueError(msg)
        if ttl_seconds is not None and ttl_seconds <= 0:
            msg = f"ttl_seconds must be positive, got {ttl_seconds}"
            raise ValueError(msg)

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()

    def _expiry_from(self, now: float) -> float | None:
        return None if self.ttl_seconds is None else now + self.ttl_seconds

    def set(self, key: str, value: Any) -> None:
        """Insert or overwrite ``key``.

        A new key arriving at a full cache evicts exactly one entry, the
        least-recently-touched. Overwriting an existing key never evicts.
        The expiry is reset from this write.
        """
        with self._lock:
            now = self._clock()
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)

            self._entries[key] = CacheEntry(key, value, now, self._expiry_from(now))

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``.

        An expired entry is removed. A live hit becomes most-recently-used.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default

            now = self._clock()
            if entry.is_expired(now):
                del self._entries[key]
                return default

            entry.inserted_at = now
            self._entries.move_to_end(key)
            return entry.value

    def has(self, key: str) -> bool:
        """Return True if ``key`` holds a live entry, without touching recency."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def clear(self) -> int:
        """Remove every entry and return how many were held."""
        with self._lock:
            previous = len(self._entries)
            self._entries.clear()
            return previous

    def purge_expired(self) -> int:
        """Remove all expired entries and return the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        """Keys in recency order, least recently touched first."""
        with self._lock:
            return list(self._entries)

    def snapshot(self) -> list[CacheEntry]:
        """Copies of the live entries in recency order."""
        with self._lock:
            now = self._clock()
            return [
                CacheEntry(e.key, e.value, e.inserted_at, e.expires_at)
                for e in self._entries.values()
                if not e.is_expired(now)
            ]

    def restore(self, entries: Iterable[CacheEntry]) -> int:
        """Replace the contents with ``entries``, oldest first.

        Expired entries are skipped. When more entries are supplied than
        the cache holds, the most recent ones are kept.

        Returns:
            Number of entries loaded.
        """
        with self._lock:
            self._entries.clear()
            now = self._clock()
            live = [e for e in entries if not e.is_expired(now)]
            for entry in live[-self.max_size :]:
                self._entries[entry.key] = entry
                self._entries.move_to_end(entry.key)
            return len(self._entries)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __repr__(self) -> str:
        return (
            f"BoundedTTLCache(name={self.name!r}, size={len(self._entries)}, "
            f"max_size={self.max_size}, ttl_seconds={self.ttl_seconds})"
        )
