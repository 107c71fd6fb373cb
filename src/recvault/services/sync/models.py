"""Data types of the watch-history sync engine.

Snapshots and preferences are kept in the registry caches in their JSON
form (``to_dict``) so they survive persistence; ``from_dict`` raises
``DataProcessingError`` on anything it cannot read.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import orjson

from recvault.shared.errors import ErrorCode, create_data_processing_error

COLLECTION_KEYS = ("watched", "rated", "history")


class SyncMode(str, Enum):
    """How a sync request acquired its raw snapshot."""

    FULL_REFRESH = "full_refresh"
    INCREMENTAL_UPDATE = "incremental_update"
    CACHED = "cached"


class SyncStatus(str, Enum):
    """Outcome reported to the consuming layer."""

    OK = "ok"
    UNAVAILABLE = "unavailable"
    NEEDS_REAUTH = "needs_reauth"


@dataclass
class RawSyncDataset:
    """Unprocessed mirror of one account/category's watch-history.

    Each collection maps an item identifier to the provider item.
    ``last_update`` is the instant (epoch seconds) of the last successful
    fetch and the lower bound of the next delta fetch.
    """

    watched: dict[str, dict[str, Any]] = field(default_factory=dict)
    rated: dict[str, dict[str, Any]] = field(default_factory=dict)
    history: dict[str, dict[str, Any]] = field(default_factory=dict)
    last_update: float = 0.0

    def collection(self, key: str) -> dict[str, dict[str, Any]]:
        return getattr(self, key)

    def counts(self) -> dict[str, int]:
        return {key: len(self.collection(key)) for key in COLLECTION_KEYS}

    def fingerprint(self) -> str:
        """Digest of the collections; equal contents give equal fingerprints."""
        payload = orjson.dumps(
            {key: self.collection(key) for key in COLLECTION_KEYS},
            option=orjson.OPT_SORT_KEYS,
        )
        return hashlib.sha256(payload).hexdigest()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {key: self.collection(key) for key in COLLECTION_KEYS}
        data["last_update"] = self.last_update
        return data

    @classmethod
    def from_dict(cls, data: Any) -> RawSyncDataset:
        try:
            collections = {}
            for key in COLLECTION_KEYS:
                items = data[key]
                if not isinstance(items, dict):
                    msg = f"collection '{key}' is {type(items).__name__}, expected dict"
                    raise TypeError(msg)
                collections[key] = {str(k): dict(v) for k, v in items.items()}
            return cls(**collections, last_update=float(data["last_update"]))
        except (KeyError, TypeError, ValueError) as e:
            raise create_data_processing_error(
                f"Unreadable raw sync snapshot: {e}",
                code=ErrorCode.CACHE_CORRUPTED,
                operation="load_raw_snapshot",
                original_error=e,
            ) from e


@dataclass(frozen=True)
class WeightedName:
    name: str
    weight: float


@dataclass(frozen=True)
class YearRange:
    start: int
    end: int
    preferred: int


@dataclass(frozen=True)
class RatingBucket:
    rating: int
    count: int


@dataclass(frozen=True)
class ProcessedPreferences:
    """Read-only projection of a raw snapshot."""

    genres: tuple[WeightedName, ...] = ()
    actors: tuple[WeightedName, ...] = ()
    directors: tuple[WeightedName, ...] = ()
    years: YearRange | None = None
    ratings: tuple[RatingBucket, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.genres or self.actors or self.directors or self.years or self.ratings)

    def to_dict(self) -> dict[str, Any]:
        def weighted(items: tuple[WeightedName, ...]) -> list[dict[str, Any]]:
            return [{"name": i.name, "weight": i.weight} for i in items]

        return {
            "genres": weighted(self.genres),
            "actors": weighted(self.actors),
            "directors": weighted(self.directors),
            "years": (
                {
                    "start": self.years.start,
                    "end": self.years.end,
                    "preferred": self.years.preferred,
                }
                if self.years
                else None
            ),
            "ratings": [{"rating": r.rating, "count": r.count} for r in self.ratings],
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProcessedPreferences:
        try:

            def weighted(items: list[dict[str, Any]]) -> tuple[WeightedName, ...]:
                return tuple(WeightedName(str(i["name"]), float(i["weight"])) for i in items)

            years = data.get("years")
            return cls(
                genres=weighted(data.get("genres", [])),
                actors=weighted(data.get("actors", [])),
                directors=weighted(data.get("directors", [])),
                years=(
                    YearRange(int(years["start"]), int(years["end"]), int(years["preferred"]))
                    if years
                    else None
                ),
                ratings=tuple(
                    RatingBucket(int(r["rating"]), int(r["count"]))
                    for r in data.get("ratings", [])
                ),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise create_data_processing_error(
                f"Unreadable cached preferences: {e}",
                code=ErrorCode.CACHE_CORRUPTED,
                operation="load_preferences",
                original_error=e,
            ) from e


@dataclass
class SyncResult:
    """What one sync request produced."""

    status: SyncStatus
    mode: SyncMode | None = None
    preferences: ProcessedPreferences | None = None
    counts: dict[str, int] = field(default_factory=dict)
    changed: int = 0
    last_update: float | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.OK

    @property
    def is_incremental(self) -> bool:
        return self.mode is SyncMode.INCREMENTAL_UPDATE

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "mode": self.mode.value if self.mode else None,
            "preferences": self.preferences.to_dict() if self.preferences else None,
            "counts": self.counts,
            "changed": self.changed,
            "last_update": self.last_update,
            "message": self.message,
        }
