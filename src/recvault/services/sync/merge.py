"""Last-writer-wins merge of watch-history collections.

An incoming item is inserted when its identifier is new and replaces the
existing item only when its activity timestamp is strictly newer. Equal
or missing timestamps keep the existing item, so replaying the same delta
is a no-op.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from recvault.shared.errors import ErrorCode, create_data_processing_error

# Checked in order; the first present field is the item's activity timestamp
ACTIVITY_FIELDS = (
    "last_activity",
    "last_updated_at",
    "last_watched_at",
    "rated_at",
    "watched_at",
)
MEDIA_FIELDS = ("movie", "show")


def media_of(item: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for key in MEDIA_FIELDS:
        media = item.get(key)
        if isinstance(media, Mapping):
            return media
    return None


def item_identifier(item: Mapping[str, Any]) -> str | None:
    """The item's own id, else the provider id of the movie or show it wraps."""
    if item.get("id") is not None:
        return str(item["id"])
    media = media_of(item)
    if media is None:
        return None
    trakt_id = (media.get("ids") or {}).get("trakt")
    return str(trakt_id) if trakt_id is not None else None


def _to_epoch(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def activity_timestamp(item: Mapping[str, Any]) -> float | None:
    for key in ACTIVITY_FIELDS:
        if key in item:
            return _to_epoch(item[key])
    return None


@dataclass(frozen=True)
class MergeOutcome:
    items: dict[str, dict[str, Any]]
    added: int = 0
    updated: int = 0

    @property
    def changed(self) -> int:
        return self.added + self.updated


def merge_items(
    existing: Mapping[str, dict[str, Any]],
    incoming: Iterable[Any],
) -> MergeOutcome:
    """Merge ``incoming`` provider items into a copy of ``existing``.

    Items without an identifier are ignored.

    Raises:
        DataProcessingError: If an incoming element is not a mapping.
    """
    merged = dict(existing)
    added = updated = 0

    for item in incoming:
        if not isinstance(item, Mapping):
            raise create_data_processing_error(
                f"Watch-history item is {type(item).__name__}, expected an object",
                code=ErrorCode.SYNC_MERGE_FAILED,
                operation="merge_items",
            )
        identifier = item_identifier(item)
        if identifier is None:
            continue

        current = merged.get(identifier)
        if current is None:
            merged[identifier] = dict(item)
            added += 1
            continue

        new_ts = activity_timestamp(item)
        old_ts = activity_timestamp(current)
        if new_ts is not None and old_ts is not None and new_ts > old_ts:
            merged[identifier] = dict(item)
            updated += 1

    return MergeOutcome(items=merged, added=added, updated=updated)


def index_items(items: Iterable[Any]) -> dict[str, dict[str, Any]]:
    """Identifier-keyed map of a freshly fetched collection."""
    return merge_items({}, items).items
