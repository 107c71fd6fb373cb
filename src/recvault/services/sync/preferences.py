"""Preference projection of a raw watch-history snapshot.

Watched items count once for every genre, actor and director they carry;
rated items count ``rating / 5``. The top entries by weight are kept.
"""

from __future__ import annotations

import logging
import time
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from recvault.services.sync.merge import media_of
from recvault.services.sync.models import (
    ProcessedPreferences,
    RatingBucket,
    RawSyncDataset,
    WeightedName,
    YearRange,
)
from recvault.shared.errors import ErrorCode, create_data_processing_error
from recvault.shared.logging import log_operation_success

logger = logging.getLogger(__name__)

TOP_N = 5
RATING_SCALE = 5.0

NameExtractor = Callable[[Mapping[str, Any]], Iterable[str]]


def _genres(media: Mapping[str, Any]) -> Iterable[str]:
    return [g for g in media.get("genres") or [] if isinstance(g, str)]


def _actors(media: Mapping[str, Any]) -> Iterable[str]:
    return [p["name"] for p in media.get("cast") or [] if p.get("name")]


def _directors(media: Mapping[str, Any]) -> Iterable[str]:
    return [
        p["name"] for p in media.get("crew") or [] if p.get("job") == "Director" and p.get("name")
    ]


def _rating_weight(item: Mapping[str, Any]) -> float:
    rating = item.get("rating")
    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        return 0.0
    return rating / RATING_SCALE


def _weighted_items(
    watched: Iterable[Mapping[str, Any]],
    rated: Iterable[Mapping[str, Any]],
) -> Iterable[tuple[Mapping[str, Any], float]]:
    for item in watched:
        media = media_of(item)
        if media is not None:
            yield media, 1.0
    for item in rated:
        media = media_of(item)
        if media is not None:
            yield media, _rating_weight(item)


def rank_names(
    watched: Iterable[Mapping[str, Any]],
    rated: Iterable[Mapping[str, Any]],
    extract: NameExtractor,
    limit: int = TOP_N,
) -> tuple[WeightedName, ...]:
    """Top ``limit`` names by accumulated weight; ties are ordered by name."""
    weights: defaultdict[str, float] = defaultdict(float)
    for media, weight in _weighted_items(watched, rated):
        for name in extract(media):
            weights[name] += weight

    ranked = sorted(weights.items(), key=lambda kv: (-kv[1], kv[0]))
    return tuple(WeightedName(name, round(weight, 4)) for name, weight in ranked[:limit])


def year_range(
    watched: Iterable[Mapping[str, Any]],
    rated: Iterable[Mapping[str, Any]],
) -> YearRange | None:
    weights: defaultdict[int, float] = defaultdict(float)
    for media, weight in _weighted_items(watched, rated):
        try:
            year = int(media.get("year") or 0)
        except (TypeError, ValueError):
            continue
        if year:
            weights[year] += weight

    if not weights:
        return None
    preferred = min(weights, key=lambda y: (-weights[y], y))
    return YearRange(start=min(weights), end=max(weights), preferred=preferred)


def rating_histogram(rated: Iterable[Mapping[str, Any]]) -> tuple[RatingBucket, ...]:
    counts = Counter(
        item["rating"]
        for item in rated
        if isinstance(item.get("rating"), int) and not isinstance(item.get("rating"), bool)
    )
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], -kv[0]))
    return tuple(RatingBucket(rating, count) for rating, count in ordered)


def project_preferences(dataset: RawSyncDataset) -> ProcessedPreferences:
    """Derive ``ProcessedPreferences`` from a snapshot.

    Raises:
        DataProcessingError: If the snapshot holds malformed items.
    """
    started = time.perf_counter()
    watched = list(dataset.watched.values())
    rated = list(dataset.rated.values())
    try:
        preferences = ProcessedPreferences(
            genres=rank_names(watched, rated, _genres),
            actors=rank_names(watched, rated, _actors),
            directors=rank_names(watched, rated, _directors),
            years=year_range(watched, rated),
            ratings=rating_histogram(rated),
        )
    except (AttributeError, KeyError, TypeError) as e:
        raise create_data_processing_error(
            f"Cannot project preferences: {e}",
            code=ErrorCode.SYNC_PROJECTION_FAILED,
            operation="project_preferences",
            original_error=e,
        ) from e

    log_operation_success(
        logger,
        "project_preferences",
        (time.perf_counter() - started) * 1000,
        result_info={
            "genres": len(preferences.genres),
            "actors": len(preferences.actors),
            "directors": len(preferences.directors),
            "has_years": preferences.years is not None,
            "ratings": len(preferences.ratings),
        },
    )
    return preferences
