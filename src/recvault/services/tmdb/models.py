"""Normalized metadata provider models.

Provider payloads are reduced to ``MediaDescription``: image references as
full URLs, rating, identifier cross-references and a few display fields.
Cached values hold the JSON form of these models.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

MediaType = Literal["movie", "tv"]


class ExternalIds(BaseModel):
    """Identifier cross-references for one title."""

    tmdb: int
    imdb: str | None = None
    tvdb: int | None = None


class MediaDescription(BaseModel):
    """Provider-independent description of a movie or show."""

    ids: ExternalIds
    media_type: MediaType
    title: str
    original_title: str | None = None
    overview: str = ""
    release_year: int | None = None
    rating: float = Field(default=0.0, ge=0, le=10)
    vote_count: int = 0
    popularity: float = 0.0
    genres: list[str] = Field(default_factory=list)
    poster_url: str | None = None
    backdrop_url: str | None = None


def _year_of(date: str | None) -> int | None:
    if not date or len(date) < 4 or not date[:4].isdigit():
        return None
    return int(date[:4])


def _image_url(base_url: str, size: str, path: str | None) -> str | None:
    if not path:
        return None
    return f"{base_url.rstrip('/')}/{size}/{path.lstrip('/')}"


def normalize_media(
    payload: dict[str, Any],
    media_type: MediaType,
    *,
    image_base_url: str,
    poster_size: str,
    backdrop_size: str,
    genre_names: dict[int, str] | None = None,
) -> MediaDescription:
    """Build a ``MediaDescription`` from a search result or details payload."""
    external = payload.get("external_ids") or {}
    if payload.get("genres"):
        genres = [g["name"] for g in payload["genres"] if g.get("name")]
    else:
        lookup = genre_names or {}
        genres = [lookup[g] for g in payload.get("genre_ids", []) if g in lookup]

    return MediaDescription(
        ids=ExternalIds(
            tmdb=int(payload["id"]),
            imdb=payload.get("imdb_id") or external.get("imdb_id"),
            tvdb=external.get("tvdb_id"),
        ),
        media_type=media_type,
        title=payload.get("title") or payload.get("name") or "Unknown",
        original_title=payload.get("original_title") or payload.get("original_name"),
        overview=payload.get("overview") or "",
        release_year=_year_of(payload.get("release_date") or payload.get("first_air_date")),
        rating=float(payload.get("vote_average") or 0.0),
        vote_count=int(payload.get("vote_count") or 0),
        popularity=float(payload.get("popularity") or 0.0),
        genres=genres,
        poster_url=_image_url(image_base_url, poster_size, payload.get("poster_path")),
        backdrop_url=_image_url(image_base_url, backdrop_size, payload.get("backdrop_path")),
    )


__all__ = ["ExternalIds", "MediaDescription", "MediaType", "normalize_media"]
