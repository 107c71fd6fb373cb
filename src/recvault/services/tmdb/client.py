"""Metadata provider client (TMDB v3).

Every lookup follows the same path: check the named cache, and on a miss
call the provider through the retry executor and store the normalized
result. A 404 is a valid empty answer and is returned as ``None`` without
being cached.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

from pydantic import ValidationError

from recvault.config.models.api_settings import TMDBSettings
from recvault.core.bounded_cache import BoundedTTLCache
from recvault.services.cache_registry import CacheRegistry
from recvault.services.http_client import ProviderHttpClient
from recvault.services.retry import RetryPolicy, retry_execute
from recvault.services.tmdb.models import MediaDescription, MediaType, normalize_media
from recvault.shared.constants import CacheNames, HTTPStatusCodes, TMDBConfig
from recvault.shared.errors import (
    ErrorCode,
    ErrorContext,
    ProviderError,
    create_validation_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MEDIA_TYPES = ("movie", "tv")


def _check_media_type(media_type: str) -> None:
    if media_type not in _MEDIA_TYPES:
        raise create_validation_error(
            f"media_type must be one of {_MEDIA_TYPES}, got '{media_type}'",
            field="media_type",
            operation="tmdb_lookup",
        )


class MetadataProviderClient:
    """Cached, retried access to TMDB search, details and id lookups."""

    def __init__(
        self,
        http: ProviderHttpClient,
        registry: CacheRegistry,
        settings: TMDBSettings,
        retry_policy: RetryPolicy,
    ) -> None:
        self._http = http
        self._settings = settings
        self._retry_policy = retry_policy
        self._search_cache: BoundedTTLCache = registry.get(CacheNames.TMDB_SEARCH)
        self._details_cache: BoundedTTLCache = registry.get(CacheNames.TMDB_DETAILS)

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {
            "api_key": self._settings.api_key,
            "language": self._settings.language,
        }
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    def _normalize(self, payload: dict[str, Any], media_type: MediaType) -> MediaDescription:
        try:
            return normalize_media(
                payload,
                media_type,
                image_base_url=self._settings.image_base_url,
                poster_size=TMDBConfig.POSTER_SIZE,
                backdrop_size=TMDBConfig.BACKDROP_SIZE,
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise ProviderError(
                ErrorCode.API_INVALID_RESPONSE,
                f"Unexpected TMDB payload for {media_type}",
                ErrorContext(operation="tmdb_normalize"),
                e,
                retryable=False,
            ) from e

    async def _fetch(
        self,
        path: str,
        params: dict[str, Any],
        label: str,
    ) -> Any:
        async def call() -> Any:
            return await self._http.get_json(path, params=params, operation=label)

        return await retry_execute(call, self._policy_for(label))

    def _policy_for(self, label: str) -> RetryPolicy:
        return replace(self._retry_policy, label=label)

    async def _cached(
        self,
        cache: BoundedTTLCache,
        key: str,
        load: Callable[[], Awaitable[T | None]],
        dump: Callable[[T], Any],
        parse: Callable[[Any], T],
    ) -> T | None:
        cached = cache.get(key)
        if cached is not None:
            logger.debug("Cache hit in '%s' for %s", cache.name, key)
            return parse(cached)

        try:
            value = await load()
        except ProviderError as e:
            if e.status_code == HTTPStatusCodes.NOT_FOUND:
                return None
            raise
        if value is not None:
            cache.set(key, dump(value))
        return value

    async def search(
        self,
        title: str,
        media_type: MediaType = "movie",
        year: int | None = None,
    ) -> list[MediaDescription]:
        """Search titles; results are cached per (media type, title, year)."""
        _check_media_type(media_type)
        key = f"search:{media_type}:{title.strip().lower()}:{year or ''}"
        year_param = "year" if media_type == "movie" else "first_air_date_year"

        async def load() -> list[MediaDescription]:
            data = await self._fetch(
                f"/search/{media_type}",
                self._params(query=title, **{year_param: year}),
                "tmdb_search",
            )
            return [self._normalize(item, media_type) for item in (data or {}).get("results", [])]

        results = await self._cached(
            self._search_cache,
            key,
            load,
            dump=lambda items: [m.model_dump(mode="json") for m in items],
            parse=lambda raw: [MediaDescription.model_validate(item) for item in raw],
        )
        return results or []

    async def get_details(
        self,
        tmdb_id: int,
        media_type: MediaType = "movie",
    ) -> MediaDescription | None:
        """Full description of one title, or None if the provider does not know it."""
        _check_media_type(media_type)

        async def load() -> MediaDescription:
            data = await self._fetch(
                f"/{media_type}/{tmdb_id}",
                self._params(append_to_response="external_ids"),
                "tmdb_details",
            )
            return self._normalize(data, media_type)

        return await self._cached(
            self._details_cache,
            f"details:{media_type}:{tmdb_id}",
            load,
            dump=lambda m: m.model_dump(mode="json"),
            parse=MediaDescription.model_validate,
        )

    async def find_by_external_id(
        self,
        imdb_id: str,
        media_type: MediaType = "movie",
    ) -> MediaDescription | None:
        """Resolve an IMDb identifier to a description."""
        _check_media_type(media_type)

        async def load() -> MediaDescription | None:
            data = await self._fetch(
                f"/find/{imdb_id}",
                self._params(external_source="imdb_id"),
                "tmdb_find",
            )
            matches = (data or {}).get(f"{media_type}_results") or []
            if not matches:
                return None
            payload = dict(matches[0])
            payload.setdefault("imdb_id", imdb_id)
            return self._normalize(payload, media_type)

        return await self._cached(
            self._details_cache,
            f"find:{media_type}:{imdb_id}",
            load,
            dump=lambda m: m.model_dump(mode="json"),
            parse=MediaDescription.model_validate,
        )
