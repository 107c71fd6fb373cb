"""Tests for the cached metadata provider client."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from recvault.config.models.api_settings import TMDBSettings
from recvault.services.cache_registry import CacheRegistry
from recvault.services.retry import RetryPolicy
from recvault.services.tmdb.client import MetadataProviderClient
from recvault.shared.errors import (
    ApplicationError,
    ErrorCode,
    ProviderError,
    create_provider_error,
)

HEAT = {
    "id": 949,
    "title": "Heat",
    "original_title": "Heat",
    "overview": "Cops and robbers.",
    "release_date": "1995-12-15",
    "vote_average": 7.9,
    "vote_count": 7000,
    "poster_path": "/heat.jpg",
    "genres": [{"id": 80, "name": "Crime"}],
    "external_ids": {"imdb_id": "tt0113277"},
}


@pytest.fixture
def http() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(http: AsyncMock, registry: CacheRegistry) -> MetadataProviderClient:
    registry.register("tmdb_details", 100, 3600)
    return MetadataProviderClient(
        http,
        registry,
        TMDBSettings(api_key="secret", image_base_url="https://img.test/t/p"),
        RetryPolicy(max_attempts=2, initial_delay=0),
    )


class TestGetDetails:
    """Details lookups."""

    @pytest.mark.asyncio
    async def test_normalizes_payload(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        http.get_json.return_value = HEAT

        media = await client.get_details(949)

        assert media is not None
        assert media.title == "Heat"
        assert media.release_year == 1995
        assert media.ids.imdb == "tt0113277"
        assert media.genres == ["Crime"]
        assert media.poster_url == "https://img.test/t/p/w500/heat.jpg"
        path = http.get_json.await_args.args[0]
        params = http.get_json.await_args.kwargs["params"]
        assert path == "/movie/949"
        assert params["api_key"] == "secret"
        assert params["append_to_response"] == "external_ids"

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        http.get_json.return_value = HEAT

        first = await client.get_details(949)
        second = await client.get_details(949)

        assert first == second
        assert http.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_not_found_returns_none_and_is_not_cached(
        self, client: MetadataProviderClient, http: AsyncMock, registry: CacheRegistry
    ) -> None:
        http.get_json.side_effect = create_provider_error(404, "missing")

        assert await client.get_details(1) is None
        assert registry.get("tmdb_details").size == 0
        assert http.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        http.get_json.side_effect = [create_provider_error(502, "bad gateway"), HEAT]

        media = await client.get_details(949)

        assert media is not None
        assert http.get_json.await_count == 2

    @pytest.mark.asyncio
    async def test_malformed_payload_is_not_retried(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        http.get_json.return_value = {"title": "no id"}

        with pytest.raises(ProviderError) as exc_info:
            await client.get_details(2)

        assert exc_info.value.code == ErrorCode.API_INVALID_RESPONSE
        assert http.get_json.await_count == 1


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_caches_by_normalized_title(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        http.get_json.return_value = {"results": [HEAT]}

        results = await client.search("Heat", year=1995)
        again = await client.search("  heat ", year=1995)

        assert [m.title for m in results] == ["Heat"]
        assert again == results
        assert http.get_json.await_count == 1
        assert http.get_json.await_args.kwargs["params"]["year"] == 1995

    @pytest.mark.asyncio
    async def test_rejects_unknown_media_type(self, client: MetadataProviderClient) -> None:
        with pytest.raises(ApplicationError):
            await client.search("Heat", media_type="anime")  # type: ignore[arg-type]


class TestFindByExternalId:
    @pytest.mark.asyncio
    async def test_returns_first_match(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        match = {key: value for key, value in HEAT.items() if key != "external_ids"}
        http.get_json.return_value = {"movie_results": [match], "tv_results": []}

        media = await client.find_by_external_id("tt0113277")

        assert media is not None
        assert media.ids.tmdb == 949
        assert media.ids.imdb == "tt0113277"
        assert http.get_json.await_args.kwargs["params"]["external_source"] == "imdb_id"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(
        self, client: MetadataProviderClient, http: AsyncMock
    ) -> None:
        http.get_json.return_value = {"movie_results": []}
        assert await client.find_by_external_id("tt0000000") is None
