"""Application context: every long-lived component, built once at startup.

Components receive what they need from the context instead of reaching
for module-level state, so tests can build isolated contexts.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import aiohttp

from recvault.config.models.settings import Settings
from recvault.services.cache_persistence import CachePersistenceManager
from recvault.services.cache_registry import CacheRegistry, create_default_registry
from recvault.services.http_client import ProviderHttpClient
from recvault.services.retry import RetryPolicy, never_retry_bad_request
from recvault.services.sync.engine import IncrementalSyncEngine
from recvault.services.tmdb.client import MetadataProviderClient
from recvault.services.trakt.client import WatchHistoryClient


@dataclass
class AppContext:
    settings: Settings
    registry: CacheRegistry
    persistence: CachePersistenceManager
    tmdb_http: ProviderHttpClient
    trakt_http: ProviderHttpClient
    metadata: MetadataProviderClient
    watch_history: WatchHistoryClient
    sync_engine: IncrementalSyncEngine
    # Handed to the recommendation layer for its text-generation calls
    ai_retry_policy: RetryPolicy

    async def close(self) -> None:
        """Release provider HTTP sessions."""
        await self.tmdb_http.close()
        await self.trakt_http.close()


def build_context(
    settings: Settings,
    *,
    clock: Callable[[], float] = time.time,
    tmdb_session: aiohttp.ClientSession | None = None,
    trakt_session: aiohttp.ClientSession | None = None,
) -> AppContext:
    """Construct the registry, persistence, provider clients and sync engine."""
    registry = create_default_registry(settings.cache, clock=clock)
    persistence = CachePersistenceManager(
        registry,
        settings.cache.persistence_dir,
        interval=settings.cache.persist_interval,
        compression_level=settings.cache.compression_level,
    )

    tmdb_settings = settings.api.tmdb
    tmdb_http = ProviderHttpClient(
        "tmdb",
        tmdb_settings.base_url,
        timeout=tmdb_settings.timeout,
        rate_limit_rps=tmdb_settings.rate_limit_rps,
        session=tmdb_session,
    )
    metadata = MetadataProviderClient(
        tmdb_http,
        registry,
        tmdb_settings,
        RetryPolicy.from_settings(settings.retry.tmdb, "tmdb"),
    )

    trakt_settings = settings.api.trakt
    trakt_http = ProviderHttpClient(
        "trakt",
        trakt_settings.base_url,
        timeout=trakt_settings.timeout,
        rate_limit_rps=trakt_settings.rate_limit_rps,
        session=trakt_session,
    )
    watch_history = WatchHistoryClient(
        trakt_http,
        trakt_settings.client_id,
        page_limit=trakt_settings.page_limit,
    )
    sync_engine = IncrementalSyncEngine(
        registry,
        watch_history,
        RetryPolicy.from_settings(settings.retry.trakt, "trakt"),
        min_recheck_seconds=settings.sync.min_recheck_seconds,
        clock=clock,
    )

    return AppContext(
        settings=settings,
        registry=registry,
        persistence=persistence,
        tmdb_http=tmdb_http,
        trakt_http=trakt_http,
        metadata=metadata,
        watch_history=watch_history,
        sync_engine=sync_engine,
        ai_retry_policy=RetryPolicy.from_settings(
            settings.retry.ai, "ai", is_retryable=never_retry_bad_request
        ),
    )
