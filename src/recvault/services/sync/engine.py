"""Incremental watch-history sync engine.

Per (account, category) the engine keeps two cache tiers:

* the raw snapshot (``trakt_raw``): the three identifier-keyed collections
  and the instant of the last successful fetch;
* the processed preferences (``trakt_processed``): the projection of the
  raw snapshot together with the fingerprint of the snapshot it was
  computed from.

Without a raw snapshot a request performs a full refresh. With one, it
fetches only items changed since ``last_update`` and merges them. A failed
delta falls back to a full refresh in the same request; if that fails too
the request reports ``unavailable`` along with whatever preferences were
cached before. An expired credential is reported as ``needs_reauth``
without a fallback, since a full refresh would be rejected as well.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import weakref
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from functools import partial
from typing import Any

from recvault.services.cache_registry import CacheRegistry
from recvault.services.retry import RetryPolicy, retry_execute
from recvault.services.sync.merge import index_items, merge_items
from recvault.services.sync.models import (
    COLLECTION_KEYS,
    ProcessedPreferences,
    RawSyncDataset,
    SyncMode,
    SyncResult,
    SyncStatus,
)
from recvault.services.sync.preferences import project_preferences
from recvault.services.trakt.client import CATEGORIES, Collection, WatchHistoryClient
from recvault.shared.constants import CacheNames
from recvault.shared.errors import (
    DataProcessingError,
    ErrorContext,
    ReauthenticationRequiredError,
    RecVaultError,
    create_validation_error,
)
from recvault.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)

logger = logging.getLogger(__name__)

Projector = Callable[[RawSyncDataset], ProcessedPreferences]


def account_digest(credential: str) -> str:
    """Stable, non-reversible reference to an account credential."""
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()[:32]


class IncrementalSyncEngine:
    """Keeps per-account watch-history mirrors fresh with delta fetches.

    Args:
        registry: Registry holding the raw and processed caches.
        client: Watch-history provider client.
        retry_policy: Policy applied to each collection fetch.
        min_recheck_seconds: Snapshots younger than this are served
            without contacting the provider; 0 always fetches a delta.
        clock: Returns the current time in epoch seconds.
        projector: Computes preferences from a raw snapshot.
    """

    def __init__(
        self,
        registry: CacheRegistry,
        client: WatchHistoryClient,
        retry_policy: RetryPolicy,
        *,
        min_recheck_seconds: float = 0.0,
        clock: Callable[[], float] = time.time,
        projector: Projector = project_preferences,
        raw_cache: str = CacheNames.TRAKT_RAW,
        processed_cache: str = CacheNames.TRAKT_PROCESSED,
    ) -> None:
        self._registry = registry
        self._client = client
        self._retry_policy = retry_policy
        self._min_recheck = min_recheck_seconds
        self._clock = clock
        self._projector = projector
        self._raw = registry.get(raw_cache)
        self._processed = registry.get(processed_cache)
        # Entries vanish once no request holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @staticmethod
    def cache_key(credential: str, category: str) -> str:
        return f"{account_digest(credential)}:{category}"

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    # Cache tiers ------------------------------------------------------

    def _load_raw(self, key: str) -> RawSyncDataset | None:
        data = self._raw.get(key)
        if data is None:
            return None
        try:
            return RawSyncDataset.from_dict(data)
        except DataProcessingError as e:
            log_operation_error(logger, e, level=logging.WARNING)
            self._raw.delete(key)
            return None

    def _cached_preferences(self, key: str) -> tuple[str | None, ProcessedPreferences | None]:
        entry = self._processed.get(key)
        if not isinstance(entry, dict):
            return None, None
        try:
            return entry.get("fingerprint"), ProcessedPreferences.from_dict(
                entry.get("preferences")
            )
        except DataProcessingError as e:
            log_operation_error(logger, e, level=logging.WARNING)
            self._processed.delete(key)
            return None, None

    def _project(self, key: str, raw: RawSyncDataset) -> ProcessedPreferences:
        """Preferences for ``raw``, reusing the cached projection when unchanged."""
        fingerprint = raw.fingerprint()
        cached_fingerprint, cached = self._cached_preferences(key)
        if cached is not None and cached_fingerprint == fingerprint:
            logger.debug("Raw snapshot unchanged for %s; reusing preferences", key)
            return cached

        preferences = self._projector(raw)
        self._processed.set(
            key,
            {"fingerprint": fingerprint, "preferences": preferences.to_dict()},
        )
        return preferences

    # Fetching ---------------------------------------------------------

    async def _fetch_all(
        self,
        credential: str,
        category: str,
        since: datetime | None,
    ) -> dict[str, list[dict[str, Any]]]:
        """Fetch the three collections concurrently.

        Nothing is returned unless all three succeed. When several fail, a
        re-authentication failure takes precedence.
        """
        collections = list(Collection)
        mode = "delta" if since else "full"
        results = await asyncio.gather(
            *(
                retry_execute(
                    partial(
                        self._client.fetch_collection,
                        credential,
                        category,
                        collection,
                        since,
                    ),
                    replace(
                        self._retry_policy,
                        label=f"trakt_{mode}_{collection.key}_{category}",
                    ),
                )
                for collection in collections
            ),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            for failure in failures:
                if isinstance(failure, ReauthenticationRequiredError):
                    raise failure
            raise failures[0]

        return {c.key: r for c, r in zip(collections, results)}

    async def _full_refresh(self, credential: str, category: str) -> tuple[RawSyncDataset, int]:
        started_at = self._clock()
        fetched = await self._fetch_all(credential, category, None)
        dataset = RawSyncDataset(
            **{key: index_items(fetched[key]) for key in COLLECTION_KEYS},
            last_update=started_at,
        )
        return dataset, sum(dataset.counts().values())

    async def _incremental_update(
        self,
        credential: str,
        category: str,
        raw: RawSyncDataset,
    ) -> tuple[RawSyncDataset, int]:
        # The next delta starts where this fetch started, not where it ended
        started_at = self._clock()
        since = datetime.fromtimestamp(raw.last_update, tz=timezone.utc)
        fetched = await self._fetch_all(credential, category, since)

        merged: dict[str, dict[str, dict[str, Any]]] = {}
        changed = 0
        for key in COLLECTION_KEYS:
            outcome = merge_items(raw.collection(key), fetched[key])
            merged[key] = outcome.items
            changed += outcome.changed
        return RawSyncDataset(**merged, last_update=started_at), changed

    # Public API -------------------------------------------------------

    async def sync(self, credential: str, category: str = "movies") -> SyncResult:
        """Bring the mirror for (credential, category) up to date.

        Provider failures never raise; they are reported through
        ``SyncResult.status``.
        """
        if category not in CATEGORIES:
            raise create_validation_error(
                f"category must be one of {CATEGORIES}, got '{category}'",
                field="category",
                operation="sync",
            )

        self._registry.increment_counter()
        key = self.cache_key(credential, category)
        async with self._lock_for(key):
            return await self._sync_locked(credential, category, key)

    async def _sync_locked(self, credential: str, category: str, key: str) -> SyncResult:
        started = time.perf_counter()
        context = ErrorContext(operation="sync", user_id=key)
        raw = self._load_raw(key)
        log_operation_start(
            logger,
            "sync",
            {"category": category, "has_raw_snapshot": raw is not None},
        )

        if raw is not None and self._min_recheck > 0:
            age = self._clock() - raw.last_update
            if age < self._min_recheck:
                return self._finish(key, raw, SyncMode.CACHED, 0, started)

        dataset: RawSyncDataset | None = None
        mode = SyncMode.FULL_REFRESH
        changed = 0
        if raw is not None:
            try:
                dataset, changed = await self._incremental_update(credential, category, raw)
                mode = SyncMode.INCREMENTAL_UPDATE
            except ReauthenticationRequiredError as e:
                return self._needs_reauth(key, e)
            except RecVaultError as e:
                logger.warning(
                    "Incremental update failed for %s (%s); falling back to full refresh",
                    category,
                    e,
                    extra={"operation": "sync", "context": context.safe_dict()},
                )

        if dataset is None:
            try:
                dataset, changed = await self._full_refresh(credential, category)
                mode = SyncMode.FULL_REFRESH
            except ReauthenticationRequiredError as e:
                return self._needs_reauth(key, e)
            except RecVaultError as e:
                log_operation_error(logger, e, "sync", context, level=logging.WARNING)
                return self._unavailable(key, f"Watch-history provider unavailable: {e.message}")

        self._raw.set(key, dataset.to_dict())
        return self._finish(key, dataset, mode, changed, started)

    def _finish(
        self,
        key: str,
        dataset: RawSyncDataset,
        mode: SyncMode,
        changed: int,
        started: float,
    ) -> SyncResult:
        try:
            preferences = self._project(key, dataset)
        except DataProcessingError as e:
            # A snapshot that cannot be projected is corrupt: drop it so the
            # next request starts over with a full refresh.
            log_operation_error(logger, e, "sync", level=logging.WARNING)
            self._raw.delete(key)
            return self._unavailable(key, "Watch-history snapshot was discarded")

        counts = dataset.counts()
        log_operation_success(
            logger,
            "sync",
            (time.perf_counter() - started) * 1000,
            result_info={"mode": mode.value, "changed": changed, **counts},
        )
        return SyncResult(
            status=SyncStatus.OK,
            mode=mode,
            preferences=preferences,
            counts=counts,
            changed=changed,
            last_update=dataset.last_update,
        )

    def _unavailable(self, key: str, message: str) -> SyncResult:
        _, previous = self._cached_preferences(key)
        return SyncResult(
            status=SyncStatus.UNAVAILABLE,
            preferences=previous,
            message=message,
        )

    def _needs_reauth(self, key: str, error: ReauthenticationRequiredError) -> SyncResult:
        log_operation_error(logger, error, "sync", level=logging.WARNING)
        _, previous = self._cached_preferences(key)
        return SyncResult(
            status=SyncStatus.NEEDS_REAUTH,
            preferences=previous,
            message=error.message,
        )

    def invalidate(self, credential: str, category: str) -> bool:
        """Drop both cache tiers for (credential, category)."""
        key = self.cache_key(credential, category)
        removed_raw = self._raw.delete(key)
        removed_processed = self._processed.delete(key)
        return removed_raw or removed_processed

    def snapshot(self, credential: str, category: str) -> RawSyncDataset | None:
        """The current raw snapshot, if any."""
        return self._load_raw(self.cache_key(credential, category))
