"""Tests for CachePersistenceManager."""

from __future__ import annotations

import asyncio
import gzip
import threading
import time
from pathlib import Path

import orjson
import pytest

from recvault.services.cache_persistence import CachePersistenceManager
from recvault.services.cache_registry import CacheRegistry


def fresh_registry(clock) -> CacheRegistry:
    registry = CacheRegistry(clock=clock)
    registry.register("tmdb_search", 100, 3600)
    registry.register("trakt_raw", 10, 3600)
    registry.register("trakt_processed", 10, 3600)
    return registry


class TestSaveAll:
    """Writing snapshots."""

    @pytest.mark.asyncio
    async def test_writes_one_compressed_file_per_cache(
        self, registry: CacheRegistry, temp_dir: Path
    ) -> None:
        registry.get("tmdb_search").set("q", {"title": "Heat"})
        manager = CachePersistenceManager(registry, temp_dir / "snapshots")

        report = await manager.save_all()

        assert report.success
        assert set(report.succeeded) == {"tmdb_search", "trakt_raw", "trakt_processed", "stats"}
        data = orjson.loads(gzip.decompress(manager.snapshot_path("tmdb_search").read_bytes()))
        assert data["entries"][0]["value"] == {"title": "Heat"}
        assert report.results["tmdb_search"].entries == 1
        assert report.results["tmdb_search"].compressed_size > 0

    @pytest.mark.asyncio
    async def test_leaves_no_temporary_files(self, registry: CacheRegistry, temp_dir: Path) -> None:
        manager = CachePersistenceManager(registry, temp_dir)
        await manager.save_all()

        assert not list(temp_dir.glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_failure_is_isolated_per_cache(
        self, registry: CacheRegistry, temp_dir: Path
    ) -> None:
        """A cache whose target cannot be replaced does not block the others."""
        # Given
        manager = CachePersistenceManager(registry, temp_dir)
        manager.snapshot_path("trakt_raw").mkdir(parents=True)

        # When
        report = await manager.save_all()

        # Then
        assert report.failed == ["trakt_raw"]
        assert "tmdb_search" in report.succeeded
        assert not list(temp_dir.glob("*.tmp"))


class TestLoadAll:
    """Restoring snapshots."""

    @pytest.mark.asyncio
    async def test_round_trip(self, clock, temp_dir: Path) -> None:
        source = fresh_registry(clock)
        source.get("trakt_raw").set("acct:movies", {"last_update": 1.0})
        source.increment_counter(amount=3)
        await CachePersistenceManager(source, temp_dir).save_all()

        target = fresh_registry(clock)
        report = await CachePersistenceManager(target, temp_dir).load_all()

        assert report.success
        assert report.results["trakt_raw"].entries == 1
        assert target.get("trakt_raw").get("acct:movies") == {"last_update": 1.0}
        assert target.get_counter() == 3

    @pytest.mark.asyncio
    async def test_missing_directory_reports_reason(self, clock, temp_dir: Path) -> None:
        manager = CachePersistenceManager(fresh_registry(clock), temp_dir / "absent")

        report = await manager.load_all()

        assert report.results == {}
        assert report.reason == "no persistence directory"

    @pytest.mark.asyncio
    async def test_corrupt_file_does_not_block_others(self, clock, temp_dir: Path) -> None:
        source = fresh_registry(clock)
        source.get("tmdb_search").set("q", [1, 2, 3])
        await CachePersistenceManager(source, temp_dir).save_all()
        (temp_dir / "trakt_raw.json.gz").write_bytes(b"not gzip at all")

        target = fresh_registry(clock)
        report = await CachePersistenceManager(target, temp_dir).load_all()

        assert "trakt_raw" in report.failed
        assert target.get("tmdb_search").get("q") == [1, 2, 3]
        assert target.get("trakt_raw").size == 0

    @pytest.mark.asyncio
    async def test_reads_plain_json_snapshots(self, clock, temp_dir: Path) -> None:
        payload = {
            "max_size": 10,
            "ttl_seconds": 3600,
            "entries": [
                {"key": "k", "value": "v", "inserted_at": clock.now, "expires_at": clock.now + 60}
            ],
        }
        (temp_dir / "trakt_processed.json").write_bytes(orjson.dumps(payload))

        target = fresh_registry(clock)
        report = await CachePersistenceManager(target, temp_dir).load_all()

        assert report.results["trakt_processed"].success
        assert target.get("trakt_processed").get("k") == "v"

    @pytest.mark.asyncio
    async def test_unknown_snapshot_is_skipped(self, clock, temp_dir: Path) -> None:
        (temp_dir / "legacy.json").write_bytes(orjson.dumps({"entries": []}))

        report = await CachePersistenceManager(fresh_registry(clock), temp_dir).load_all()

        assert report.results["legacy"].entries == 0


class TestScheduling:
    """Periodic saves and shutdown."""

    @pytest.mark.asyncio
    async def test_periodic_saves_and_shutdown(
        self, registry: CacheRegistry, temp_dir: Path
    ) -> None:
        manager = CachePersistenceManager(registry, temp_dir, interval=0.01)
        manager.start_periodic()
        await asyncio.sleep(0.2)
        assert manager.snapshot_path("tmdb_search").exists()

        registry.get("tmdb_search").set("late", 1)
        report = await manager.shutdown()

        assert not manager.periodic_running
        assert report.results["tmdb_search"].entries == 1

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_an_in_flight_periodic_save(
        self, registry: CacheRegistry, temp_dir: Path
    ) -> None:
        """The final flush starts only after a running periodic pass has landed."""
        # Given
        manager = CachePersistenceManager(registry, temp_dir, interval=0.01)
        write = manager._write_snapshot
        guard = threading.Lock()
        active = 0
        peak = 0
        slowed = []

        def slow_write(name, data):
            nonlocal active, peak
            with guard:
                active += 1
                peak = max(peak, active)
            try:
                if name == "tmdb_search" and not slowed:
                    slowed.append(name)
                    time.sleep(0.3)
                return write(name, data)
            finally:
                with guard:
                    active -= 1

        manager._write_snapshot = slow_write
        cache = registry.get("tmdb_search")
        cache.set("old", 1)
        manager.start_periodic()
        await asyncio.sleep(0.05)

        # When
        cache.set("late", 2)
        await manager.shutdown()

        # Then
        data = orjson.loads(gzip.decompress(manager.snapshot_path("tmdb_search").read_bytes()))
        assert [entry["key"] for entry in data["entries"]] == ["old", "late"]
        assert peak <= len(registry.names()) + 1
        assert not list(temp_dir.glob("*.tmp"))
