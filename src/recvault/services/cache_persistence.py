"""Snapshot persistence for the cache registry.

Each named cache is written to its own gzip-compressed JSON file in the
persistence directory (``<name>.json.gz``), with the counters in
``stats.json.gz``. Files are written to a temporary name and renamed into
place so a crash mid-write never leaves a truncated snapshot behind.

Failures are isolated per file: they are logged as warnings and reported
in the returned ``PersistenceReport``, and never raised to the caller.
"""

from __future__ import annotations

import asyncio
import gzip
import logging
import os
import time
import uuid
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson

from recvault.core.periodic import PeriodicTask
from recvault.services.cache_registry import CacheRegistry
from recvault.shared.constants import CacheDefaults, PersistenceLayout
from recvault.shared.errors import RecVaultError, create_persistence_error
from recvault.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

_READ_ERRORS = (OSError, EOFError, zlib.error, orjson.JSONDecodeError, TypeError)
_WRITE_ERRORS = (OSError, TypeError, orjson.JSONEncodeError)


@dataclass
class PersistenceResult:
    """Outcome of saving or loading one named cache."""

    name: str
    success: bool
    entries: int = 0
    original_size: int = 0
    compressed_size: int = 0
    path: str | None = None
    error: str | None = None

    @property
    def compression_ratio(self) -> float:
        """Compressed size as a percentage of the original size."""
        if not self.original_size:
            return 0.0
        return round(self.compressed_size / self.original_size * 100, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "success": self.success,
            "entries": self.entries,
            "original_size": self.original_size,
            "compressed_size": self.compressed_size,
            "compression_ratio": self.compression_ratio,
            "path": self.path,
            "error": self.error,
        }


@dataclass
class PersistenceReport:
    """Per-cache results of one save or load pass."""

    operation: str
    results: dict[str, PersistenceResult] = field(default_factory=dict)
    reason: str | None = None

    @property
    def succeeded(self) -> list[str]:
        return [name for name, r in self.results.items() if r.success]

    @property
    def failed(self) -> list[str]:
        return [name for name, r in self.results.items() if not r.success]

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "success": self.success,
            "reason": self.reason,
            "results": {name: r.to_dict() for name, r in self.results.items()},
        }


class CachePersistenceManager:
    """Saves and restores a ``CacheRegistry`` to a directory of snapshots.

    Args:
        registry: The registry to persist.
        directory: Persistence directory; created on the first save.
        interval: Seconds between periodic saves.
        compression_level: gzip level, 1 to 9.
    """

    def __init__(
        self,
        registry: CacheRegistry,
        directory: str | Path,
        *,
        interval: float = CacheDefaults.PERSIST_INTERVAL,
        compression_level: int = CacheDefaults.COMPRESSION_LEVEL,
    ) -> None:
        self.registry = registry
        self.directory = Path(directory)
        self.compression_level = compression_level
        self._periodic = PeriodicTask("cache-persistence", interval, self.save_all)
        self._io_lock = asyncio.Lock()

    def snapshot_path(self, name: str) -> Path:
        return self.directory / f"{name}{PersistenceLayout.COMPRESSED_SUFFIX}"

    # Saving -----------------------------------------------------------

    def _write_snapshot(self, name: str, data: dict[str, Any]) -> PersistenceResult:
        target = self.snapshot_path(name)
        # Unique per write so overlapping passes never share a temporary file
        temp = target.with_name(
            f"{target.name}.{uuid.uuid4().hex}{PersistenceLayout.TEMP_SUFFIX}"
        )
        try:
            raw = orjson.dumps(data)
            compressed = gzip.compress(raw, compresslevel=self.compression_level)
            temp.write_bytes(compressed)
            os.replace(temp, target)
        except _WRITE_ERRORS as e:
            temp.unlink(missing_ok=True)
            error = create_persistence_error(
                f"Failed to persist cache '{name}': {e}",
                file_path=target,
                operation="save_cache",
                original_error=e,
            )
            log_operation_error(logger, error, level=logging.WARNING)
            return PersistenceResult(name=name, success=False, path=str(target), error=str(e))

        entries = len(data.get("entries", []))
        return PersistenceResult(
            name=name,
            success=True,
            entries=entries,
            original_size=len(raw),
            compressed_size=len(compressed),
            path=str(target),
        )

    async def save_all(self) -> PersistenceReport:
        """Write every cache and the counters to the persistence directory."""
        async with self._io_lock:
            started = time.perf_counter()
            report = PersistenceReport(operation="save")
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                error = create_persistence_error(
                    f"Cannot create persistence directory: {e}",
                    file_path=self.directory,
                    operation="save_all",
                    original_error=e,
                )
                log_operation_error(logger, error, level=logging.WARNING)
                report.reason = str(e)
                for name in [*self.registry.names(), PersistenceLayout.STATS_NAME]:
                    report.results[name] = PersistenceResult(name=name, success=False, error=str(e))
                return report

            # Snapshot synchronously so the payload is consistent across caches
            payload = self.registry.serialize_all()
            writes = asyncio.gather(
                *(
                    asyncio.to_thread(self._write_snapshot, name, data)
                    for name, data in payload.items()
                )
            )
            try:
                results = await asyncio.shield(writes)
            except asyncio.CancelledError:
                # Worker threads cannot be interrupted; hold the lock until they land
                await writes
                raise
            report.results = {r.name: r for r in results}

            log_operation_success(
                logger,
                "save_caches",
                (time.perf_counter() - started) * 1000,
                result_info={
                    "saved": len(report.succeeded),
                    "failed": len(report.failed),
                },
            )
            if report.failed:
                logger.warning("Cache persistence failed for: %s", ", ".join(report.failed))
            else:
                logger.info("Persisted %d caches to %s", len(report.succeeded), self.directory)
            return report

    # Loading ----------------------------------------------------------

    def discover_snapshots(self) -> dict[str, Path]:
        """Snapshot files by cache name; compressed files win over plain JSON."""
        found: dict[str, Path] = {}
        for path in sorted(self.directory.iterdir()):
            if not path.is_file():
                continue
            file_name = path.name
            if file_name.endswith(PersistenceLayout.COMPRESSED_SUFFIX):
                found[file_name[: -len(PersistenceLayout.COMPRESSED_SUFFIX)]] = path
            elif file_name.endswith(PersistenceLayout.PLAIN_SUFFIX):
                found.setdefault(file_name[: -len(PersistenceLayout.PLAIN_SUFFIX)], path)
        return found

    @staticmethod
    def _read_snapshot(path: Path) -> tuple[dict[str, Any], int, int]:
        raw = path.read_bytes()
        compressed_size = len(raw)
        if path.name.endswith(PersistenceLayout.COMPRESSED_SUFFIX):
            raw = gzip.decompress(raw)
        data = orjson.loads(raw)
        if not isinstance(data, dict):
            msg = f"expected a JSON object, got {type(data).__name__}"
            raise TypeError(msg)
        return data, len(raw), compressed_size

    def _load_one(self, name: str, path: Path) -> PersistenceResult:
        try:
            data, original_size, compressed_size = self._read_snapshot(path)
            loaded = self.registry.restore_all({name: data}).get(name, 0)
        except (*_READ_ERRORS, KeyError, ValueError, RecVaultError) as e:
            error = create_persistence_error(
                f"Failed to restore cache '{name}': {e}",
                file_path=path,
                operation="load_cache",
                original_error=e,
                reading=True,
            )
            log_operation_error(logger, error, level=logging.WARNING)
            return PersistenceResult(name=name, success=False, path=str(path), error=str(e))

        return PersistenceResult(
            name=name,
            success=True,
            entries=loaded,
            original_size=original_size,
            compressed_size=compressed_size,
            path=str(path),
        )

    async def load_all(self) -> PersistenceReport:
        """Restore every snapshot found in the persistence directory.

        A missing directory is normal on first run and yields an empty
        report with a reason.
        """
        async with self._io_lock:
            report = PersistenceReport(operation="load")
            if not self.directory.is_dir():
                report.reason = "no persistence directory"
                logger.info("No cache snapshots at %s; starting empty", self.directory)
                return report

            try:
                snapshots = self.discover_snapshots()
            except OSError as e:
                report.reason = str(e)
                logger.warning("Cannot list persistence directory %s: %s", self.directory, e)
                return report

            results = await asyncio.gather(
                *(asyncio.to_thread(self._load_one, name, path) for name, path in snapshots.items())
            )
            report.results = {r.name: r for r in results}

            total = sum(r.entries for r in results if r.success)
            logger.info(
                "Restored %d entries from %d snapshot(s)",
                total,
                len(report.succeeded),
                extra={"operation": "load_caches", "result_info": {"failed": report.failed}},
            )
            return report

    # Scheduling -------------------------------------------------------

    @property
    def periodic_running(self) -> bool:
        return self._periodic.running

    def start_periodic(self) -> None:
        self._periodic.start()

    async def stop_periodic(self) -> None:
        await self._periodic.cancel()

    async def shutdown(self) -> PersistenceReport:
        """Cancel the periodic save, then write a final snapshot."""
        await self.stop_periodic()
        return await self.save_all()
