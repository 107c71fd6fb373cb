"""Service lifecycle: restore caches, run background tasks, flush on shutdown.

Shutdown cancels the periodic persistence task before the final flush so
the two never write at the same time.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

from recvault.context import AppContext
from recvault.core.periodic import PeriodicTask
from recvault.services.cache_persistence import PersistenceReport

logger = logging.getLogger(__name__)


class RecVaultService:
    """Owns the startup and shutdown sequence around an ``AppContext``."""

    def __init__(self, context: AppContext) -> None:
        self.context = context
        self._stats_task = PeriodicTask(
            "cache-stats",
            context.settings.cache.stats_interval,
            self._log_stats,
        )
        self._started = False
        self.load_report: PersistenceReport | None = None
        self.flush_report: PersistenceReport | None = None

    @property
    def started(self) -> bool:
        return self._started

    async def _log_stats(self) -> None:
        self.context.registry.log_stats()

    async def start(self) -> None:
        """Restore persisted caches, then start the background tasks."""
        if self._started:
            return
        cache_settings = self.context.settings.cache
        if cache_settings.persistence_enabled:
            self.load_report = await self.context.persistence.load_all()
            self.context.persistence.start_periodic()
        self._stats_task.start()
        self._started = True
        logger.info("RecVault service started")

    async def stop(self) -> None:
        """Cancel timers, write the final snapshot and close provider sessions."""
        if not self._started:
            return
        self._started = False
        await self._stats_task.cancel()
        if self.context.settings.cache.persistence_enabled:
            self.flush_report = await self.context.persistence.shutdown()
        await self.context.close()
        logger.info("RecVault service stopped")

    async def run_until_signalled(self) -> None:
        """Run until SIGINT or SIGTERM, then shut down cleanly."""
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # add_signal_handler is unavailable on Windows event loops
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))

        await self.start()
        try:
            await stop_event.wait()
            logger.info("Shutdown signal received")
        finally:
            await self.stop()

    async def __aenter__(self) -> RecVaultService:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()
