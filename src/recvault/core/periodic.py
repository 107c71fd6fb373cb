"""Cancellable periodic background task on the running event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``action`` every ``interval`` seconds until cancelled.

    The first run happens one interval after ``start()``. A failing run is
    logged and the schedule continues. ``cancel()`` waits until the task
    has actually stopped, so a caller can rely on no run being in flight
    once it returns.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        action: Callable[[], Awaitable[object]],
    ) -> None:
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        self.name = name
        self.interval = interval
        self._action = action
        self._task: asyncio.Task[None] | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.debug("Started periodic task '%s' every %.1fs", self.name, self.interval)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._action()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic task '%s' failed", self.name)
            self.runs += 1

    async def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Cancelled periodic task '%s'", self.name)
