"""Tests for PeriodicTask."""

from __future__ import annotations

import asyncio

import pytest

from recvault.core.periodic import PeriodicTask


class TestPeriodicTask:
    """Scheduling and cancellation."""

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, lambda: asyncio.sleep(0))

    @pytest.mark.asyncio
    async def test_runs_repeatedly_until_cancelled(self) -> None:
        calls = 0

        async def action() -> None:
            nonlocal calls
            calls += 1

        task = PeriodicTask("counter", 0.01, action)
        task.start()
        await asyncio.sleep(0.1)
        await task.cancel()

        assert calls >= 2
        assert not task.running
        stopped_at = calls
        await asyncio.sleep(0.05)
        assert calls == stopped_at

    @pytest.mark.asyncio
    async def test_failing_run_does_not_stop_schedule(self) -> None:
        async def action() -> None:
            raise RuntimeError("boom")

        task = PeriodicTask("failing", 0.01, action)
        task.start()
        await asyncio.sleep(0.08)

        assert task.running
        assert task.runs >= 2
        await task.cancel()

    @pytest.mark.asyncio
    async def test_cancel_without_start_is_noop(self) -> None:
        task = PeriodicTask("idle", 1, lambda: asyncio.sleep(0))
        await task.cancel()
        assert not task.running
