"""Tests for the service lifecycle."""

from __future__ import annotations

import pytest

from recvault.app import RecVaultService
from recvault.config.models.settings import Settings
from recvault.context import build_context


class TestRecVaultService:
    """Startup restore and shutdown flush."""

    @pytest.mark.asyncio
    async def test_first_start_without_snapshots(self, settings: Settings) -> None:
        service = RecVaultService(build_context(settings))

        await service.start()
        try:
            assert service.started
            assert service.load_report.reason == "no persistence directory"
            assert service.context.persistence.periodic_running
        finally:
            await service.stop()

        assert not service.context.persistence.periodic_running
        assert service.flush_report.success

    @pytest.mark.asyncio
    async def test_restart_restores_caches(self, settings: Settings, clock) -> None:
        # Given
        async with RecVaultService(build_context(settings, clock=clock)) as first:
            first.context.registry.get("rpdb").set("tt0113277", "https://poster")
            first.context.registry.increment_counter(amount=4)

        # When
        second = RecVaultService(build_context(settings, clock=clock))
        await second.start()
        await second.stop()

        # Then
        registry = second.context.registry
        assert registry.get("rpdb").get("tt0113277") == "https://poster"
        assert registry.get_counter() == 4
        assert second.load_report.results["rpdb"].entries == 1

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, settings: Settings) -> None:
        service = RecVaultService(build_context(settings))
        await service.start()
        await service.stop()
        report = service.flush_report

        await service.stop()

        assert service.flush_report is report

    @pytest.mark.asyncio
    async def test_persistence_can_be_disabled(self, settings: Settings) -> None:
        settings.cache.persistence_enabled = False
        service = RecVaultService(build_context(settings))

        async with service:
            assert service.load_report is None

        assert service.flush_report is None


class TestBuildContext:
    def test_wires_configured_caches(self, settings: Settings) -> None:
        context = build_context(settings)

        assert set(context.registry.names()) == set(settings.cache.named)
        assert context.persistence.directory.name == "cache_data"
        assert context.watch_history.page_limit == settings.api.trakt.page_limit

    def test_ai_policy_uses_configured_delays(self, settings: Settings) -> None:
        policy = build_context(settings).ai_retry_policy

        assert policy.initial_delay == 2
        assert policy.max_delay == 10
        assert policy.delay_for(3) == 8
        assert policy.delay_for(4) == 10
