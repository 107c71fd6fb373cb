"""
Pytest configuration and shared fixtures for RecVault tests.

This module provides common fixtures and configuration that can be used
across all test modules in the project.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from recvault.config.models.settings import Settings
from recvault.services.cache_registry import CacheRegistry


class ManualClock:
    """Deterministic clock for time-dependent tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def registry(clock: ManualClock) -> CacheRegistry:
    """Registry with a small cache of each flavour."""
    registry = CacheRegistry(clock=clock)
    registry.register("tmdb_search", 100, 3600)
    registry.register("trakt_raw", 10, 3600)
    registry.register("trakt_processed", 10, 3600)
    return registry


@pytest.fixture
def settings(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings isolated from the developer's environment."""
    for key in list(os.environ):
        if key.startswith("RECVAULT_"):
            monkeypatch.delenv(key)
    return Settings(
        cache={"persistence_dir": str(temp_dir / "cache_data")},
        api={"tmdb": {"api_key": "test-key"}, "trakt": {"client_id": "test-client"}},
    )
