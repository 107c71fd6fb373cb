"""Tests for settings models and loading."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from recvault.config import loader
from recvault.config.models.settings import Settings
from recvault.shared.errors import ApplicationError, ErrorCode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    """Keep the developer's environment and config files out of these tests."""
    for key in list(os.environ):
        if key.startswith("RECVAULT_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(temp_dir)
    monkeypatch.setenv("HOME", str(temp_dir))


class TestDefaults:
    def test_named_cache_defaults(self) -> None:
        settings = Settings()

        assert settings.cache.named["tmdb_search"].max_size == 25000
        assert settings.cache.named["trakt_processed"].ttl_seconds == 86400
        assert settings.cache.compression_level == 6
        assert settings.sync.min_recheck_seconds == 0

    def test_credentials_are_not_in_repr(self) -> None:
        settings = Settings(api={"tmdb": {"api_key": "super-secret"}})
        assert "super-secret" not in repr(settings.api.tmdb)


class TestEnvironmentOverrides:
    def test_nested_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RECVAULT_API__TMDB__API_KEY", "from-env")
        monkeypatch.setenv("RECVAULT_CACHE__PERSIST_INTERVAL", "30")

        settings = Settings()

        assert settings.api.tmdb.api_key == "from-env"
        assert settings.cache.persist_interval == 30

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValueError):
            Settings(logging={"level": "LOUD"})


class TestTomlFiles:
    def test_round_trip(self, temp_dir: Path) -> None:
        path = temp_dir / "recvault.toml"
        original = Settings(cache={"persist_interval": 120, "persistence_dir": "snapshots"})

        original.to_toml_file(path)
        loaded = Settings.from_toml_file(path)

        assert loaded.cache.persist_interval == 120
        assert loaded.cache.persistence_dir == "snapshots"

    def test_load_settings_reads_explicit_file(self, temp_dir: Path) -> None:
        path = temp_dir / "custom.toml"
        path.write_text('[retry.trakt]\nmax_attempts = 5\n\n[sync]\nmin_recheck_seconds = 90\n')

        settings = loader.load_settings(path)

        assert settings.retry.trakt.max_attempts == 5
        assert settings.sync.min_recheck_seconds == 90

    def test_load_settings_finds_default_file(self, temp_dir: Path) -> None:
        (temp_dir / "recvault.toml").write_text('[logging]\nlevel = "debug"\n')

        assert loader.load_settings().logging.level == "DEBUG"

    def test_missing_explicit_file(self, temp_dir: Path) -> None:
        with pytest.raises(ApplicationError) as exc_info:
            loader.load_settings(temp_dir / "absent.toml")
        assert exc_info.value.code == ErrorCode.CONFIG_ERROR

    def test_invalid_values_become_config_error(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.toml"
        path.write_text("[cache]\ncompression_level = 42\n")

        with pytest.raises(ApplicationError) as exc_info:
            loader.load_settings(path)
        assert exc_info.value.code == ErrorCode.CONFIG_ERROR

    def test_env_file_is_loaded(self, temp_dir: Path) -> None:
        (temp_dir / ".env").write_text("RECVAULT_API__TRAKT__CLIENT_ID=from-dotenv\n")

        try:
            settings = loader.load_settings()
        finally:
            os.environ.pop("RECVAULT_API__TRAKT__CLIENT_ID", None)

        assert settings.api.trakt.client_id == "from-dotenv"


class TestSettingsLoader:
    def test_get_config_is_cached_until_reload(self, temp_dir: Path) -> None:
        path = temp_dir / "a.toml"
        path.write_text("[cache]\npersist_interval = 10\n")
        settings_loader = loader.SettingsLoader()
        settings_loader.configure(path)

        first = settings_loader.get_config()
        path.write_text("[cache]\npersist_interval = 20\n")

        assert settings_loader.get_config() is first
        assert settings_loader.reload_config().cache.persist_interval == 20
