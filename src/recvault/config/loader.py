"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files (python-dotenv)
- Configuration file loading from TOML
- Thread-safe lazily-loaded Settings instance for entry points

Core components never call get_config(); they receive the Settings
instance (or the parts they need) when the application context is built.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from recvault.config.models.settings import Settings
from recvault.shared.constants import FileSystem
from recvault.shared.errors import create_config_error

logger = logging.getLogger(__name__)


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking so the common path takes no lock.
    """

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._config_path: Path | None = None
        self._lock = threading.RLock()

    def configure(self, config_path: str | Path | None) -> None:
        """Select the TOML file used by the next load and drop any cached instance."""
        with self._lock:
            self._config_path = Path(config_path) if config_path else None
            self._instance = None

    def get_config(self) -> Settings:
        """Get the settings instance, loading it if necessary."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings(self._config_path)

        return self._instance

    def reload_config(self) -> Settings:
        """Reload settings from the configuration sources."""
        with self._lock:
            self._instance = load_settings(self._config_path)

        return self._instance


def _load_env_file(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file when one exists.

    Returns:
        True if a file was loaded.
    """
    env_file = env_file or Path(FileSystem.ENV_FILE)
    if not env_file.is_file():
        return False

    load_dotenv(env_file, override=False)
    logger.debug("Loaded environment from %s", env_file)
    return True


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a TOML configuration file or the environment.

    Args:
        config_path: Optional path to a TOML file. If None, the default
            locations are tried before falling back to the environment.

    Returns:
        Settings instance loaded from the first available source

    Raises:
        ApplicationError: If an explicit file is missing or any source
            holds invalid values
    """
    _load_env_file()

    try:
        if config_path:
            return Settings.from_toml_file(config_path)

        default_config_paths = [
            Path("config") / FileSystem.CONFIG_FILE,
            Path(FileSystem.CONFIG_FILE),
            Path.home() / FileSystem.HOME_DIR / FileSystem.CONFIG_FILE,
        ]
        for candidate in default_config_paths:
            if candidate.exists():
                logger.debug("Loading configuration from %s", candidate)
                return Settings.from_toml_file(candidate)

        return Settings()
    except FileNotFoundError as e:
        raise create_config_error(
            f"Configuration file not found: {config_path}",
            config_key="config_path",
            operation="load_settings",
            original_error=e,
        ) from e
    except ValidationError as e:
        raise create_config_error(
            f"Invalid configuration: {e.error_count()} validation error(s)",
            operation="load_settings",
            original_error=e,
        ) from e


_loader = SettingsLoader()


def configure(config_path: str | Path | None) -> None:
    """Select the TOML file used by get_config()."""
    _loader.configure(config_path)


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config() -> Settings:
    """Reload the global settings instance."""
    return _loader.reload_config()
