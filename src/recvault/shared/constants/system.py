"""
System Configuration Constants

Base time units and application metadata shared by the other constant
modules.
"""

# Base time units
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class Application:
    """Application metadata constants."""

    NAME = "RecVault"
    VERSION = "0.1.0"
    DESCRIPTION = "Provider caching and watch-history sync for recommendations"


class FileSystem:
    """File system locations and config file names."""

    HOME_DIR = ".recvault"
    CACHE_DIRECTORY = "cache_data"
    CONFIG_FILE = "recvault.toml"
    ENV_FILE = ".env"
