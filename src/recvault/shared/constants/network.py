"""
Network Configuration Constants

Provider endpoints, request defaults and retry defaults.
"""

from .system import BASE_SECOND


class NetworkConfig:
    """Network configuration constants."""

    DEFAULT_TIMEOUT = 10 * BASE_SECOND
    USER_AGENT = "RecVault/0.1.0"
    ACCEPT_JSON = "application/json"


class TMDBConfig:
    """TMDB v3 API constants."""

    BASE_URL = "https://api.themoviedb.org/3"
    IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
    POSTER_SIZE = "w500"
    BACKDROP_SIZE = "original"
    DEFAULT_LANGUAGE = "en-US"
    REQUESTS_PER_SECOND = 35.0


class TraktConfig:
    """Trakt v2 API constants."""

    BASE_URL = "https://api.trakt.tv"
    API_VERSION = "2"
    PAGE_LIMIT = 100  # maximum page size accepted by the provider
    REQUESTS_PER_SECOND = 3.0
    HEADER_API_VERSION = "trakt-api-version"
    HEADER_API_KEY = "trakt-api-key"


class RetryDefaults:
    """Default retry policy parameters per provider."""

    MAX_ATTEMPTS = 3
    BACKOFF_FACTOR = 2.0

    TRAKT_INITIAL_DELAY = 1.0 * BASE_SECOND
    TRAKT_MAX_DELAY = 30.0 * BASE_SECOND

    TMDB_INITIAL_DELAY = 1.0 * BASE_SECOND
    TMDB_MAX_DELAY = 30.0 * BASE_SECOND

    AI_INITIAL_DELAY = 2.0 * BASE_SECOND
    AI_MAX_DELAY = 10.0 * BASE_SECOND
