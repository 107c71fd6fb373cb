"""
Cache Configuration Constants

Names, default sizes and lifetimes of the named caches, plus the
on-disk layout of persisted cache snapshots.
"""

from .system import BASE_DAY, BASE_HOUR


class CacheNames:
    """Names of the caches registered at startup."""

    TMDB_SEARCH = "tmdb_search"
    TMDB_DETAILS = "tmdb_details"
    TMDB_DISCOVER = "tmdb_discover"
    AI_RECOMMENDATIONS = "ai_recommendations"
    RPDB = "rpdb"
    FANART = "fanart"
    SIMILAR_CONTENT = "similar_content"
    TRAKT_RAW = "trakt_raw"
    TRAKT_PROCESSED = "trakt_processed"
    QUERY_ANALYSIS = "query_analysis"


class CacheDefaults:
    """Default capacity and TTL values for the named caches."""

    LARGE_SIZE = 25000
    MEDIUM_SIZE = 5000
    SMALL_SIZE = 1000

    DEFAULT_TTL = 7 * BASE_DAY  # provider answers
    TRAKT_PROCESSED_TTL = BASE_DAY  # derived preferences

    PERSIST_INTERVAL = BASE_HOUR
    STATS_INTERVAL = BASE_HOUR
    COMPRESSION_LEVEL = 6


DEFAULT_NAMED_CACHES: dict[str, tuple[int, int]] = {
    CacheNames.TMDB_SEARCH: (CacheDefaults.LARGE_SIZE, CacheDefaults.DEFAULT_TTL),
    CacheNames.TMDB_DETAILS: (CacheDefaults.LARGE_SIZE, CacheDefaults.DEFAULT_TTL),
    CacheNames.TMDB_DISCOVER: (CacheDefaults.SMALL_SIZE, CacheDefaults.DEFAULT_TTL),
    CacheNames.AI_RECOMMENDATIONS: (
        CacheDefaults.LARGE_SIZE,
        CacheDefaults.DEFAULT_TTL,
    ),
    CacheNames.RPDB: (CacheDefaults.LARGE_SIZE, CacheDefaults.DEFAULT_TTL),
    CacheNames.FANART: (CacheDefaults.MEDIUM_SIZE, CacheDefaults.DEFAULT_TTL),
    CacheNames.SIMILAR_CONTENT: (
        CacheDefaults.MEDIUM_SIZE,
        CacheDefaults.DEFAULT_TTL,
    ),
    CacheNames.TRAKT_RAW: (CacheDefaults.SMALL_SIZE, CacheDefaults.DEFAULT_TTL),
    CacheNames.TRAKT_PROCESSED: (
        CacheDefaults.SMALL_SIZE,
        CacheDefaults.TRAKT_PROCESSED_TTL,
    ),
    CacheNames.QUERY_ANALYSIS: (CacheDefaults.SMALL_SIZE, CacheDefaults.DEFAULT_TTL),
}


class PersistenceLayout:
    """File naming for persisted cache snapshots."""

    COMPRESSED_SUFFIX = ".json.gz"
    PLAIN_SUFFIX = ".json"
    TEMP_SUFFIX = ".tmp"
    STATS_NAME = "stats"  # reserved payload name for counters


class CounterNames:
    """Ancillary counters persisted next to the caches."""

    QUERY_COUNTER = "query_counter"
