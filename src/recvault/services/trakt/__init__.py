"""Watch-history provider (Trakt) client."""

from recvault.services.trakt.client import (
    CATEGORIES,
    Collection,
    WatchHistoryClient,
    format_since,
)

__all__ = ["CATEGORIES", "Collection", "WatchHistoryClient", "format_since"]
