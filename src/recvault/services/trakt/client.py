"""Watch-history provider client (Trakt v2).

Fetches one page of a user's watched, rated or history collection for a
content category, optionally limited to items changed since an instant.
An HTTP 401 means the account's credential expired and is raised as
``ReauthenticationRequiredError`` so callers can tell it apart from other
failures.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from recvault.services.http_client import ProviderHttpClient
from recvault.shared.constants import HTTPHeaders, HTTPStatusCodes, TraktConfig
from recvault.shared.errors import (
    ErrorCode,
    ErrorContext,
    ProviderError,
    ReauthenticationRequiredError,
    create_validation_error,
)

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    """Watch-history collections and their endpoint segment."""

    WATCHED = "watched"
    RATED = "ratings"
    HISTORY = "history"

    @property
    def key(self) -> str:
        """Name of the collection inside a sync snapshot."""
        return "rated" if self is Collection.RATED else self.value


CATEGORIES = ("movies", "shows")


def format_since(instant: datetime) -> str:
    """ISO-8601 UTC with seconds precision and a trailing Z."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class WatchHistoryClient:
    """Reads watch-history collections for one account credential."""

    def __init__(
        self,
        http: ProviderHttpClient,
        client_id: str,
        *,
        page_limit: int = TraktConfig.PAGE_LIMIT,
    ) -> None:
        self._http = http
        self._client_id = client_id
        self.page_limit = page_limit

    def _headers(self, credential: str) -> dict[str, str]:
        return {
            HTTPHeaders.CONTENT_TYPE: "application/json",
            TraktConfig.HEADER_API_VERSION: TraktConfig.API_VERSION,
            TraktConfig.HEADER_API_KEY: self._client_id,
            HTTPHeaders.AUTHORIZATION: f"Bearer {credential}",
        }

    async def fetch_collection(
        self,
        credential: str,
        category: str,
        collection: Collection,
        since: datetime | None = None,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch one page of ``collection`` for ``category``.

        Args:
            credential: The account's access token.
            category: "movies" or "shows".
            collection: Which collection to read.
            since: Only return items changed after this instant.
            page: 1-based page number.
            limit: Page size; defaults to the configured maximum.

        Raises:
            ReauthenticationRequiredError: The credential is expired or revoked.
            ProviderError: Any other failure.
        """
        if category not in CATEGORIES:
            raise create_validation_error(
                f"category must be one of {CATEGORIES}, got '{category}'",
                field="category",
                operation="fetch_collection",
            )

        params: dict[str, Any] = {
            "extended": "full",
            "page": page,
            "limit": limit or self.page_limit,
        }
        if since is not None:
            params["start_at"] = format_since(since)

        operation = f"trakt_{collection.key}_{category}"
        try:
            data = await self._http.get_json(
                f"/users/me/{collection.value}/{category}",
                params=params,
                headers=self._headers(credential),
                operation=operation,
            )
        except ProviderError as e:
            if e.status_code == HTTPStatusCodes.UNAUTHORIZED:
                logger.warning("Watch-history credential rejected for %s", operation)
                raise ReauthenticationRequiredError(
                    "Watch-history credential expired; re-authentication required",
                    ErrorContext(operation=operation),
                    e,
                ) from e
            raise

        if data is None:
            return []
        if not isinstance(data, list):
            raise ProviderError(
                ErrorCode.API_INVALID_RESPONSE,
                f"Expected a list from {operation}, got {type(data).__name__}",
                ErrorContext(operation=operation),
                retryable=False,
            )
        return data
