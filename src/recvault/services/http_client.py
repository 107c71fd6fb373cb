"""Shared aiohttp transport for provider clients.

Applies a per-provider rate limit and a per-call timeout, and converts
every failure into a ``ProviderError`` the retry layer can classify:
non-2xx responses carry their status code, connection failures and
timeouts carry none.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import aiohttp
from aiolimiter import AsyncLimiter

from recvault.shared.constants import HTTPHeaders, HTTPStatusCodes, NetworkConfig
from recvault.shared.errors import (
    ErrorCode,
    ErrorContext,
    ProviderError,
    create_provider_error,
    create_transport_error,
)
from recvault.shared.logging import log_api_call

logger = logging.getLogger(__name__)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class ProviderHttpClient:
    """Rate-limited JSON-over-HTTP transport for one provider.

    Args:
        name: Provider name used in logs and error context.
        base_url: Prefix for every request path.
        timeout: Total seconds allowed for one call.
        rate_limit_rps: Requests allowed per second.
        default_headers: Headers sent with every request.
        session: Optional externally managed session.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float = NetworkConfig.DEFAULT_TIMEOUT,
        rate_limit_rps: float = 10.0,
        default_headers: dict[str, str] | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._limiter = AsyncLimiter(rate_limit_rps, 1)
        self._headers = {
            HTTPHeaders.ACCEPT: NetworkConfig.ACCEPT_JSON,
            HTTPHeaders.USER_AGENT: NetworkConfig.USER_AGENT,
            **(default_headers or {}),
        }
        self._session = session
        self._owns_session = session is None
        self.request_count = 0

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._headers)
            self._owns_session = True
        return self._session

    async def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        operation: str | None = None,
    ) -> Any:
        """GET ``path`` and decode the JSON body.

        Raises:
            ProviderError: For any non-2xx status, connection failure,
                timeout or undecodable body.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        operation = operation or f"{self.name}:{path}"
        request_headers = {**self._headers, **(headers or {})}
        started = time.perf_counter()

        async with self._limiter:
            try:
                async with self._get_session().get(
                    url,
                    params=params,
                    headers=request_headers,
                    timeout=self.timeout,
                ) as response:
                    self.request_count += 1
                    duration_ms = (time.perf_counter() - started) * 1000
                    log_api_call(logger, url, "GET", response.status, duration_ms)

                    if not HTTPStatusCodes.is_success(response.status):
                        raise create_provider_error(
                            response.status,
                            f"{self.name} returned HTTP {response.status} for {path}",
                            operation=operation,
                            retry_after=_parse_retry_after(
                                response.headers.get(HTTPHeaders.RETRY_AFTER)
                            ),
                        )
                    if response.status == HTTPStatusCodes.NO_CONTENT:
                        return None
                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise ProviderError(
                            ErrorCode.API_INVALID_RESPONSE,
                            f"{self.name} returned a body that is not JSON",
                            ErrorContext(operation=operation),
                            e,
                            status_code=response.status,
                        ) from e
            except asyncio.TimeoutError as e:
                raise create_transport_error(
                    f"{self.name} request timed out after {self.timeout.total}s",
                    operation=operation,
                    original_error=e,
                    timeout=True,
                ) from e
            except aiohttp.ClientError as e:
                raise create_transport_error(
                    f"{self.name} request failed: {e}",
                    operation=operation,
                    original_error=e,
                ) from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> ProviderHttpClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
