"""API configuration models (TMDB, Trakt).

Configuration for the metadata provider and the watch-history provider.
Credentials are hidden from repr so settings can be logged safely.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from recvault.shared.constants import NetworkConfig, TMDBConfig, TraktConfig


class TMDBSettings(BaseModel):
    """TMDB API configuration."""

    api_key: str = Field(
        default="",
        repr=False,
        description="TMDB API key (required for API access)",
    )
    base_url: str = Field(default=TMDBConfig.BASE_URL, description="API base URL")
    image_base_url: str = Field(
        default=TMDBConfig.IMAGE_BASE_URL,
        description="Base URL for poster and backdrop images",
    )
    language: str = Field(default=TMDBConfig.DEFAULT_LANGUAGE)
    timeout: float = Field(
        default=NetworkConfig.DEFAULT_TIMEOUT,
        gt=0,
        description="Per-call timeout in seconds",
    )
    rate_limit_rps: float = Field(
        default=TMDBConfig.REQUESTS_PER_SECOND,
        gt=0,
        description="Rate limit in requests per second",
    )

    def __repr__(self) -> str:
        masked_key = "****" if self.api_key else "[empty]"
        return (
            f"TMDBSettings(api_key={masked_key}, "
            f"timeout={self.timeout}, rate_limit_rps={self.rate_limit_rps})"
        )


class TraktSettings(BaseModel):
    """Trakt API configuration."""

    client_id: str = Field(
        default="",
        repr=False,
        description="Trakt application client id",
    )
    base_url: str = Field(default=TraktConfig.BASE_URL)
    timeout: float = Field(default=NetworkConfig.DEFAULT_TIMEOUT, gt=0)
    rate_limit_rps: float = Field(default=TraktConfig.REQUESTS_PER_SECOND, gt=0)
    page_limit: int = Field(
        default=TraktConfig.PAGE_LIMIT,
        gt=0,
        le=TraktConfig.PAGE_LIMIT,
        description="Items requested per collection page",
    )

    def __repr__(self) -> str:
        masked = "****" if self.client_id else "[empty]"
        return f"TraktSettings(client_id={masked}, timeout={self.timeout})"


class APISettings(BaseModel):
    """API configuration container."""

    tmdb: TMDBSettings = Field(default_factory=TMDBSettings)
    trakt: TraktSettings = Field(default_factory=TraktSettings)


__all__ = ["APISettings", "TMDBSettings", "TraktSettings"]
