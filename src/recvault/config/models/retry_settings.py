"""Default retry policy parameters per provider."""

from __future__ import annotations

from pydantic import BaseModel, Field

from recvault.shared.constants import RetryDefaults


class RetryPolicySettings(BaseModel):
    """Parameters of one provider's default retry policy."""

    max_attempts: int = Field(default=RetryDefaults.MAX_ATTEMPTS, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    backoff_factor: float = Field(default=RetryDefaults.BACKOFF_FACTOR, ge=1)


class RetrySettings(BaseModel):
    """Retry defaults for each provider."""

    tmdb: RetryPolicySettings = Field(
        default_factory=lambda: RetryPolicySettings(
            initial_delay=RetryDefaults.TMDB_INITIAL_DELAY,
            max_delay=RetryDefaults.TMDB_MAX_DELAY,
        )
    )
    trakt: RetryPolicySettings = Field(
        default_factory=lambda: RetryPolicySettings(
            initial_delay=RetryDefaults.TRAKT_INITIAL_DELAY,
            max_delay=RetryDefaults.TRAKT_MAX_DELAY,
        )
    )
    ai: RetryPolicySettings = Field(
        default_factory=lambda: RetryPolicySettings(
            initial_delay=RetryDefaults.AI_INITIAL_DELAY,
            max_delay=RetryDefaults.AI_MAX_DELAY,
        )
    )


__all__ = ["RetryPolicySettings", "RetrySettings"]
