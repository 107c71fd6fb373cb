"""
Bounded retry with exponential backoff for provider calls.

``retry_execute`` wraps any awaitable-returning callable. Failures are
classified by ``RetryPolicy.is_retryable``; the default classifier retries
transport failures, timeouts, server errors and rate limiting, and never
retries authentication failures, malformed requests or errors explicitly
flagged as non-retryable.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from recvault.config.models.retry_settings import RetryPolicySettings
from recvault.shared.constants import HTTPStatusCodes, RetryDefaults
from recvault.shared.errors import ProviderError, create_validation_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _status_of(exc: BaseException) -> int | None:
    if isinstance(exc, ProviderError):
        return exc.status_code
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def default_is_retryable(exc: BaseException) -> bool:
    """Default failure classifier.

    Returns:
        True for failures worth another attempt: no status code
        (connection errors, timeouts), 5xx, and rate limiting. False for
        every other status and for errors flagged non-retryable.
    """
    if isinstance(exc, ProviderError):
        if exc.retryable is not None:
            return exc.retryable
        if exc.rate_limited:
            return True

    if isinstance(exc, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return True

    status = _status_of(exc)
    if status is None:
        return True
    if status == HTTPStatusCodes.TOO_MANY_REQUESTS:
        return True
    return HTTPStatusCodes.is_server_error(status)


def never_retry_bad_request(exc: BaseException) -> bool:
    """Classifier for the text-generation backend: anything but a 400 is retried."""
    return _status_of(exc) != HTTPStatusCodes.BAD_REQUEST


@dataclass(frozen=True)
class RetryPolicy:
    """How one call site retries.

    Attributes:
        max_attempts: Total tries including the first; 1 means no retry.
        initial_delay: Seconds to wait before the second attempt.
        max_delay: Upper bound of any single wait.
        backoff_factor: Growth of the delay between consecutive waits.
        is_retryable: Classifier deciding whether a failure is retried.
        label: Operation name used in log events.
        delay_strategy: Optional ``attempt_number -> seconds`` replacing
            the exponential schedule.
    """

    max_attempts: int = RetryDefaults.MAX_ATTEMPTS
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = RetryDefaults.BACKOFF_FACTOR
    is_retryable: Callable[[BaseException], bool] = default_is_retryable
    label: str = "operation"
    delay_strategy: Callable[[int], float] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise create_validation_error(
                f"max_attempts must be at least 1, got {self.max_attempts}",
                field="max_attempts",
                operation="RetryPolicy",
            )
        if self.initial_delay < 0 or self.max_delay < 0:
            raise create_validation_error(
                "Retry delays must not be negative",
                field="initial_delay",
                operation="RetryPolicy",
            )
        if self.backoff_factor < 1:
            raise create_validation_error(
                f"backoff_factor must be at least 1, got {self.backoff_factor}",
                field="backoff_factor",
                operation="RetryPolicy",
            )

    @classmethod
    def from_settings(
        cls,
        settings: RetryPolicySettings,
        label: str,
        is_retryable: Callable[[BaseException], bool] = default_is_retryable,
    ) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            initial_delay=settings.initial_delay,
            max_delay=settings.max_delay,
            backoff_factor=settings.backoff_factor,
            is_retryable=is_retryable,
            label=label,
        )

    def delay_for(self, attempt_number: int) -> float:
        """Seconds to wait after failed attempt ``attempt_number`` (1-based)."""
        if self.delay_strategy is not None:
            delay = self.delay_strategy(attempt_number)
        else:
            try:
                delay = self.initial_delay * self.backoff_factor ** (attempt_number - 1)
            except OverflowError:
                delay = self.max_delay
        return min(max(delay, 0.0), self.max_delay)


class _PolicyWait:
    """tenacity wait that follows the policy and honours Retry-After hints."""

    def __init__(self, policy: RetryPolicy) -> None:
        self._policy = policy
        self._schedule = wait_exponential(
            multiplier=policy.initial_delay,
            exp_base=policy.backoff_factor,
            min=0,
            max=policy.max_delay,
        )

    def __call__(self, retry_state: RetryCallState) -> float:
        if self._policy.delay_strategy is not None:
            delay = self._policy.delay_for(retry_state.attempt_number)
        else:
            delay = float(self._schedule(retry_state))
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            exc = outcome.exception()
            if isinstance(exc, ProviderError) and exc.retry_after:
                delay = max(delay, min(exc.retry_after, self._policy.max_delay))
        return delay


def _log_attempt(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        logger.debug(
            "%s: attempt %d/%d",
            policy.label,
            retry_state.attempt_number,
            policy.max_attempts,
            extra={
                "operation": policy.label,
                "context": {"attempt": retry_state.attempt_number},
            },
        )

    return _log


def _log_before_sleep(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "%s: attempt %d/%d failed (%s); retrying in %.2fs",
            policy.label,
            retry_state.attempt_number,
            policy.max_attempts,
            exc,
            delay,
            extra={
                "operation": policy.label,
                "context": {
                    "attempt": retry_state.attempt_number,
                    "delay": delay,
                },
            },
        )

    return _log


async def retry_execute(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await ``operation()`` until it succeeds or retrying stops.

    Args:
        operation: Zero-argument callable returning an awaitable.
        policy: Attempts, delays and classifier.
        sleep: Coroutine used for inter-attempt waits.

    Returns:
        The first successful result.

    Raises:
        The last failure, unchanged, once attempts are exhausted or the
        classifier declares it non-retryable.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=_PolicyWait(policy),
        # Cancellation and interpreter exits are never retried
        retry=retry_if_exception(
            lambda exc: isinstance(exc, Exception) and policy.is_retryable(exc)
        ),
        before=_log_attempt(policy),
        before_sleep=_log_before_sleep(policy),
        sleep=sleep,
        reraise=True,
    )
    try:
        return await retrying(operation)
    except Exception as e:
        attempts = retrying.statistics.get("attempt_number", 1)
        logger.warning(
            "%s: giving up after %d attempt(s): %s",
            policy.label,
            attempts,
            e,
            extra={
                "operation": policy.label,
                "context": {"attempt": attempts, "retryable": policy.is_retryable(e)},
            },
        )
        raise


def with_retry(
    policy: RetryPolicy,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator form of ``retry_execute`` for async functions."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_execute(lambda: func(*args, **kwargs), policy)

        return wrapper

    return decorator
