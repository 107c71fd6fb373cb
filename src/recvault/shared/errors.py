"""RecVault Error Handling Module

This module defines the error handling system for RecVault, providing
structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Classifiable Failures: provider errors carry the status code and flags
  the retry layer needs to decide whether to try again
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

from recvault.shared.constants.http_codes import HTTPStatusCodes

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict for PII protection
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("user_id",)


class ErrorCode(str, Enum):
    """Error codes for RecVault.

    This enum serves as the single source of truth for all error codes
    used throughout the package.
    """

    # Provider / network errors
    NETWORK_ERROR = "NETWORK_ERROR"
    API_TIMEOUT = "API_TIMEOUT"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_AUTHENTICATION_FAILED = "API_AUTHENTICATION_FAILED"
    API_BAD_REQUEST = "API_BAD_REQUEST"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    API_INVALID_RESPONSE = "API_INVALID_RESPONSE"
    REAUTHENTICATION_REQUIRED = "REAUTHENTICATION_REQUIRED"

    # Cache errors
    CACHE_NOT_FOUND = "CACHE_NOT_FOUND"
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"

    # Sync errors
    SYNC_MERGE_FAILED = "SYNC_MERGE_FAILED"
    SYNC_PROJECTION_FAILED = "SYNC_PROJECTION_FAILED"
    DATA_PROCESSING_ERROR = "DATA_PROCESSING_ERROR"

    # Validation / configuration errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContextModel:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data so the context can be logged safely.

    Attributes:
        file_path: Optional file path associated with the error
        operation: Optional operation name that caused the error
        user_id: Optional user or account reference (masked in logs)
        additional_data: Optional dict with primitive values only
    """

    file_path: str | None = None
    operation: str | None = None
    user_id: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization validation and coercion."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with PII masking.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked sensitive fields and guaranteed additional_data key.
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.file_path is not None and "file_path" not in mask_keys:
            data["file_path"] = self.file_path
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.user_id is not None and "user_id" not in mask_keys:
            data["user_id"] = self.user_id

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


ErrorContext = ErrorContextModel


class RecVaultError(Exception):
    """Base exception class for all RecVault errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize RecVaultError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging with PII masking."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(RecVaultError):
    """Domain-specific errors.

    Raised when a caller asks for something the domain does not define,
    such as a cache name that was never registered.
    """


class InfrastructureError(RecVaultError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems
    like the file system or provider APIs.
    """


class ApplicationError(RecVaultError):
    """Application-level errors.

    Invalid configuration, invalid arguments or misuse of a component.
    """


class DataProcessingError(RecVaultError):
    """Data processing errors.

    Raised when a watch-history snapshot cannot be merged or projected,
    which indicates a corrupt snapshot.
    """


class PersistenceError(InfrastructureError):
    """Reading or writing a persisted cache snapshot failed."""


class ProviderError(InfrastructureError):
    """A provider call failed.

    Carries what the retry layer needs to classify the failure: the HTTP
    status code (None for transport failures and timeouts), whether the
    provider signalled rate limiting, and an optional Retry-After hint.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        *,
        status_code: int | None = None,
        rate_limited: bool = False,
        retry_after: float | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(code, message, context, original_error)
        self.status_code = status_code
        self.rate_limited = rate_limited or status_code == HTTPStatusCodes.TOO_MANY_REQUESTS
        self.retry_after = retry_after
        self._retryable = retryable

    @property
    def is_transport_error(self) -> bool:
        """True when the failure happened before any status was received."""
        return self.status_code is None

    @property
    def retryable(self) -> bool | None:
        """Explicit retryability flag, or None to let the classifier decide."""
        return self._retryable

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        data["rate_limited"] = self.rate_limited
        return data


class ReauthenticationRequiredError(ProviderError):
    """The upstream credential expired; the account must re-authenticate.

    Never retried: the request cannot succeed until the caller obtains a
    new credential.
    """

    def __init__(
        self,
        message: str = "Upstream credential expired",
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.REAUTHENTICATION_REQUIRED,
            message,
            context,
            original_error,
            status_code=HTTPStatusCodes.UNAUTHORIZED,
            retryable=False,
        )


# Convenience functions for common error scenarios
def create_provider_error(
    status_code: int,
    message: str,
    operation: str | None = None,
    retry_after: float | None = None,
) -> ProviderError:
    """Create a ProviderError whose code reflects the HTTP status."""
    if status_code == HTTPStatusCodes.TOO_MANY_REQUESTS:
        code = ErrorCode.API_RATE_LIMIT
    elif HTTPStatusCodes.is_auth_error(status_code):
        code = ErrorCode.API_AUTHENTICATION_FAILED
    elif status_code == HTTPStatusCodes.BAD_REQUEST:
        code = ErrorCode.API_BAD_REQUEST
    elif HTTPStatusCodes.is_server_error(status_code):
        code = ErrorCode.API_SERVER_ERROR
    else:
        code = ErrorCode.API_REQUEST_FAILED

    context = ErrorContext(
        operation=operation,
        additional_data={"status_code": status_code},
    )
    return ProviderError(
        code,
        message,
        context,
        status_code=status_code,
        retry_after=retry_after,
    )


def create_transport_error(
    message: str,
    operation: str | None = None,
    original_error: Exception | None = None,
    *,
    timeout: bool = False,
) -> ProviderError:
    """Create a ProviderError for a failure with no status code."""
    context = ErrorContext(operation=operation)
    return ProviderError(
        ErrorCode.API_TIMEOUT if timeout else ErrorCode.NETWORK_ERROR,
        message,
        context,
        original_error,
    )


def create_persistence_error(
    message: str,
    file_path: str | Path | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
    *,
    reading: bool = False,
) -> PersistenceError:
    """Create a persistence error with context."""
    context = ErrorContext(
        file_path=str(file_path) if file_path is not None else None,
        operation=operation,
    )
    return PersistenceError(
        ErrorCode.CACHE_READ_FAILED if reading else ErrorCode.CACHE_WRITE_FAILED,
        message,
        context,
        original_error,
    )


def create_cache_not_found_error(name: str) -> DomainError:
    """Create an error for a lookup of an unregistered cache."""
    context = ErrorContext(
        operation="get_cache",
        additional_data={"cache_name": name},
    )
    return DomainError(
        ErrorCode.CACHE_NOT_FOUND,
        f"No cache registered under '{name}'",
        context,
    )


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
) -> ApplicationError:
    """Create a validation error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ApplicationError(ErrorCode.VALIDATION_ERROR, message, context)


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"config_key": config_key} if config_key else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ApplicationError(
        ErrorCode.CONFIG_ERROR,
        message,
        context,
        original_error,
    )


def create_data_processing_error(
    message: str,
    code: ErrorCode = ErrorCode.DATA_PROCESSING_ERROR,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DataProcessingError:
    """Create a data processing error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return DataProcessingError(
        code,
        message,
        context,
        original_error,
    )
