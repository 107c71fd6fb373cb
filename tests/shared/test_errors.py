"""Tests for the RecVault error hierarchy."""

from __future__ import annotations

from pathlib import Path

import pytest

from recvault.shared.errors import (
    ApplicationError,
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    PersistenceError,
    ProviderError,
    ReauthenticationRequiredError,
    RecVaultError,
    create_cache_not_found_error,
    create_persistence_error,
    create_provider_error,
    create_transport_error,
    create_validation_error,
)


class TestErrorContext:
    def test_coerces_path_and_enum(self) -> None:
        context = ErrorContext(
            additional_data={"path": Path("/tmp/x"), "code": ErrorCode.CACHE_CORRUPTED}
        )
        assert context.additional_data == {"path": "/tmp/x", "code": "CACHE_CORRUPTED"}

    def test_rejects_non_primitive_values(self) -> None:
        with pytest.raises(TypeError):
            ErrorContext(additional_data={"items": [1, 2]})

    def test_safe_dict_masks_user_id(self) -> None:
        context = ErrorContext(operation="sync", user_id="account-digest")

        data = context.safe_dict()

        assert "user_id" not in data
        assert data["operation"] == "sync"
        assert data["additional_data"] == {}


class TestRecVaultError:
    def test_string_and_dict_forms(self) -> None:
        error = RecVaultError(
            ErrorCode.CONFIG_ERROR,
            "bad config",
            ErrorContext(operation="load"),
            ValueError("inner"),
        )

        assert str(error) == "CONFIG_ERROR: bad config"
        assert error.to_dict() == {
            "code": "CONFIG_ERROR",
            "message": "bad config",
            "context": {"operation": "load", "additional_data": {}},
            "original_error": "inner",
        }


class TestProviderErrors:
    @pytest.mark.parametrize(
        ("status", "code"),
        [
            (400, ErrorCode.API_BAD_REQUEST),
            (401, ErrorCode.API_AUTHENTICATION_FAILED),
            (403, ErrorCode.API_AUTHENTICATION_FAILED),
            (404, ErrorCode.API_REQUEST_FAILED),
            (429, ErrorCode.API_RATE_LIMIT),
            (500, ErrorCode.API_SERVER_ERROR),
        ],
    )
    def test_status_to_code(self, status: int, code: ErrorCode) -> None:
        error = create_provider_error(status, "x", operation="op")

        assert error.code == code
        assert error.status_code == status
        assert error.to_dict()["status_code"] == status

    def test_rate_limit_flag(self) -> None:
        assert create_provider_error(429, "x").rate_limited
        assert not create_provider_error(500, "x").rate_limited

    def test_transport_error_has_no_status(self) -> None:
        error = create_transport_error("reset", timeout=True)
        assert error.is_transport_error
        assert error.code == ErrorCode.API_TIMEOUT

    def test_reauthentication_error(self) -> None:
        error = ReauthenticationRequiredError()

        assert isinstance(error, ProviderError)
        assert error.status_code == 401
        assert error.retryable is False


class TestFactories:
    def test_hierarchy(self) -> None:
        assert isinstance(create_cache_not_found_error("x"), DomainError)
        assert isinstance(create_validation_error("x"), ApplicationError)
        persistence = create_persistence_error("x", file_path=Path("a.json.gz"))
        assert isinstance(persistence, PersistenceError)
        assert isinstance(persistence, InfrastructureError)

    def test_persistence_error_codes(self) -> None:
        assert create_persistence_error("x").code == ErrorCode.CACHE_WRITE_FAILED
        assert create_persistence_error("x", reading=True).code == ErrorCode.CACHE_READ_FAILED

    def test_validation_error_records_field(self) -> None:
        error = create_validation_error("bad", field="max_size", operation="register")
        assert error.context.additional_data == {"field": "max_size"}
