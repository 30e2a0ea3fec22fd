"""
Unit tests for the exception system.
"""

from collection_access_core.exceptions import (
    AccessDeniedError,
    BaseError,
    CapacityExceededError,
    ConnectionNotFoundError,
    DecryptionError,
    EncryptionKeyError,
    ErrorCode,
    NotConnectedError,
    RateLimitedError,
    RepositoryError,
    UpstreamError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    not_found,
    set_correlation_id,
    validation_failed,
)


class TestBaseError:
    """Test BaseError class."""

    def test_basic_error_creation(self):
        error = BaseError("Test error message")

        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.cause is None
        assert error.context["error_id"] == error.error_id

    def test_error_with_cause(self):
        original_error = ValueError("Original error")
        error = BaseError("Wrapped error", cause=original_error)

        assert error.context["cause"]["type"] == "ValueError"
        assert error.error_chain == [error, original_error]

    def test_error_with_correlation_id(self):
        set_correlation_id("corr-123")
        try:
            error = BaseError("Test error")
            assert error.context["correlation_id"] == "corr-123"
            assert error.to_dict()["error"]["correlation_id"] == "corr-123"
        finally:
            clear_correlation_id()
        assert get_correlation_id() is None

    def test_to_dict_hides_internal_context(self):
        error = BaseError("x", cause=RuntimeError("boom"), user_id="u1")
        payload = error.to_dict()["error"]

        assert payload["context"] == {"user_id": "u1"}
        assert "cause" not in payload
        assert error.to_dict(include_cause=True)["error"]["cause"]["type"] == "RuntimeError"

    def test_add_context_fluent_interface(self):
        error = BaseError("Test error").add_context(connection_id="c1")
        assert error.context["connection_id"] == "c1"


class TestCollectionErrors:
    """Test the error taxonomy used by the access layer."""

    def test_not_connected(self):
        error = NotConnectedError(user_id="u1")
        assert error.error_code == ErrorCode.NOT_CONNECTED
        assert error.status_code == 404
        assert error.context["user_id"] == "u1"

    def test_rate_limited_carries_budget(self):
        error = RateLimitedError(remaining=0, reset_at=1234.5)

        assert error.status_code == 429
        assert error.error_code == ErrorCode.QUOTA_EXCEEDED
        assert error.remaining == 0
        assert error.reset_at == 1234.5
        assert error.to_dict()["error"]["context"]["reset_at"] == 1234.5

    def test_connection_not_found_is_access_denied(self):
        error = ConnectionNotFoundError(connection_id="c1")

        assert isinstance(error, AccessDeniedError)
        assert error.status_code == 404
        assert error.error_code == ErrorCode.NOT_FOUND

    def test_access_denied_defaults(self):
        error = AccessDeniedError()
        assert error.status_code == 403
        assert error.error_code == ErrorCode.PERMISSION_DENIED

    def test_capacity_exceeded(self):
        error = CapacityExceededError(max_connections=2)
        assert error.status_code == 409
        assert error.error_code == ErrorCode.LIMIT_EXCEEDED

    def test_upstream_error(self):
        error = UpstreamError("bad gateway", upstream_status=503)
        assert error.status_code == 502
        assert error.upstream_status == 503
        assert error.context["upstream_status"] == 503

    def test_vault_errors(self):
        assert DecryptionError().error_code == ErrorCode.DECRYPTION_FAILED
        assert EncryptionKeyError().error_code == ErrorCode.CONFIGURATION_ERROR
        assert EncryptionKeyError().status_code == 500


class TestFactoryFunctions:
    """Test error factory helpers."""

    def test_not_found(self):
        error = not_found("ExternalConnection", connection_id="c1")

        assert isinstance(error, RepositoryError)
        assert error.status_code == 404
        assert error.message == "ExternalConnection not found: connection_id=c1"

    def test_validation_failed(self):
        error = validation_failed("page", 0, "must be positive")

        assert isinstance(error, ValidationError)
        assert error.status_code == 400
        assert error.context["field"] == "page"
        assert error.context["value"] == "0"
