"""
Exception hierarchy for the collection access layer.

Every error carries a standardized code, an HTTP status the caller can map to
a response, free-form context, an optional cause, and the correlation id of
the request that raised it. Errors log themselves once on construction.

Secret material (tokens, token secrets, keys, plaintext) must never be placed
in error context.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"
    TIMEOUT_ERROR = "1004"
    DECRYPTION_FAILED = "1005"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    LIMIT_EXCEEDED = "3005"
    NOT_CONNECTED = "3006"

    # Business logic errors (4xxx)
    QUOTA_EXCEEDED = "4002"
    PERMISSION_DENIED = "4003"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()
        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Imported lazily: the logger module reads config, which must not import us back
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause type and message (useful for debugging)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """Add additional context to the error (fluent interface)."""
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Persistence layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


# ==================== CONNECTION ERRORS ====================


class NotConnectedError(BaseError):
    """Raised when a user has no linked external account."""

    def __init__(self, message: str = "No linked collection account", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.NOT_CONNECTED, status_code=404, **kwargs
        )


class AccessDeniedError(BaseError):
    """Raised when a connection is addressed by a user who does not own it."""

    def __init__(
        self,
        message: str = "Access denied",
        error_code: ErrorCode = ErrorCode.PERMISSION_DENIED,
        status_code: int = 403,
        **kwargs,
    ):
        super().__init__(message=message, error_code=error_code, status_code=status_code, **kwargs)


class ConnectionNotFoundError(AccessDeniedError):
    """
    Raised when a connection id is unknown for the requesting user.

    Unknown ids and ids owned by somebody else are reported identically so a
    caller cannot probe for other users' connection ids.
    """

    def __init__(self, message: str = "Connection not found", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.NOT_FOUND, status_code=404, **kwargs
        )


class CapacityExceededError(BaseError):
    """Raised when linking another account would exceed the per-user cap."""

    def __init__(self, message: str = "Maximum number of linked accounts reached", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.LIMIT_EXCEEDED, status_code=409, **kwargs
        )


# ==================== REMOTE ACCESS ERRORS ====================


class RateLimitedError(BaseError):
    """Raised when the per-user remote call budget is exhausted."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        remaining: int = 0,
        reset_at: Optional[float] = None,
        **kwargs,
    ):
        self.remaining = remaining
        self.reset_at = reset_at
        super().__init__(
            message=message,
            error_code=ErrorCode.QUOTA_EXCEEDED,
            status_code=429,
            remaining=remaining,
            reset_at=reset_at,
            **kwargs,
        )


class UpstreamError(BaseError):
    """Raised when the remote collection API fails, times out, or returns garbage."""

    def __init__(
        self,
        message: str = "Remote collection API request failed",
        upstream_status: Optional[int] = None,
        cause: Optional[Exception] = None,
        **kwargs,
    ):
        self.upstream_status = upstream_status
        super().__init__(
            message=message,
            error_code=ErrorCode.EXTERNAL_API_ERROR,
            status_code=502,
            cause=cause,
            upstream_status=upstream_status,
            **kwargs,
        )


# ==================== CREDENTIAL VAULT ERRORS ====================


class CredentialVaultError(BaseError):
    """Base exception for credential vault failures."""

    def __init__(
        self,
        message: str = "Credential vault error",
        error_code: ErrorCode = ErrorCode.DECRYPTION_FAILED,
        **kwargs,
    ):
        super().__init__(message=message, error_code=error_code, status_code=500, **kwargs)


class EncryptionKeyError(CredentialVaultError):
    """Raised when the master key is missing or has the wrong length."""

    def __init__(self, message: str = "Encryption key is not configured", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.CONFIGURATION_ERROR, **kwargs)


class DecryptionError(CredentialVaultError):
    """Raised when a stored blob is malformed or fails authentication."""

    def __init__(self, message: str = "Failed to decrypt credential", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.DECRYPTION_FAILED, **kwargs)


# Factory functions for common error patterns
def not_found(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> RepositoryError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., 'ExternalConnection')
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., connection_id='123')

    Returns:
        Configured RepositoryError instance with 404 status
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return RepositoryError(
        message,
        error_code=ErrorCode.NOT_FOUND,
        status_code=404,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """Factory for validation errors."""
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
