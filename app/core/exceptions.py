"""App-wide exception hierarchy.

This module provides a unified exception system with automatic HTTP status code
mapping and consistent error response formatting.

Errors raised on the fatal path of an orchestration after an external side
effect (payment, storage) carry the operation and identifiers needed for
reconciliation. Those are logged, never returned to the caller.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All custom exceptions inherit from this class and define their own
    status_code and error_type for consistent API responses.
    """

    status_code: int = 500
    error_type: str = "internal_error"
    # When False the handler replaces type/message with a generic internal error.
    expose: bool = True

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(message)


class ReconcilableError(AppException):
    """Base class for failures that may leave external state behind."""

    expose = False

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        upstream_code: str | None = None,
        identifiers: dict[str, Any] | None = None,
    ):
        self.operation = operation
        self.upstream_code = upstream_code
        self.identifiers = identifiers or {}
        super().__init__(message)

    def log_context(self) -> dict[str, Any]:
        """Structured fields for the reconciliation log line."""
        return {
            "operation": self.operation,
            "upstream_code": self.upstream_code,
            "identifiers": self.identifiers,
        }


# Authentication errors (401)
class AuthError(AppException):
    """Base class for identity assertion failures."""

    status_code = 401
    error_type = "auth_error"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class InvalidTokenError(AuthError):
    """Raised when the identity token is invalid or expired."""

    error_type = "invalid_token"

    def __init__(self, message: str = "Invalid identity token"):
        super().__init__(message)


# Not found errors (404)
class NotFoundError(AppException):
    """Base class for resource not found errors."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


# Conflict errors (409)
class ConflictError(AppException):
    """Base class for resource conflict errors."""

    status_code = 409
    error_type = "conflict"

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message)


# Validation errors (400)
class ValidationError(AppException):
    """Base class for validation errors."""

    status_code = 400
    error_type = "validation_error"

    def __init__(self, message: str = "Validation failed", errors: list[str] | None = None):
        self.errors = errors or []
        if errors:
            message = f"{message}: {'; '.join(errors)}"
        super().__init__(message)


# Fatal-path errors (500, not exposed)
class PaymentError(ReconcilableError):
    """Raised when the payment provider rejects a request or is unavailable."""

    status_code = 500
    error_type = "payment_error"

    def __init__(self, message: str = "Payment provider error", **kwargs: Any):
        super().__init__(message, **kwargs)


class StorageError(ReconcilableError):
    """Raised on persistence failures and unclassified constraint breaches."""

    status_code = 500
    error_type = "storage_error"

    def __init__(self, message: str = "Storage error", **kwargs: Any):
        super().__init__(message, **kwargs)


# External service errors (502)
class ExternalServiceError(AppException):
    """Base class for external service failures."""

    status_code = 502
    error_type = "external_service_error"

    def __init__(self, message: str = "External service error"):
        super().__init__(message)


class DeliveryError(ExternalServiceError):
    """Raised when a notification or channel-menu switch fails.

    Never surfaced to callers: orchestrators log it and move on.
    """

    error_type = "delivery_error"

    def __init__(self, message: str = "Notification delivery failed"):
        super().__init__(message)


# Internal errors (500)
class InternalError(AppException):
    """Raised for internal server errors."""

    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str = "An internal error occurred"):
        super().__init__(message)
