"""
Exception classes for API error handling.

Domain errors raised by the service are converted to these by
``from_domain_error`` so every failure leaves the API with a stable type,
a message and an HTTP status.
"""

from canvas_forge.core.exceptions import (
    AuthorizationError,
    CanvasForgeError,
    ConcurrencyConflictError,
    ConfigurationError,
    ContentFetchError,
    NotFoundError as DomainNotFoundError,
    RepositoryError,
    UploadError,
    UploadErrorKind,
    ValidationError as DomainValidationError,
)


class APIException(Exception):
    """
    Base exception for API errors.

    All API exceptions should inherit from this class to ensure
    consistent error response formatting.
    """

    status_code: int = 500
    error_type: str = "api_error"
    message: str = "An error occurred"
    detail: str | None = None

    def __init__(
        self,
        message: str | None = None,
        detail: str | None = None,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        self.message = message or self.message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        super().__init__(self.message)


class ValidationError(APIException):
    """Exception raised when request validation fails."""

    status_code = 400
    error_type = "validation_error"
    message = "Request validation failed"


class ForbiddenError(APIException):
    """Exception raised when the caller does not own the game."""

    status_code = 403
    error_type = "authorization_error"
    message = "Unauthorized"


class NotFoundError(APIException):
    """Exception raised when a requested resource is not found."""

    status_code = 404
    error_type = "not_found"
    message = "Resource not found"


class ConflictError(APIException):
    """Exception raised when a save lost a version race and should be retried."""

    status_code = 409
    error_type = "concurrency_conflict"
    message = "Game was modified concurrently"


class UpstreamError(APIException):
    """Exception raised when the content store rejects or fails a transfer."""

    status_code = 502
    error_type = "upload_error"
    message = "Content store request failed"


class InternalError(APIException):
    """Exception raised for internal server errors."""

    status_code = 500
    error_type = "internal_error"
    message = "Internal server error"


_UPLOAD_STATUS = {
    UploadErrorKind.PAYLOAD_TOO_LARGE: 413,
    UploadErrorKind.RATE_LIMIT: 429,
    UploadErrorKind.TIMEOUT: 504,
    UploadErrorKind.AUTHENTICATION: 502,
    UploadErrorKind.PERMISSION: 502,
    UploadErrorKind.UNKNOWN: 502,
}


def from_domain_error(error: CanvasForgeError) -> APIException:
    """Map a domain error to the API exception that reports it."""
    detail = ", ".join(f"{k}={v}" for k, v in error.details.items()) or None

    if isinstance(error, DomainValidationError):
        return ValidationError(error.message, detail=detail)
    if isinstance(error, AuthorizationError):
        return ForbiddenError(error.message, detail=detail)
    if isinstance(error, DomainNotFoundError):
        return NotFoundError(error.message, detail=detail)
    if isinstance(error, ConcurrencyConflictError):
        return ConflictError(error.message, detail=detail)
    if isinstance(error, UploadError):
        return UpstreamError(
            error.message,
            detail=detail,
            status_code=_UPLOAD_STATUS[error.upload_kind],
            error_type=f"upload_error.{error.upload_kind.value}",
        )
    if isinstance(error, ContentFetchError):
        return UpstreamError(error.message, detail=detail, error_type=error.kind)
    if isinstance(error, (RepositoryError, ConfigurationError)):
        return InternalError(error.message, detail=detail, error_type=error.kind)
    return InternalError(error.message, detail=detail)
