"""
Canvas Forge Exception Hierarchy.

Defines the closed error taxonomy shared by the content store, the game
repository and the coordinators. Every failure crosses the API boundary as a
stable ``kind`` plus a message.
"""

from enum import Enum
from typing import Any


class CanvasForgeError(Exception):
    """
    Base exception for all Canvas Forge errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    kind: str = "canvas_forge_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize a CanvasForgeError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.kind,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(CanvasForgeError):
    """
    Errors during input validation.

    Raised when:
    - Content is empty or above the configured ceiling
    - Required fields are missing or blank
    - A wallet address, channel or pagination value is malformed
    """

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        validation_errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a ValidationError.

        Args:
            message: Human-readable error message
            field: Field name that failed validation
            validation_errors: List of specific validation errors
            details: Optional structured data for debugging
        """
        details = details or {}
        if field:
            details["field"] = field
        if validation_errors:
            details["validation_errors"] = validation_errors

        super().__init__(message, details=details)
        self.field = field
        self.validation_errors = validation_errors or []


class AuthorizationError(CanvasForgeError):
    """Raised when the caller does not own the game it tries to mutate."""

    kind = "authorization_error"

    def __init__(
        self,
        message: str = "Caller does not own this game",
        *,
        game_id: str | None = None,
        caller_id: str | None = None,
    ):
        details: dict[str, Any] = {}
        if game_id:
            details["game_id"] = game_id
        if caller_id:
            details["caller_id"] = caller_id
        super().__init__(message, details=details)
        self.game_id = game_id
        self.caller_id = caller_id


class NotFoundError(CanvasForgeError):
    """Raised when a requested game (or stored content) does not exist."""

    kind = "not_found"

    def __init__(
        self,
        message: str = "Game not found",
        *,
        game_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if game_id:
            details["game_id"] = game_id
        super().__init__(message, details=details)
        self.game_id = game_id


class UploadErrorKind(Enum):
    """Closed set of content store upload failures."""

    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    RATE_LIMIT = "rate_limit"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class UploadError(CanvasForgeError):
    """
    Errors from the content store while storing a payload.

    Callers pattern-match on ``upload_kind`` rather than on message text.
    The store never retries; TIMEOUT and RATE_LIMIT are the caller-retryable
    kinds, AUTHENTICATION and PERMISSION need reconfiguration.
    """

    kind = "upload_error"

    def __init__(
        self,
        upload_kind: UploadErrorKind,
        message: str | None = None,
        *,
        reason: str | None = None,
        status_code: int | None = None,
        backend: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize an UploadError.

        Args:
            upload_kind: Which failure of the closed taxonomy occurred
            message: Human-readable error message
            reason: Backend-supplied reason (used for PERMISSION)
            status_code: HTTP status code if applicable
            backend: Content store backend name
            details: Optional structured data for debugging
        """
        details = details or {}
        details["upload_kind"] = upload_kind.value
        if reason:
            details["reason"] = reason
        if status_code:
            details["status_code"] = status_code
        if backend:
            details["backend"] = backend

        super().__init__(message or f"Upload failed: {upload_kind.value}", details=details)
        self.upload_kind = upload_kind
        self.reason = reason
        self.status_code = status_code
        self.backend = backend


class ContentFetchError(CanvasForgeError):
    """Raised when previously stored content cannot be read back."""

    kind = "content_fetch_error"

    def __init__(
        self,
        message: str,
        *,
        content_id: str | None = None,
        status_code: int | None = None,
    ):
        details: dict[str, Any] = {}
        if content_id:
            details["content_id"] = content_id
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.content_id = content_id
        self.status_code = status_code


class ConcurrencyConflictError(CanvasForgeError):
    """
    Raised when an optimistic version append loses a race.

    Carries the content reference that was already uploaded so the caller
    can re-read the game and re-append without uploading again.
    """

    kind = "concurrency_conflict"

    def __init__(
        self,
        message: str = "Game was modified concurrently",
        *,
        game_id: str | None = None,
        expected_version: int | None = None,
        actual_version: int | None = None,
        content_ref: Any = None,
    ):
        details: dict[str, Any] = {}
        if game_id:
            details["game_id"] = game_id
        if expected_version is not None:
            details["expected_version"] = expected_version
        if actual_version is not None:
            details["actual_version"] = actual_version
        super().__init__(message, details=details)
        self.game_id = game_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        self.content_ref = content_ref


class RepositoryError(CanvasForgeError):
    """
    Generic persistence failure.

    Raised when the metadata store cannot complete an operation, including
    locked or corrupt databases and constraint violations that are not
    version races.
    """

    kind = "repository_error"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        game_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if operation:
            details["operation"] = operation
        if game_id:
            details["game_id"] = game_id
        super().__init__(message, details=details)
        self.operation = operation
        self.game_id = game_id


class ConfigurationError(CanvasForgeError):
    """
    Errors in configuration loading or validation.

    Raised when:
    - Required environment variables are not set
    - Configuration values are invalid
    """

    kind = "configuration_error"

    def __init__(
        self,
        message: str,
        *,
        env_var: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if env_var:
            details["env_var"] = env_var
        super().__init__(message, details=details)
        self.env_var = env_var


def format_exception(error: Exception) -> str:
    """
    Format an exception for user-friendly display.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, CanvasForgeError):
        return str(error)
    return f"{error.__class__.__name__}: {error}"


def is_retriable_error(error: Exception) -> bool:
    """
    Determine if the caller may retry after this error.

    Args:
        error: The exception to check

    Returns:
        True if the error is caller-retryable
    """
    if isinstance(error, ConcurrencyConflictError):
        return True
    if isinstance(error, UploadError):
        return error.upload_kind in (UploadErrorKind.TIMEOUT, UploadErrorKind.RATE_LIMIT)
    return False
