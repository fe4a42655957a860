"""
Canvas Forge Core Module.

Provides the game data model, state transitions and the exception taxonomy.
"""

__all__ = [
    "Channel",
    "ContentRef",
    "Game",
    "GameMetadata",
    "Version",
    "VersionRecord",
    "make_metadata",
    "normalize_owner_id",
    "utc_now",
    # Transitions
    "Fork",
    "NoChange",
    "Publish",
    "Unpublish",
    "plan_publication",
    # Exceptions
    "CanvasForgeError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "UploadError",
    "UploadErrorKind",
    "ContentFetchError",
    "ConcurrencyConflictError",
    "RepositoryError",
    "ConfigurationError",
    "is_retriable_error",
]

from canvas_forge.core.exceptions import (
    AuthorizationError,
    CanvasForgeError,
    ConcurrencyConflictError,
    ConfigurationError,
    ContentFetchError,
    NotFoundError,
    RepositoryError,
    UploadError,
    UploadErrorKind,
    ValidationError,
    is_retriable_error,
)
from canvas_forge.core.models import (
    Channel,
    ContentRef,
    Game,
    GameMetadata,
    Version,
    VersionRecord,
    make_metadata,
    normalize_owner_id,
    utc_now,
)
from canvas_forge.core.transitions import (
    Fork,
    NoChange,
    Publish,
    Unpublish,
    plan_publication,
)
