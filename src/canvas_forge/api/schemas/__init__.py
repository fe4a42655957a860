"""
API request/response schemas.
"""

from canvas_forge.api.schemas.exceptions import (
    APIException,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    from_domain_error,
)
from canvas_forge.api.schemas.requests import (
    ForkGameRequest,
    PublishGameRequest,
    SaveGameRequest,
)
from canvas_forge.api.schemas.responses import (
    DeleteGameResponse,
    ErrorResponse,
    ForkGameResponse,
    GameListResponse,
    GameResponse,
    HealthResponse,
    PublishGameResponse,
    SaveGameResponse,
)

__all__ = [
    # Exceptions
    "APIException",
    "ConflictError",
    "ForbiddenError",
    "InternalError",
    "NotFoundError",
    "UpstreamError",
    "ValidationError",
    "from_domain_error",
    # Requests
    "ForkGameRequest",
    "PublishGameRequest",
    "SaveGameRequest",
    # Responses
    "DeleteGameResponse",
    "ErrorResponse",
    "ForkGameResponse",
    "GameListResponse",
    "GameResponse",
    "HealthResponse",
    "PublishGameResponse",
    "SaveGameResponse",
]
