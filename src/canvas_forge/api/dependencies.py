"""
FastAPI dependencies shared by the route modules.
"""

from fastapi import Request

from canvas_forge.api.schemas.exceptions import InternalError
from canvas_forge.service import GameService


def get_service(request: Request) -> GameService:
    """Return the GameService attached to the application."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise InternalError("Game service is not initialized")
    return service
