"""
Health check endpoint.
"""

import logging

from fastapi import APIRouter, Depends

from canvas_forge import __version__
from canvas_forge.api.dependencies import get_service
from canvas_forge.api.schemas.responses import HealthResponse
from canvas_forge.core.exceptions import CanvasForgeError
from canvas_forge.core.models import utc_now
from canvas_forge.service import GameService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse, include_in_schema=False)
def health_check(service: GameService = Depends(get_service)) -> HealthResponse:
    """
    Report whether the repository answers and which content backend is in use.

    A repository failure yields ``status="unhealthy"`` rather than an error
    response so probes can read the component detail.
    """
    try:
        components = service.health()
        status = "healthy"
    except CanvasForgeError as e:
        logger.warning(f"Health check failed: {e}")
        components = {"repository": f"error: {e.message}"}
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=__version__,
        timestamp=utc_now(),
        components=components,
    )
