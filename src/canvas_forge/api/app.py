"""
FastAPI application setup.

Application factory for the Canvas Forge REST API.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from canvas_forge import __version__
from canvas_forge.api.middleware.cors import add_cors_middleware
from canvas_forge.api.middleware.logging import RequestLoggingMiddleware
from canvas_forge.api.routes import games, health
from canvas_forge.api.schemas.exceptions import APIException, from_domain_error
from canvas_forge.config import ForgeSettings, get_settings
from canvas_forge.core.exceptions import CanvasForgeError
from canvas_forge.service import GameService, build_service

logging.basicConfig(
    level=os.getenv("CF_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _error_response(exc: APIException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "type": exc.error_type,
                "message": exc.message,
                "detail": exc.detail,
            }
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build the game service on startup unless one was injected, and close
    it on shutdown if the app built it.
    """
    logger.info(f"Canvas Forge API {__version__} starting up")
    owns_service = app.state.service is None
    if owns_service:
        settings: ForgeSettings = app.state.settings or get_settings()
        app.state.service = build_service(settings)

    yield

    if owns_service:
        app.state.service.close()
        app.state.service = None
    logger.info("Canvas Forge API shutting down")


def create_app(
    service: GameService | None = None,
    settings: ForgeSettings | None = None,
    title: str = "Canvas Forge API",
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Pre-built service (tests); built from settings when omitted
        settings: Settings used to build the service (default: environment)
        title: Application title for OpenAPI docs

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=title,
        description="Versioning, forking and publication of HTML games",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    add_cors_middleware(app)

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(games.router, prefix="/api/v1/games", tags=["Games"])

    @app.exception_handler(CanvasForgeError)
    async def domain_exception_handler(request: Request, exc: CanvasForgeError) -> JSONResponse:
        """Translate domain errors into status codes."""
        api_error = from_domain_error(exc)
        if api_error.status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc}",
                extra={"event": "request_error", "error_type": exc.kind},
            )
        return _error_response(api_error)

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
        """Handle API exceptions with proper error responses."""
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed request bodies and parameters as 400."""
        fields = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "type": "validation_error",
                    "message": "Request validation failed",
                    "detail": "; ".join(fields),
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "type": "internal_error",
                    "message": "An unexpected error occurred",
                    "detail": str(exc) if logger.isEnabledFor(logging.DEBUG) else None,
                }
            },
        )

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, object]:
        """Root endpoint with API information."""
        return {
            "name": "Canvas Forge API",
            "version": __version__,
            "status": "operational",
            "docs": "/docs",
            "health": "/health",
            "games": "/api/v1/games",
        }

    return app
