"""
CORS middleware configuration.

The browser front end (served on port 3000 in development) calls the API
directly, so its origin must be allowed.
"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

DEFAULT_ALLOW_ORIGINS: list[str] = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOW_METHODS: list[str] = ["GET", "POST", "DELETE", "OPTIONS"]

ALLOW_HEADERS: list[str] = [
    "accept",
    "content-type",
    "x-request-id",
]


def cors_origins_from_env() -> list[str]:
    """Read allowed origins from CF_CORS_ORIGINS (comma separated)."""
    raw = os.getenv("CF_CORS_ORIGINS")
    if not raw:
        return list(DEFAULT_ALLOW_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def add_cors_middleware(
    app: FastAPI,
    *,
    allow_origins: list[str] | None = None,
    max_age: int = 600,
) -> None:
    """
    Add CORS middleware to the FastAPI application.

    Args:
        app: FastAPI application instance
        allow_origins: Allowed origins (default: CF_CORS_ORIGINS or localhost:3000)
        max_age: Cache time for preflight requests (seconds)
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins if allow_origins is not None else cors_origins_from_env(),
        allow_credentials=False,
        allow_methods=ALLOW_METHODS,
        allow_headers=ALLOW_HEADERS,
        expose_headers=["X-Request-ID", "X-Process-Time"],
        max_age=max_age,
    )
