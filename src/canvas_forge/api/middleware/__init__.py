"""
Middleware for the Canvas Forge API.
"""

from canvas_forge.api.middleware.cors import add_cors_middleware
from canvas_forge.api.middleware.logging import RequestLoggingMiddleware

__all__ = [
    "add_cors_middleware",
    "RequestLoggingMiddleware",
]
