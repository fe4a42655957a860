"""
API route handlers.
"""

from canvas_forge.api.routes import games, health

__all__ = [
    "games",
    "health",
]
