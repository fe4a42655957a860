"""
Canvas Forge REST API.

Run with ``canvas-forge serve`` or
``uvicorn canvas_forge.api.app:create_app --factory``.
"""

from canvas_forge.api.app import create_app

__all__ = ["create_app"]
