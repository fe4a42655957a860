"""
Canvas Forge Repository Module.

Provides persistent storage for games and their version history.
"""

__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "GameRepository",
    "SQLiteGameRepository",
    "page_offset",
]

from canvas_forge.repository.base import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    GameRepository,
    page_offset,
)
from canvas_forge.repository.sqlite import SQLiteGameRepository
