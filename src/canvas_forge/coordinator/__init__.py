"""
Canvas Forge Coordinator Module.

Provides the save, fork and publication workflows on top of the content
store and the game repository.
"""

__all__ = [
    "ForkManager",
    "ForkResult",
    "PublicationManager",
    "PublicationResult",
    "SaveResult",
    "VersioningCoordinator",
    "require_game",
    "require_owned_game",
]

from canvas_forge.coordinator.forking import ForkManager, ForkResult
from canvas_forge.coordinator.ownership import require_game, require_owned_game
from canvas_forge.coordinator.publication import PublicationManager, PublicationResult
from canvas_forge.coordinator.versioning import SaveResult, VersioningCoordinator
