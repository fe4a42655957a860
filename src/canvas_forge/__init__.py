"""
Canvas Forge - versioning, forking and publication for generated games.

Keeps an immutable version history per game, lets users fork other users'
games into new lineages, and publishes games to the marketplace and
community channels independently.
"""

__version__ = "0.1.0"

# API module is available but not exported by default
# Import explicitly: from canvas_forge.api import create_app

__all__ = ["__version__"]
