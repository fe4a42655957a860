"""
Canvas Forge Content Module.

Provides the content store abstraction and its Pinata and local backends.
"""

from canvas_forge.config import ContentBackend, ForgeSettings
from canvas_forge.content.local import LocalContentStore
from canvas_forge.content.pinata import PinataContentStore
from canvas_forge.content.store import ContentStore, game_labels, sanitize_filename

__all__ = [
    "ContentStore",
    "LocalContentStore",
    "PinataContentStore",
    "create_content_store",
    "game_labels",
    "sanitize_filename",
]


def create_content_store(settings: ForgeSettings) -> ContentStore:
    """Build the content store selected by configuration."""
    if settings.content_backend is ContentBackend.PINATA:
        return PinataContentStore.from_settings(settings)
    return LocalContentStore(
        settings.resolved_content_dir,
        max_content_bytes=settings.max_content_bytes,
        timeout_seconds=settings.upload_timeout_seconds,
    )
