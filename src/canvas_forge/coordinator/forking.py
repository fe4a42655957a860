"""
Fork manager.

Creates a new, independently owned lineage from another game's latest
version. The source's content is re-stored as a fresh entry, the child game
and its first version are written, and only then is the source's fork
count incremented with a single atomic repository call.
"""

import logging
from dataclasses import dataclass

from canvas_forge.content.store import ContentStore, game_labels
from canvas_forge.core.exceptions import NotFoundError, RepositoryError, ValidationError
from canvas_forge.core.models import (
    Game,
    VersionRecord,
    make_metadata,
    normalize_owner_id,
    utc_now,
)
from canvas_forge.core.transitions import Fork
from canvas_forge.coordinator.ownership import require_game
from canvas_forge.coordinator.versioning import DEFAULT_CONTENT_TYPE
from canvas_forge.repository.base import GameRepository

logger = logging.getLogger(__name__)


@dataclass
class ForkResult:
    """The child game plus the lineage transition that produced it."""

    game: Game
    transition: Fork


class ForkManager:
    """Forks games across owners."""

    def __init__(self, repository: GameRepository, content_store: ContentStore):
        self._repository = repository
        self._content_store = content_store

    @staticmethod
    def default_title(source: Game) -> str:
        """Title given to a fork when the caller supplies none."""
        return f"{source.title} (Fork)"

    def fork(self, source_game_id: str, caller_id: str, new_title: str | None = None) -> ForkResult:
        """
        Fork a game's latest version into a new game owned by the caller.

        Raises:
            ValidationError: Bad caller id, or the source has no versions
            NotFoundError: Unknown source game
            UploadError: Re-storing the content failed; nothing was created
            ContentFetchError: The source content could not be read
        """
        owner_id = normalize_owner_id(caller_id)
        source = require_game(self._repository, source_game_id)

        latest = source.latest_version
        if latest is None:
            raise ValidationError(
                "No versions found for original game",
                field="original_game_id",
                details={"game_id": source_game_id},
            )

        title = new_title.strip() if new_title and new_title.strip() else self.default_title(source)
        metadata = make_metadata(title, latest.description, latest.tags)

        content = self._content_store.fetch(latest.content_ref)
        labels = game_labels(title, owner_id, forked=True, uploaded_at=utc_now())
        content_ref = self._content_store.put(content, DEFAULT_CONTENT_TYPE, labels)

        child = self._repository.create_game(owner_id, metadata, original_game_id=source.game_id)
        try:
            child = self._repository.append_version(
                child.game_id, 0, VersionRecord(metadata=metadata, content_ref=content_ref)
            )
        except RepositoryError:
            # A fork without its first version must not be counted or kept
            self._repository.delete_game(child.game_id)
            raise

        try:
            fork_count = self._repository.increment_fork_count(source.game_id)
        except NotFoundError:
            logger.warning(
                f"Source game {source.game_id} was deleted before its fork count could be updated",
                extra={"event": "fork_source_missing", "game_id": source.game_id},
            )
            fork_count = source.fork_count

        logger.info(
            f"Forked game {source.game_id} into {child.game_id} for {owner_id}",
            extra={
                "event": "game_forked",
                "game_id": child.game_id,
                "original_game_id": source.game_id,
                "fork_count": fork_count,
            },
        )
        return ForkResult(
            game=child,
            transition=Fork(
                source_game_id=source.game_id,
                child_game_id=child.game_id,
                source_fork_count=fork_count,
            ),
        )
