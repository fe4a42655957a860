"""
Versioning coordinator.

Implements the save path: validate, check ownership, upload, then append
the version with an optimistic concurrency check. Content is always
uploaded before any version references it; a failed upload leaves the
version list untouched.
"""

import logging
from dataclasses import dataclass

from canvas_forge.content.store import ContentStore, game_labels
from canvas_forge.core.exceptions import ConcurrencyConflictError, UploadError, ValidationError
from canvas_forge.core.models import (
    ContentRef,
    Game,
    Version,
    VersionRecord,
    make_metadata,
    normalize_owner_id,
    utc_now,
)
from canvas_forge.coordinator.ownership import require_owned_game
from canvas_forge.repository.base import GameRepository

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/html"


@dataclass
class SaveResult:
    """Outcome of a successful save."""

    game: Game
    version: Version
    created: bool


class VersioningCoordinator:
    """
    Orchestrates game creation and version appends.

    The coordinator never retries. A ConcurrencyConflictError carries the
    uploaded content reference; passing it back as ``content_ref`` re-appends
    without a second upload.
    """

    def __init__(self, repository: GameRepository, content_store: ContentStore):
        self._repository = repository
        self._content_store = content_store

    def _validate_content(self, content: bytes | None, content_ref: ContentRef | None) -> None:
        if content_ref is not None:
            return
        if content is None:
            raise ValidationError("Missing required field: content", field="content")
        self._content_store.validate_payload(content)

    def save(
        self,
        game_id: str | None,
        caller_id: str,
        content: bytes | None,
        title: str,
        description: str | None = None,
        tags: list[str] | None = None,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        content_ref: ContentRef | None = None,
    ) -> SaveResult:
        """
        Save content as the next version of a game.

        Args:
            game_id: Existing game, or None to create one owned by the caller
            caller_id: Wallet address of the caller
            content: Payload bytes (ignored when content_ref is given)
            title: Version title
            description: Version description
            tags: Version tags
            content_type: MIME type of the payload
            content_ref: Already-uploaded content from a conflicted attempt

        Returns:
            SaveResult with the updated game and the appended version

        Raises:
            ValidationError: Bad caller, metadata or content; nothing uploaded
            NotFoundError: Unknown game_id
            AuthorizationError: Caller does not own the game
            UploadError: Content store failure; no version appended
            ConcurrencyConflictError: Another save appended first
        """
        owner_id = normalize_owner_id(caller_id)
        metadata = make_metadata(title, description, tags)

        created = False
        if game_id is None:
            # Validate before creating so a bad payload leaves no empty game behind
            self._validate_content(content, content_ref)
            game = self._repository.create_game(owner_id, metadata)
            created = True
            logger.info(
                f"Created game {game.game_id} for {owner_id}",
                extra={"event": "game_created", "game_id": game.game_id},
            )
        else:
            game = require_owned_game(self._repository, game_id, owner_id)
            self._validate_content(content, content_ref)

        expected_version = game.current_version

        if content_ref is None:
            labels = game_labels(metadata.title, owner_id, uploaded_at=utc_now())
            try:
                content_ref = self._content_store.put(content, content_type, labels)
            except UploadError as e:
                logger.warning(
                    f"Upload failed for game {game.game_id}: {e.upload_kind.value}",
                    extra={"event": "save_upload_failed", "game_id": game.game_id},
                )
                raise

        record = VersionRecord(metadata=metadata, content_ref=content_ref)
        try:
            updated = self._repository.append_version(game.game_id, expected_version, record)
        except ConcurrencyConflictError as e:
            logger.warning(
                f"Version conflict on game {game.game_id}: expected {expected_version}, "
                f"found {e.actual_version}",
                extra={"event": "version_conflict", "game_id": game.game_id},
            )
            raise

        version = updated.versions[-1]
        logger.info(
            f"Appended version {version.number} to game {updated.game_id}",
            extra={
                "event": "version_appended",
                "game_id": updated.game_id,
                "version": version.number,
                "content_id": content_ref.id,
            },
        )
        return SaveResult(game=updated, version=version, created=created)
