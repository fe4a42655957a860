"""
Game service - the upward API consumed by the HTTP layer and the CLI.

Wires the coordinators to a repository and a content store and owns the
caller-side retry policy for version conflicts: a conflicted save is
retried from the top, re-reading the game but re-using the content that was
already uploaded.
"""

import logging
from typing import Any

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from canvas_forge.config import ForgeSettings
from canvas_forge.content import ContentStore, create_content_store
from canvas_forge.coordinator import (
    ForkManager,
    PublicationManager,
    VersioningCoordinator,
    require_game,
    require_owned_game,
)
from canvas_forge.coordinator.versioning import DEFAULT_CONTENT_TYPE
from canvas_forge.core.exceptions import ConcurrencyConflictError, ValidationError
from canvas_forge.core.models import Channel, Game, normalize_owner_id
from canvas_forge.repository import DEFAULT_PAGE_LIMIT, GameRepository, SQLiteGameRepository

logger = logging.getLogger(__name__)


def _log_conflict_retry(retry_state: RetryCallState) -> None:
    logger.info(
        f"Retrying save after version conflict (attempt {retry_state.attempt_number})",
        extra={"event": "save_retry", "attempt": retry_state.attempt_number},
    )


class GameService:
    """
    Facade over the versioning, fork and publication workflows.

    All caller ids are wallet addresses; they are normalized to lower case
    before any ownership comparison.
    """

    def __init__(
        self,
        repository: GameRepository,
        content_store: ContentStore,
        *,
        save_max_attempts: int = 5,
        conflict_wait: wait_base | None = None,
    ):
        """
        Initialize the service.

        Args:
            repository: Game metadata persistence
            content_store: Durable payload storage
            save_max_attempts: Attempts per save when versions conflict
            conflict_wait: tenacity wait strategy between conflicted attempts
        """
        self._repository = repository
        self._content_store = content_store
        self._save_max_attempts = save_max_attempts
        self._conflict_wait = conflict_wait or wait_random_exponential(multiplier=0.02, max=0.5)

        self.versioning = VersioningCoordinator(repository, content_store)
        self.forks = ForkManager(repository, content_store)
        self.publication = PublicationManager(repository)

    @property
    def repository(self) -> GameRepository:
        """Underlying game repository."""
        return self._repository

    @property
    def content_store(self) -> ContentStore:
        """Underlying content store."""
        return self._content_store

    def create_or_update_game(
        self,
        caller_id: str,
        content: bytes,
        title: str,
        game_id: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> Game:
        """
        Create a game (no game_id) or append a version to an existing one.

        Version conflicts are retried up to ``save_max_attempts`` times;
        every other error propagates on the first occurrence.
        """
        target_id = game_id
        content_ref = None
        retrying = Retrying(
            stop=stop_after_attempt(self._save_max_attempts),
            wait=self._conflict_wait,
            retry=retry_if_exception_type(ConcurrencyConflictError),
            before_sleep=_log_conflict_retry,
            reraise=True,
        )

        for attempt in retrying:
            with attempt:
                try:
                    result = self.versioning.save(
                        target_id,
                        caller_id,
                        content,
                        title,
                        description,
                        tags,
                        content_type=content_type,
                        content_ref=content_ref,
                    )
                except ConcurrencyConflictError as e:
                    target_id = e.game_id or target_id
                    content_ref = e.content_ref or content_ref
                    raise
        return result.game

    def fork_game(self, source_game_id: str, caller_id: str, new_title: str | None = None) -> Game:
        """Fork another game's latest version into a new game owned by the caller."""
        return self.forks.fork(source_game_id, caller_id, new_title).game

    def set_publication(
        self,
        game_id: str,
        channel: Channel | str,
        caller_id: str,
        published: bool,
    ) -> Game:
        """Publish or unpublish a game on one channel."""
        return self.publication.set_published(game_id, channel, caller_id, published).game

    def list_games(
        self,
        *,
        owner_id: str | None = None,
        channel: Channel | str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        search: str | None = None,
    ) -> list[Game]:
        """
        List games by owner or by channel.

        Exactly one of ``owner_id`` and ``channel`` must be given; ``search``
        only applies to channel listings.
        """
        if (owner_id is None) == (channel is None):
            raise ValidationError(
                "Provide exactly one filter: owner or channel",
                validation_errors=["owner_id and channel are mutually exclusive"],
            )
        if owner_id is not None:
            if search:
                raise ValidationError(
                    "Search is only supported for channel listings", field="search"
                )
            return self._repository.list_by_owner(normalize_owner_id(owner_id), page, limit)
        return self._repository.list_by_channel(Channel.parse(channel), page, limit, search)

    def get_game(self, game_id: str) -> Game:
        """Load a game with its version history."""
        return require_game(self._repository, game_id)

    def delete_game(self, game_id: str, caller_id: str) -> None:
        """
        Delete a game owned by the caller.

        Stored content is left in the content store.
        """
        owner_id = normalize_owner_id(caller_id)
        game = require_owned_game(self._repository, game_id, owner_id)
        self._repository.delete_game(game.game_id)
        logger.info(
            f"Deleted game {game_id} ({game.current_version} versions)",
            extra={"event": "game_deleted", "game_id": game_id},
        )

    def health(self) -> dict[str, Any]:
        """Report repository reachability and content backend configuration."""
        return {
            "games": self._repository.count_games(),
            "content_store": self._content_store.describe(),
        }

    def close(self) -> None:
        """Release repository connections and content store workers."""
        self._repository.close()
        self._content_store.close()


def build_service(settings: ForgeSettings) -> GameService:
    """Build a service from loaded settings."""
    repository = SQLiteGameRepository(settings.resolved_database_path)
    content_store = create_content_store(settings)
    logger.info(
        f"Game service using {settings.resolved_database_path} and {settings.content_backend.value} content",
    )
    return GameService(
        repository,
        content_store,
        save_max_attempts=settings.save_max_attempts,
    )
