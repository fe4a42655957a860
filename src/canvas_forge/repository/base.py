"""
Game repository interface.

The repository is the only component that persists game metadata. It owns
the two race-prone primitives of the system: the optimistic version append
and the atomic fork counter.
"""

from abc import ABC, abstractmethod

from canvas_forge.core.exceptions import ValidationError
from canvas_forge.core.models import Channel, Game, GameMetadata, VersionRecord

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


def page_offset(page: int, limit: int) -> int:
    """
    Convert a 1-based page and limit into a row offset.

    Raises:
        ValidationError: If page or limit are out of range
    """
    if page < 1:
        raise ValidationError("page must be 1 or greater", field="page", details={"page": page})
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(
            f"limit must be between 1 and {MAX_PAGE_LIMIT}",
            field="limit",
            details={"limit": limit},
        )
    return (page - 1) * limit


class GameRepository(ABC):
    """Persistence boundary for games and their versions."""

    @abstractmethod
    def create_game(
        self,
        owner_id: str,
        metadata: GameMetadata,
        original_game_id: str | None = None,
    ) -> Game:
        """Create a game with a fresh id and zero versions."""

    @abstractmethod
    def append_version(
        self,
        game_id: str,
        expected_current_version: int,
        record: VersionRecord,
    ) -> Game:
        """
        Append the next version if the game is still at the expected version.

        The new version is numbered ``expected_current_version + 1`` and the
        game's title, description and tags are updated to the record's.

        Raises:
            NotFoundError: If the game does not exist
            ConcurrencyConflictError: If the stored current version differs
        """

    @abstractmethod
    def increment_fork_count(self, game_id: str) -> int:
        """
        Atomically add one to a game's fork count and return the new value.

        Raises:
            NotFoundError: If the game does not exist
        """

    @abstractmethod
    def set_publication_flag(
        self,
        game_id: str,
        channel: Channel,
        published: bool,
        timestamp: str | None,
    ) -> Game:
        """
        Set or clear one channel's publication state.

        Publishing an already published channel keeps the stored timestamp.

        Raises:
            NotFoundError: If the game does not exist
        """

    @abstractmethod
    def get_by_id(self, game_id: str) -> Game | None:
        """Load a game with all its versions."""

    @abstractmethod
    def list_by_owner(self, owner_id: str, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> list[Game]:
        """List an owner's games, most recently updated first."""

    @abstractmethod
    def list_by_channel(
        self,
        channel: Channel,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        search_text: str | None = None,
    ) -> list[Game]:
        """List games published on a channel, most recently published first."""

    @abstractmethod
    def delete_game(self, game_id: str) -> bool:
        """Remove a game and its version rows. Returns False if it did not exist."""

    @abstractmethod
    def count_games(self) -> int:
        """Return the number of stored games."""

    def close(self) -> None:
        """Release any held resources."""
