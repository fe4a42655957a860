"""
Publication manager.

Publishes and unpublishes games per channel. The marketplace and community
channels are independent, and publishing never pins a version: listings
always show the game's current version.
"""

import logging
from dataclasses import dataclass

from canvas_forge.core.exceptions import ValidationError
from canvas_forge.core.models import Channel, Game, normalize_owner_id, utc_now
from canvas_forge.core.transitions import (
    NoChange,
    Publish,
    PublicationTransition,
    Unpublish,
    plan_publication,
)
from canvas_forge.coordinator.ownership import require_owned_game
from canvas_forge.repository.base import GameRepository

logger = logging.getLogger(__name__)


@dataclass
class PublicationResult:
    """The game after the change plus the transition that was applied."""

    game: Game
    transition: PublicationTransition


class PublicationManager:
    """Owner-controlled per-channel publication."""

    def __init__(self, repository: GameRepository):
        self._repository = repository

    def set_published(
        self,
        game_id: str,
        channel: Channel | str,
        caller_id: str,
        published: bool,
    ) -> PublicationResult:
        """
        Publish or unpublish a game on one channel.

        Raises:
            ValidationError: Unknown channel, bad caller id, or publishing a
                game that has no versions
            NotFoundError: Unknown game
            AuthorizationError: Caller does not own the game
        """
        owner_id = normalize_owner_id(caller_id)
        channel = Channel.parse(channel)
        game = require_owned_game(self._repository, game_id, owner_id)

        if published and game.current_version == 0:
            raise ValidationError(
                "Cannot publish a game with no versions",
                field="game_id",
                details={"game_id": game_id},
            )

        transition = plan_publication(game, channel, published, utc_now())

        if isinstance(transition, Publish):
            game = self._repository.set_publication_flag(game_id, channel, True, transition.at)
        elif isinstance(transition, Unpublish):
            game = self._repository.set_publication_flag(game_id, channel, False, None)
        elif isinstance(transition, NoChange):
            logger.debug(f"Game {game_id} already {'published' if published else 'unpublished'} on {channel.value}")
            return PublicationResult(game=game, transition=transition)

        logger.info(
            f"{type(transition).__name__} game {game_id} on {channel.value}",
            extra={
                "event": "publication_changed",
                "game_id": game_id,
                "channel": channel.value,
                "published": published,
                "current_version": game.current_version,
            },
        )
        return PublicationResult(game=game, transition=transition)
