"""Ownership checks shared by every mutating operation."""

from canvas_forge.core.exceptions import AuthorizationError, NotFoundError
from canvas_forge.core.models import Game
from canvas_forge.repository.base import GameRepository


def require_game(repository: GameRepository, game_id: str) -> Game:
    """
    Load a game or fail.

    Raises:
        NotFoundError: If no game has this id
    """
    game = repository.get_by_id(game_id)
    if game is None:
        raise NotFoundError(f"Game '{game_id}' not found", game_id=game_id)
    return game


def require_owned_game(repository: GameRepository, game_id: str, caller_id: str) -> Game:
    """
    Load a game and check that ``caller_id`` (already normalized) owns it.

    Raises:
        NotFoundError: If no game has this id
        AuthorizationError: If the caller is not the owner
    """
    game = require_game(repository, game_id)
    if not game.is_owned_by(caller_id):
        raise AuthorizationError(
            f"Wallet {caller_id} does not own game '{game_id}'",
            game_id=game_id,
            caller_id=caller_id,
        )
    return game
