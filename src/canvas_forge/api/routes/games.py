"""
Game endpoints.

Save, fork, publish, list, fetch and delete games. Handlers are plain
``def`` functions because the service blocks on SQLite and the content
store; FastAPI runs them in its worker thread pool.
"""

import logging

from fastapi import APIRouter, Depends, Query

from canvas_forge.api.dependencies import get_service
from canvas_forge.api.schemas.requests import (
    ForkGameRequest,
    PublishGameRequest,
    SaveGameRequest,
)
from canvas_forge.api.schemas.responses import (
    DeleteGameResponse,
    ErrorResponse,
    ForkGameResponse,
    GameListResponse,
    GameResponse,
    PublishGameResponse,
    SaveGameResponse,
)
from canvas_forge.repository import DEFAULT_PAGE_LIMIT
from canvas_forge.service import GameService

# Error bodies produced by the exception handlers in canvas_forge.api.app
ERROR_RESPONSES: dict[int | str, dict] = {
    code: {"model": ErrorResponse}
    for code in (400, 403, 404, 409, 413, 429, 500, 502, 504)
}

router = APIRouter(responses=ERROR_RESPONSES)
logger = logging.getLogger(__name__)


@router.post("/save", response_model=SaveGameResponse)
def save_game(
    request: SaveGameRequest,
    service: GameService = Depends(get_service),
) -> SaveGameResponse:
    """
    Create a game, or append a version when ``game_id`` is given.

    The HTML is stored as UTF-8 ``text/html``.
    """
    game = service.create_or_update_game(
        request.wallet_address,
        request.html.encode("utf-8"),
        request.title,
        game_id=request.game_id,
        description=request.description,
        tags=request.tags,
    )
    version = game.latest_version
    return SaveGameResponse(game=game, version=version, content=version.content_ref)


@router.post("/fork", response_model=ForkGameResponse)
def fork_game(
    request: ForkGameRequest,
    service: GameService = Depends(get_service),
) -> ForkGameResponse:
    """Fork the latest version of a game into a new game owned by the caller."""
    game = service.fork_game(
        request.original_game_id,
        request.wallet_address,
        request.new_title,
    )
    return ForkGameResponse(game=game, content=game.latest_version.content_ref)


@router.post("/publish", response_model=PublishGameResponse)
def publish_game(
    request: PublishGameRequest,
    service: GameService = Depends(get_service),
) -> PublishGameResponse:
    """Publish or unpublish a game on the marketplace or community channel."""
    game = service.set_publication(
        request.game_id,
        request.channel,
        request.wallet_address,
        request.published,
    )
    return PublishGameResponse(
        game=game,
        channel=request.channel,
        published=game.is_published(request.channel),
    )


@router.get("", response_model=GameListResponse)
def list_games(
    wallet: str | None = Query(None, description="List games owned by this wallet"),
    channel: str | None = Query(None, description="List games published on this channel"),
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, description="Page size (1-100)"),
    search: str | None = Query(None, description="Search title, description and tags"),
    service: GameService = Depends(get_service),
) -> GameListResponse:
    """
    List games by owner (``wallet``) or by publication ``channel``.

    Exactly one of the two filters is required. Out-of-range paging values
    are rejected with 400.
    """
    games = service.list_games(
        owner_id=wallet,
        channel=channel,
        page=page,
        limit=limit,
        search=search,
    )
    return GameListResponse(games=games, page=page, limit=limit, count=len(games))


@router.get("/{game_id}", response_model=GameResponse)
def get_game(
    game_id: str,
    service: GameService = Depends(get_service),
) -> GameResponse:
    """Return one game with its full version history."""
    return GameResponse(game=service.get_game(game_id))


@router.delete("/{game_id}", response_model=DeleteGameResponse)
def delete_game(
    game_id: str,
    wallet: str = Query(..., description="Wallet address of the owner"),
    service: GameService = Depends(get_service),
) -> DeleteGameResponse:
    """Delete a game and its versions. Stored content is kept."""
    service.delete_game(game_id, wallet)
    return DeleteGameResponse(game_id=game_id)
