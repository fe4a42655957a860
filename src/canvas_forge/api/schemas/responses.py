"""
Pydantic response schemas for API endpoints.

All API responses conform to these schemas for consistent output.
"""

from typing import Any

from pydantic import BaseModel, Field

from canvas_forge.core.models import Channel, ContentRef, Game, Version


class SaveGameResponse(BaseModel):
    """Response model for a save."""

    success: bool = Field(default=True)
    game: Game = Field(..., description="Game after the save")
    version: Version = Field(..., description="Version that was appended")
    content: ContentRef = Field(..., description="Stored content reference")

    model_config = {"extra": "forbid"}


class ForkGameResponse(BaseModel):
    """Response model for a fork."""

    success: bool = Field(default=True)
    game: Game = Field(..., description="The new forked game")
    content: ContentRef = Field(..., description="Fresh content reference of the fork")
    message: str = Field(default="Game forked successfully")

    model_config = {"extra": "forbid"}


class PublishGameResponse(BaseModel):
    """Response model for a publication change."""

    success: bool = Field(default=True)
    game: Game = Field(..., description="Game after the change")
    channel: Channel = Field(..., description="Channel that was targeted")
    published: bool = Field(..., description="Resulting publication state")

    model_config = {"extra": "forbid"}


class GameResponse(BaseModel):
    """Response model for a single game."""

    success: bool = Field(default=True)
    game: Game

    model_config = {"extra": "forbid"}


class GameListResponse(BaseModel):
    """Response model for listing games."""

    success: bool = Field(default=True)
    games: list[Game] = Field(..., description="Games on this page")
    page: int = Field(..., description="1-based page number")
    limit: int = Field(..., description="Page size")
    count: int = Field(..., description="Number of games on this page")

    model_config = {"extra": "forbid"}


class DeleteGameResponse(BaseModel):
    """Response model for a deletion."""

    success: bool = Field(default=True)
    game_id: str

    model_config = {"extra": "forbid"}


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    timestamp: str = Field(..., description="Check timestamp")
    components: dict[str, Any] = Field(default_factory=dict, description="Component statuses")

    model_config = {"extra": "forbid"}


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: dict[str, Any] = Field(..., description="Error details")
