"""
Pydantic request schemas for API endpoints.

All incoming API requests are validated against these schemas.
"""

from pydantic import BaseModel, Field

from canvas_forge.core.models import Channel


class SaveGameRequest(BaseModel):
    """Request to create a game or add a version to one."""

    html: str = Field(..., description="Game HTML to store as the new version")
    title: str = Field(..., description="Version title", examples=["Space Dodger"])
    description: str | None = Field(None, description="Version description")
    tags: list[str] | None = Field(None, description="Version tags", examples=[["arcade"]])
    wallet_address: str = Field(
        ...,
        description="Wallet address of the caller",
        examples=["0x71c7656ec7ab88b098defb751b7401b5f6d8976f"],
    )
    game_id: str | None = Field(None, description="Existing game to update; omit to create")

    model_config = {"extra": "forbid"}


class ForkGameRequest(BaseModel):
    """Request to fork a game into a new lineage."""

    original_game_id: str = Field(..., description="Game to fork")
    wallet_address: str = Field(..., description="Wallet address of the new owner")
    new_title: str | None = Field(None, description="Title of the fork (default: '<title> (Fork)')")

    model_config = {"extra": "forbid"}


class PublishGameRequest(BaseModel):
    """Request to publish or unpublish a game on a channel."""

    game_id: str = Field(..., description="Game to (un)publish")
    channel: Channel = Field(..., description="Publication channel")
    wallet_address: str = Field(..., description="Wallet address of the owner")
    published: bool = Field(default=True, description="False to unpublish")

    model_config = {"extra": "forbid"}
