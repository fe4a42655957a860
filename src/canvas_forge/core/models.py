"""
Pydantic models for games, versions and content references.

Defines the records persisted by the game repository and returned by the
coordinators, plus the identity helpers every operation uses to compare
callers against owners.
"""

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from canvas_forge.core.exceptions import ValidationError

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def utc_now() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def normalize_owner_id(owner_id: str | None, *, field: str = "wallet_address") -> str:
    """
    Validate a wallet address and return its lower-cased form.

    Raises:
        ValidationError: If the address is missing or malformed
    """
    if not owner_id or not owner_id.strip():
        raise ValidationError(f"Missing required field: {field}", field=field)
    candidate = owner_id.strip()
    if not WALLET_ADDRESS_PATTERN.match(candidate):
        raise ValidationError(f"Invalid wallet address: {candidate}", field=field)
    return candidate.lower()


class Channel(str, Enum):
    """Publication channels a game can be listed on."""

    MARKETPLACE = "marketplace"
    COMMUNITY = "community"

    @classmethod
    def parse(cls, value: "str | Channel") -> "Channel":
        """Convert a channel name to a Channel, rejecting unknown names."""
        if isinstance(value, Channel):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                'Channel must be either "marketplace" or "community"',
                field="channel",
                details={"value": value},
            ) from None


class ContentRef(BaseModel):
    """Stable handle for one payload confirmed durable by the content store."""

    id: str = Field(description="Content identifier (CID or digest)")
    url: str = Field(description="Retrieval URL for the content")
    size_bytes: int = Field(ge=0, description="Stored size in bytes")

    model_config = {"frozen": True}


class GameMetadata(BaseModel):
    """Descriptive metadata carried by every version and mirrored on the game."""

    title: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Titles must contain something other than whitespace."""
        if not v or not v.strip():
            raise ValueError("title must not be blank")
        return v.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        """Accept None, strip blanks and drop duplicates preserving order."""
        if v is None:
            return []
        seen: list[str] = []
        for tag in v:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


def make_metadata(
    title: str | None,
    description: str | None = None,
    tags: list[str] | None = None,
) -> GameMetadata:
    """
    Build GameMetadata, translating schema failures into ValidationError.

    Raises:
        ValidationError: If the title is missing or blank
    """
    try:
        return GameMetadata(title=title or "", description=description, tags=tags)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError(
            "Invalid game metadata",
            field=str(e.errors()[0]["loc"][0]) if e.errors() else None,
            validation_errors=errors,
        ) from e


class VersionRecord(BaseModel):
    """A version about to be appended; the repository assigns its number."""

    metadata: GameMetadata
    content_ref: ContentRef
    created_at: str = Field(default_factory=utc_now)


class Version(BaseModel):
    """Immutable snapshot of a game at one point in its history."""

    number: int = Field(ge=1, description="1-based, gapless version number")
    title: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    content_ref: ContentRef
    created_at: str

    model_config = {"frozen": True}


class Game(BaseModel):
    """A game owned by exactly one wallet, with its full version history."""

    game_id: str
    owner_id: str
    title: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    versions: list[Version] = Field(default_factory=list)
    current_version: int = 0
    is_published_to_marketplace: bool = False
    marketplace_published_at: str | None = None
    is_published_to_community: bool = False
    community_published_at: str | None = None
    fork_count: int = 0
    original_game_id: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @property
    def latest_version(self) -> Version | None:
        """Return the most recently appended version, if any."""
        return self.versions[-1] if self.versions else None

    def is_published(self, channel: Channel) -> bool:
        """Return whether the game is currently published on a channel."""
        if channel is Channel.MARKETPLACE:
            return self.is_published_to_marketplace
        return self.is_published_to_community

    def published_at(self, channel: Channel) -> str | None:
        """Return when the game was (last) published on a channel."""
        if channel is Channel.MARKETPLACE:
            return self.marketplace_published_at
        return self.community_published_at

    def is_owned_by(self, caller_id: str) -> bool:
        """Compare an already-normalized caller against the owner."""
        return self.owner_id == caller_id
