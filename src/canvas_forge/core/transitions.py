"""
State transitions for publication and lineage.

Publication changes and forks are expressed as explicit values so that the
decision (publish, unpublish, leave alone, fork) is computed once, logged and
tested separately from the write that applies it.
"""

from dataclasses import dataclass

from canvas_forge.core.models import Channel, Game


@dataclass(frozen=True)
class Publish:
    """Mark a channel published as of ``at``."""

    channel: Channel
    at: str


@dataclass(frozen=True)
class Unpublish:
    """Clear a channel's flag and timestamp."""

    channel: Channel


@dataclass(frozen=True)
class NoChange:
    """The requested state already holds; nothing is written."""

    channel: Channel


@dataclass(frozen=True)
class Fork:
    """A new lineage was created from ``source_game_id``."""

    source_game_id: str
    child_game_id: str
    source_fork_count: int


PublicationTransition = Publish | Unpublish | NoChange


def plan_publication(game: Game, channel: Channel, published: bool, now: str) -> PublicationTransition:
    """
    Decide which transition moves ``game`` to the requested channel state.

    Publishing an already published channel keeps its original timestamp.
    The game's current version is not consulted: publication floats with it.
    """
    currently = game.is_published(channel)
    if published and not currently:
        return Publish(channel=channel, at=now)
    if not published and currently:
        return Unpublish(channel=channel)
    return NoChange(channel=channel)
