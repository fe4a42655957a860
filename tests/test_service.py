"""End-to-end tests for the game service."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from tenacity import wait_none

from canvas_forge.config import ForgeSettings
from canvas_forge.core.exceptions import (
    AuthorizationError,
    ConcurrencyConflictError,
    NotFoundError,
    UploadError,
    UploadErrorKind,
    ValidationError,
)
from canvas_forge.core.models import Channel
from canvas_forge.repository.sqlite import SQLiteGameRepository
from canvas_forge.service import GameService, build_service

from tests.conftest import (
    ALICE,
    BOB,
    CAROL,
    GAME_HTML,
    FailingContentStore,
    RecordingContentStore,
    SlowContentStore,
)


class TestScenario:
    """A full save, publish, fork and list flow."""

    def test_full_flow(self, service: GameService) -> None:
        """Alice publishes, Bob forks, each sees their own games."""
        game = service.create_or_update_game(ALICE, GAME_HTML, "Space", tags=["arcade"])
        game = service.create_or_update_game(ALICE, b"<p>v2</p>", "Space", game_id=game.game_id)
        assert game.current_version == 2

        game = service.set_publication(game.game_id, "marketplace", ALICE, True)
        assert game.is_published_to_marketplace

        fork = service.fork_game(game.game_id, BOB)
        assert fork.owner_id == BOB.lower()
        assert fork.original_game_id == game.game_id
        assert service.get_game(game.game_id).fork_count == 1

        assert [g.game_id for g in service.list_games(owner_id=ALICE)] == [game.game_id]
        assert [g.game_id for g in service.list_games(owner_id=BOB)] == [fork.game_id]
        assert [g.game_id for g in service.list_games(channel=Channel.MARKETPLACE)] == [game.game_id]
        assert service.list_games(channel="community") == []

    def test_channel_search(self, service: GameService) -> None:
        """Search narrows a channel listing."""
        space = service.create_or_update_game(ALICE, GAME_HTML, "Space Dodger")
        puzzle = service.create_or_update_game(ALICE, GAME_HTML, "Puzzle Box")
        for game in (space, puzzle):
            service.set_publication(game.game_id, Channel.COMMUNITY, ALICE, True)

        found = service.list_games(channel="community", search="dodger")
        assert [g.game_id for g in found] == [space.game_id]


class TestConcurrency:
    """Concurrent saves and forks through the service."""

    def test_concurrent_saves_all_land(self, service: GameService) -> None:
        """N concurrent saves produce exactly N gapless versions."""
        game = service.create_or_update_game(ALICE, GAME_HTML, "v1")

        def save(i: int):
            return service.create_or_update_game(
                ALICE, f"<p>{i}</p>".encode(), f"t{i}", game_id=game.game_id
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(save, range(8)))

        final = service.get_game(game.game_id)
        assert final.current_version == 9
        assert [v.number for v in final.versions] == list(range(1, 10))
        assert len({v.content_ref.id for v in final.versions}) == 9

    def test_conflict_retry_reuses_upload(
        self, repository: SQLiteGameRepository, content_store: RecordingContentStore
    ) -> None:
        """A retried save does not upload its content twice."""
        service = GameService(repository, content_store, save_max_attempts=3, conflict_wait=wait_none())
        game = service.create_or_update_game(ALICE, GAME_HTML, "v1")
        original_append = repository.append_version
        raced = []

        def racing_append(game_id, expected_current_version, record):
            if not raced:
                raced.append(True)
                original_append(game_id, expected_current_version, record)
            return original_append(game_id, expected_current_version, record)

        repository.append_version = racing_append
        uploads_before = len(content_store.puts)
        updated = service.create_or_update_game(ALICE, b"<p>2</p>", "v2", game_id=game.game_id)

        assert len(content_store.puts) == uploads_before + 1
        assert updated.current_version == 3

    def test_conflicts_exhaust_attempts(
        self, repository: SQLiteGameRepository, content_store: RecordingContentStore
    ) -> None:
        """Persistent conflicts surface after the configured attempts."""
        service = GameService(repository, content_store, save_max_attempts=2, conflict_wait=wait_none())
        game = service.create_or_update_game(ALICE, GAME_HTML, "v1")
        calls = []

        def always_conflict(game_id, expected_current_version, record):
            calls.append(expected_current_version)
            raise ConcurrencyConflictError(game_id=game_id, content_ref=record.content_ref)

        repository.append_version = always_conflict
        with pytest.raises(ConcurrencyConflictError):
            service.create_or_update_game(ALICE, b"<p>2</p>", "v2", game_id=game.game_id)
        assert len(calls) == 2

    def test_concurrent_forks_counted(self, service: GameService) -> None:
        """Concurrent forks are all counted on the source."""
        game = service.create_or_update_game(ALICE, GAME_HTML, "Popular")

        with ThreadPoolExecutor(max_workers=6) as pool:
            children = list(pool.map(lambda _: service.fork_game(game.game_id, BOB), range(6)))

        assert len({c.game_id for c in children}) == 6
        assert service.get_game(game.game_id).fork_count == 6


class TestAuthorization:
    """Non-owners never mutate a game."""

    def test_non_owner_cannot_mutate(self, service: GameService, content_store: RecordingContentStore) -> None:
        """Save, publish and delete by a non-owner change nothing."""
        game = service.create_or_update_game(ALICE, GAME_HTML, "mine")
        uploads = len(content_store.puts)

        with pytest.raises(AuthorizationError):
            service.create_or_update_game(CAROL, GAME_HTML, "x", game_id=game.game_id)
        with pytest.raises(AuthorizationError):
            service.set_publication(game.game_id, Channel.MARKETPLACE, CAROL, True)
        with pytest.raises(AuthorizationError):
            service.delete_game(game.game_id, CAROL)

        assert service.get_game(game.game_id) == game
        assert len(content_store.puts) == uploads


class TestFailures:
    """Upload failures through the service."""

    def test_timeout_not_retried(self, repository: SQLiteGameRepository, content_store: RecordingContentStore) -> None:
        """Upload timeouts propagate on the first attempt with versions unchanged."""
        game = GameService(repository, content_store).create_or_update_game(ALICE, GAME_HTML, "v1")

        with SlowContentStore(delay=1.0, timeout_seconds=0.05) as slow:
            service = GameService(repository, slow, conflict_wait=wait_none())
            with pytest.raises(UploadError) as exc_info:
                service.create_or_update_game(ALICE, GAME_HTML, "v2", game_id=game.game_id)

        assert exc_info.value.upload_kind is UploadErrorKind.TIMEOUT
        assert service.get_game(game.game_id).current_version == 1

    def test_oversize_never_uploads(self, repository: SQLiteGameRepository) -> None:
        """Oversized content is rejected without a backend call."""
        with FailingContentStore(max_content_bytes=8) as failing:
            service = GameService(repository, failing)
            with pytest.raises(ValidationError):
                service.create_or_update_game(ALICE, b"x" * 9, "big")
            assert failing.calls == 0


class TestListAndDelete:
    """Tests for list_games, get_game and delete_game."""

    def test_list_requires_one_filter(self, service: GameService) -> None:
        """Exactly one of owner and channel must be given."""
        with pytest.raises(ValidationError):
            service.list_games()
        with pytest.raises(ValidationError):
            service.list_games(owner_id=ALICE, channel=Channel.MARKETPLACE)

    def test_search_requires_channel(self, service: GameService) -> None:
        """Search is rejected on owner listings."""
        with pytest.raises(ValidationError):
            service.list_games(owner_id=ALICE, search="space")

    def test_list_paging_validated(self, service: GameService) -> None:
        """Out-of-range paging is a ValidationError."""
        with pytest.raises(ValidationError):
            service.list_games(owner_id=ALICE, limit=500)

    def test_get_missing(self, service: GameService) -> None:
        """Unknown games are NotFoundError."""
        with pytest.raises(NotFoundError):
            service.get_game("missing")

    def test_delete_keeps_content(self, service: GameService, content_store: RecordingContentStore) -> None:
        """Deleting removes the game but not its stored content."""
        game = service.create_or_update_game(ALICE, GAME_HTML, "gone")
        ref = game.latest_version.content_ref

        service.delete_game(game.game_id, ALICE)

        with pytest.raises(NotFoundError):
            service.get_game(game.game_id)
        assert content_store.fetch(ref) == GAME_HTML

    def test_health(self, service: GameService) -> None:
        """Health reports game count and backend."""
        service.create_or_update_game(ALICE, GAME_HTML, "one")
        health = service.health()
        assert health["games"] == 1
        assert health["content_store"]["backend"] == "local"


def test_build_service(temp_dir) -> None:
    """build_service wires settings into a working service."""
    service = build_service(ForgeSettings(data_dir=temp_dir, save_max_attempts=2))
    try:
        game = service.create_or_update_game(ALICE, GAME_HTML, "built")
        assert (temp_dir / "games.db").exists()
        assert service.get_game(game.game_id).current_version == 1
    finally:
        service.close()
