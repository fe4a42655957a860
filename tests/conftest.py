"""Pytest configuration and fixtures."""

import tempfile
import threading
import time
from pathlib import Path
from typing import Generator

import pytest
from tenacity import wait_none

from canvas_forge.content.local import LocalContentStore
from canvas_forge.content.store import ContentStore
from canvas_forge.core.exceptions import UploadError, UploadErrorKind
from canvas_forge.core.models import ContentRef
from canvas_forge.repository.sqlite import SQLiteGameRepository
from canvas_forge.service import GameService

ALICE = "0x71C7656EC7ab88b098defB751B7401B5f6d8976F"
BOB = "0x2a3b4c5d6e7f8091a2b3c4d5e6f708192a3b4c5d"
CAROL = "0x9999999999999999999999999999999999999999"

GAME_HTML = b"<!DOCTYPE html><html><body><canvas id='game'></canvas></body></html>"


class RecordingContentStore(LocalContentStore):
    """Local store that records every put call."""

    def __init__(self, root_dir: Path, **kwargs):
        super().__init__(root_dir, **kwargs)
        self.puts: list[dict[str, str]] = []
        self._lock = threading.Lock()

    def _upload(self, content: bytes, content_type: str, labels: dict[str, str]) -> ContentRef:
        with self._lock:
            self.puts.append(dict(labels))
        return super()._upload(content, content_type, labels)


class SlowContentStore(ContentStore):
    """Store whose uploads take longer than any reasonable test timeout."""

    backend_name = "slow"

    def __init__(self, delay: float = 1.0, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay

    def _upload(self, content: bytes, content_type: str, labels: dict[str, str]) -> ContentRef:
        time.sleep(self.delay)
        return ContentRef(id="slow", url="memory://slow", size_bytes=len(content))

    def _download(self, ref: ContentRef) -> bytes:
        time.sleep(self.delay)
        return b""


class FailingContentStore(ContentStore):
    """Store whose uploads always fail with one UploadErrorKind."""

    backend_name = "failing"

    def __init__(self, kind: UploadErrorKind = UploadErrorKind.PERMISSION, **kwargs):
        super().__init__(**kwargs)
        self.kind = kind
        self.calls = 0

    def _upload(self, content: bytes, content_type: str, labels: dict[str, str]) -> ContentRef:
        self.calls += 1
        raise UploadError(self.kind, reason="rejected by test backend", backend=self.backend_name)

    def _download(self, ref: ContentRef) -> bytes:
        return b""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def repository(temp_dir: Path) -> Generator[SQLiteGameRepository, None, None]:
    """SQLite repository in a temporary directory."""
    repo = SQLiteGameRepository(temp_dir / "games.db")
    yield repo
    repo.close()


@pytest.fixture
def content_store(temp_dir: Path) -> Generator[RecordingContentStore, None, None]:
    """Local content store that records its uploads."""
    store = RecordingContentStore(temp_dir / "content", max_content_bytes=1024 * 1024)
    yield store
    store.close()


@pytest.fixture
def service(
    repository: SQLiteGameRepository, content_store: RecordingContentStore
) -> GameService:
    """Game service over the temporary repository and store, retrying without waits."""
    return GameService(
        repository,
        content_store,
        save_max_attempts=10,
        conflict_wait=wait_none(),
    )
