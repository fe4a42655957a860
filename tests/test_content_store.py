"""Tests for the content store abstraction and its backends."""

import json
from pathlib import Path

import httpx
import pytest

from canvas_forge.content.local import LocalContentStore
from canvas_forge.content.pinata import PinataContentStore
from canvas_forge.content.store import game_labels, sanitize_filename
from canvas_forge.core.exceptions import (
    ContentFetchError,
    NotFoundError,
    UploadError,
    UploadErrorKind,
    ValidationError,
)
from canvas_forge.core.models import ContentRef

from tests.conftest import ALICE, GAME_HTML, FailingContentStore, SlowContentStore


class TestLabels:
    """Tests for filename and label helpers."""

    def test_sanitize_filename(self) -> None:
        """Unsafe characters become underscores."""
        assert sanitize_filename("Space Dodger: Redux!") == "Space_Dodger__Redux_"

    def test_sanitize_truncates(self) -> None:
        """Long titles are truncated."""
        assert len(sanitize_filename("a" * 300)) == 100

    def test_sanitize_empty(self) -> None:
        """Empty titles fall back to a default stem."""
        assert sanitize_filename("") == "game"

    def test_game_labels(self) -> None:
        """Labels carry name, type, title and wallet."""
        labels = game_labels("My Game", ALICE.lower(), uploaded_at="2024-01-01")
        assert labels == {
            "name": "My_Game.html",
            "type": "game",
            "title": "My Game",
            "wallet": ALICE.lower(),
            "uploadedAt": "2024-01-01",
        }

    def test_fork_labels(self) -> None:
        """Fork uploads are marked and named distinctly."""
        labels = game_labels("My Game", ALICE.lower(), forked=True)
        assert labels["name"] == "My_Game_fork.html"
        assert labels["forked"] == "true"


class TestContentStoreValidation:
    """Tests for payload validation in put."""

    def test_empty_payload(self, temp_dir: Path) -> None:
        """Empty payloads never reach the backend."""
        with FailingContentStore() as store:
            with pytest.raises(ValidationError):
                store.put(b"", "text/html")
            assert store.calls == 0

    def test_oversized_payload(self) -> None:
        """Payloads above the ceiling never reach the backend."""
        with FailingContentStore(max_content_bytes=10) as store:
            with pytest.raises(ValidationError) as exc_info:
                store.put(b"x" * 11, "text/html")
            assert exc_info.value.details["max_bytes"] == 10
            assert store.calls == 0

    def test_payload_at_ceiling_is_accepted(self, temp_dir: Path) -> None:
        """A payload exactly at the ceiling is stored."""
        with LocalContentStore(temp_dir, max_content_bytes=10) as store:
            ref = store.put(b"x" * 10, "text/html")
            assert ref.size_bytes == 10

    def test_non_bytes_payload(self) -> None:
        """Strings must be encoded by the caller."""
        with FailingContentStore() as store:
            with pytest.raises(ValidationError):
                store.put("<html>", "text/html")  # type: ignore[arg-type]


class TestContentStoreFailures:
    """Tests for upload failure mapping."""

    def test_timeout(self) -> None:
        """A backend slower than the timeout yields a TIMEOUT UploadError."""
        with SlowContentStore(delay=1.0, timeout_seconds=0.05) as store:
            with pytest.raises(UploadError) as exc_info:
                store.put(GAME_HTML, "text/html")
            assert exc_info.value.upload_kind is UploadErrorKind.TIMEOUT

    def test_backend_upload_error_propagates(self) -> None:
        """Typed backend failures keep their kind."""
        with FailingContentStore(UploadErrorKind.PERMISSION) as store:
            with pytest.raises(UploadError) as exc_info:
                store.put(GAME_HTML, "text/html")
            assert exc_info.value.upload_kind is UploadErrorKind.PERMISSION
            assert exc_info.value.reason == "rejected by test backend"

    def test_fetch_timeout(self) -> None:
        """Slow downloads are a ContentFetchError."""
        ref = ContentRef(id="x", url="memory://x", size_bytes=1)
        with SlowContentStore(delay=1.0, timeout_seconds=0.05) as store:
            with pytest.raises(ContentFetchError):
                store.fetch(ref)


class TestLocalContentStore:
    """Tests for the local filesystem backend."""

    def test_put_and_fetch(self, temp_dir: Path) -> None:
        """Stored content can be read back."""
        with LocalContentStore(temp_dir) as store:
            ref = store.put(GAME_HTML, "text/html", {"name": "g.html"})
            assert ref.size_bytes == len(GAME_HTML)
            assert ref.url.startswith("file://")
            assert store.fetch(ref) == GAME_HTML

    def test_identical_bytes_get_fresh_ids(self, temp_dir: Path) -> None:
        """Each put is an independent entry."""
        with LocalContentStore(temp_dir) as store:
            first = store.put(GAME_HTML, "text/html")
            second = store.put(GAME_HTML, "text/html")
            assert first.id != second.id

    def test_sidecar_records_labels(self, temp_dir: Path) -> None:
        """Labels and checksum are written next to the payload."""
        with LocalContentStore(temp_dir) as store:
            ref = store.put(GAME_HTML, "text/html", {"name": "g.html", "type": "game"})
            assert store.labels(ref.id) == {"name": "g.html", "type": "game"}
            sidecar = json.loads((temp_dir / ref.id[:2] / f"{ref.id}.json").read_text())
            assert sidecar["content_type"] == "text/html"
            assert sidecar["size_bytes"] == len(GAME_HTML)

    def test_fetch_missing(self, temp_dir: Path) -> None:
        """Unknown content is NotFoundError."""
        with LocalContentStore(temp_dir) as store:
            with pytest.raises(NotFoundError):
                store.fetch(ContentRef(id="deadbeef", url="file:///nowhere", size_bytes=1))

    def test_describe(self, temp_dir: Path) -> None:
        """describe reports backend and root."""
        with LocalContentStore(temp_dir) as store:
            info = store.describe()
            assert info["backend"] == "local"
            assert info["root_dir"] == str(temp_dir)


def _pinata(handler, jwt: str = "test-jwt") -> PinataContentStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return PinataContentStore(jwt, gateway="gateway.example", client=client)


class TestPinataContentStore:
    """Tests for the Pinata backend with a mocked transport."""

    def test_successful_pin(self) -> None:
        """A pinned file becomes a gateway ContentRef."""
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"IpfsHash": "bafycid", "PinSize": 123})

        with _pinata(handler) as store:
            ref = store.put(GAME_HTML, "text/html", game_labels("My Game", ALICE.lower()))

        assert ref == ContentRef(id="bafycid", url="https://gateway.example/ipfs/bafycid", size_bytes=123)
        assert seen["url"] == "https://api.pinata.cloud/pinning/pinFileToIPFS"
        assert seen["auth"] == "Bearer test-jwt"
        body = seen["body"]
        assert b"My_Game.html" in body
        assert b'"cidVersion": 1' in body
        assert b'"type": "game"' in body

    def test_missing_jwt(self) -> None:
        """Without a JWT the upload is an AUTHENTICATION failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with _pinata(handler, jwt="") as store:
            with pytest.raises(UploadError) as exc_info:
                store.put(GAME_HTML, "text/html")
        assert exc_info.value.upload_kind is UploadErrorKind.AUTHENTICATION

    @pytest.mark.parametrize(
        "status,kind",
        [
            (401, UploadErrorKind.AUTHENTICATION),
            (403, UploadErrorKind.PERMISSION),
            (413, UploadErrorKind.PAYLOAD_TOO_LARGE),
            (429, UploadErrorKind.RATE_LIMIT),
            (500, UploadErrorKind.UNKNOWN),
        ],
    )
    def test_status_mapping(self, status: int, kind: UploadErrorKind) -> None:
        """HTTP statuses map onto the closed error taxonomy."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="NO_SCOPES_FOUND")

        with _pinata(handler) as store:
            with pytest.raises(UploadError) as exc_info:
                store.put(GAME_HTML, "text/html")
        assert exc_info.value.upload_kind is kind
        assert exc_info.value.status_code == status
        if kind is UploadErrorKind.PERMISSION:
            assert exc_info.value.reason == "NO_SCOPES_FOUND"

    def test_transport_timeout(self) -> None:
        """httpx timeouts are TIMEOUT failures."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with _pinata(handler) as store:
            with pytest.raises(UploadError) as exc_info:
                store.put(GAME_HTML, "text/html")
        assert exc_info.value.upload_kind is UploadErrorKind.TIMEOUT

    def test_malformed_response(self) -> None:
        """A 200 without IpfsHash is UNKNOWN."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        with _pinata(handler) as store:
            with pytest.raises(UploadError) as exc_info:
                store.put(GAME_HTML, "text/html")
        assert exc_info.value.upload_kind is UploadErrorKind.UNKNOWN

    def test_fetch_from_gateway(self) -> None:
        """Content is fetched from its gateway URL."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://gateway.example/ipfs/bafycid"
            return httpx.Response(200, content=GAME_HTML)

        ref = ContentRef(id="bafycid", url="https://gateway.example/ipfs/bafycid", size_bytes=1)
        with _pinata(handler) as store:
            assert store.fetch(ref) == GAME_HTML

    def test_fetch_errors(self) -> None:
        """404 is NotFoundError, other failures ContentFetchError."""
        statuses = iter([404, 502])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        ref = ContentRef(id="bafycid", url="https://gateway.example/ipfs/bafycid", size_bytes=1)
        with _pinata(handler) as store:
            with pytest.raises(NotFoundError):
                store.fetch(ref)
            with pytest.raises(ContentFetchError) as exc_info:
                store.fetch(ref)
        assert exc_info.value.status_code == 502

    def test_fetch_follows_gateway_redirect(self) -> None:
        """A redirecting gateway yields the redirect target's bytes, not the redirect page."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "ipfs.io":
                return httpx.Response(
                    301,
                    headers={"Location": "https://bafycid.ipfs.dweb.link/"},
                    content=b"<a>Moved</a>",
                )
            return httpx.Response(200, content=b"<html>real</html>")

        ref = ContentRef(id="bafycid", url="https://ipfs.io/ipfs/bafycid", size_bytes=1)
        with _pinata(handler) as store:
            assert store.fetch(ref) == b"<html>real</html>"

    def test_fetch_unfollowed_redirect_is_error(self) -> None:
        """A 3xx without a target is a ContentFetchError, never content."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(304, content=b"<a>Moved</a>")

        ref = ContentRef(id="bafycid", url="https://ipfs.io/ipfs/bafycid", size_bytes=1)
        with _pinata(handler) as store:
            with pytest.raises(ContentFetchError) as exc_info:
                store.fetch(ref)
        assert exc_info.value.status_code == 304
