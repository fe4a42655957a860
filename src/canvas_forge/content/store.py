"""
Content store abstraction.

Every upload in the system goes through ContentStore.put, which validates
the payload before touching the backend, bounds the backend call with a
timeout and reports failures with the closed UploadErrorKind taxonomy.
Backends only implement the raw transfer.
"""

import logging
import re
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

from canvas_forge.config import DEFAULT_MAX_CONTENT_BYTES, DEFAULT_UPLOAD_TIMEOUT_SECONDS
from canvas_forge.core.exceptions import (
    CanvasForgeError,
    ContentFetchError,
    UploadError,
    UploadErrorKind,
    ValidationError,
)
from canvas_forge.core.models import ContentRef

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9\-_]", re.IGNORECASE)
MAX_FILENAME_STEM = 100


def sanitize_filename(title: str) -> str:
    """Reduce a title to a filename stem safe for any backend."""
    stem = _UNSAFE_FILENAME_CHARS.sub("_", title or "game")
    return stem[:MAX_FILENAME_STEM] or "game"


def game_labels(
    title: str,
    owner_id: str,
    *,
    forked: bool = False,
    uploaded_at: str | None = None,
) -> dict[str, str]:
    """
    Build the label metadata attached to a game upload.

    The ``name`` label becomes the stored filename; the rest are
    searchable key/value labels on the backend.
    """
    stem = sanitize_filename(title)
    labels = {
        "name": f"{stem}_fork.html" if forked else f"{stem}.html",
        "type": "game",
        "title": title or "Untitled Game",
        "wallet": owner_id,
    }
    if forked:
        labels["forked"] = "true"
    if uploaded_at:
        labels["uploadedAt"] = uploaded_at
    return labels


class ContentStore(ABC):
    """
    Durable content storage with a bounded, fail-fast upload path.

    Subclasses implement ``_upload`` and ``_download``; callers only use
    ``put`` and ``fetch``. The store never retries: retry policy belongs to
    the caller, which can consult ``is_retriable_error``.
    """

    backend_name = "abstract"

    def __init__(
        self,
        *,
        max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES,
        timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
        max_workers: int = 8,
    ):
        """
        Initialize the content store.

        Args:
            max_content_bytes: Largest accepted payload
            timeout_seconds: Upper bound for one upload or download
            max_workers: Concurrent transfers in flight
        """
        self._max_content_bytes = max_content_bytes
        self._timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"content-{self.backend_name}",
        )

    @property
    def max_content_bytes(self) -> int:
        """Largest payload accepted by put."""
        return self._max_content_bytes

    @property
    def timeout_seconds(self) -> float:
        """Upper bound for a single transfer."""
        return self._timeout_seconds

    def validate_payload(self, content: bytes) -> None:
        """
        Reject payloads that can never be stored.

        Raises:
            ValidationError: If content is empty or above the ceiling
        """
        if not isinstance(content, (bytes, bytearray)):
            raise ValidationError(
                "Content must be bytes",
                field="content",
                details={"actual_type": type(content).__name__},
            )
        size = len(content)
        if size == 0:
            raise ValidationError("Content must not be empty", field="content")
        if size > self._max_content_bytes:
            raise ValidationError(
                f"Content exceeds maximum size of {self._max_content_bytes} bytes",
                field="content",
                details={"size_bytes": size, "max_bytes": self._max_content_bytes},
            )

    def put(
        self,
        content: bytes,
        content_type: str,
        label_metadata: dict[str, Any] | None = None,
    ) -> ContentRef:
        """
        Store a payload durably and return its reference.

        Args:
            content: Raw payload
            content_type: MIME type of the payload
            label_metadata: Backend labels; ``name`` is used as the filename

        Returns:
            ContentRef confirmed by the backend

        Raises:
            ValidationError: Before any backend call, for empty or oversized content
            UploadError: For any backend failure, including the timeout
        """
        self.validate_payload(content)
        labels = {k: str(v) for k, v in (label_metadata or {}).items() if v is not None}

        future = self._executor.submit(self._upload, bytes(content), content_type, labels)
        try:
            ref = future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                f"Upload to {self.backend_name} exceeded {self._timeout_seconds}s",
                extra={"event": "upload_timeout", "size_bytes": len(content)},
            )
            raise UploadError(
                UploadErrorKind.TIMEOUT,
                f"Upload timed out after {self._timeout_seconds} seconds",
                backend=self.backend_name,
            ) from None
        except UploadError as e:
            logger.warning(
                f"Upload to {self.backend_name} failed: {e.upload_kind.value}",
                extra={"event": "upload_failed", "upload_kind": e.upload_kind.value},
            )
            raise
        except CanvasForgeError:
            raise
        except Exception as e:
            logger.warning(f"Upload to {self.backend_name} failed unexpectedly: {e}")
            raise UploadError(
                UploadErrorKind.UNKNOWN,
                f"Upload failed: {e}",
                backend=self.backend_name,
            ) from e

        logger.info(
            f"Stored content {ref.id} ({ref.size_bytes} bytes) in {self.backend_name}",
            extra={"event": "content_stored", "content_id": ref.id, "size_bytes": ref.size_bytes},
        )
        return ref

    def fetch(self, ref: ContentRef) -> bytes:
        """
        Read stored content back by reference.

        Raises:
            NotFoundError: If the backend does not hold the content
            ContentFetchError: For any other failure, including the timeout
        """
        future = self._executor.submit(self._download, ref)
        try:
            return future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            raise ContentFetchError(
                f"Fetching content timed out after {self._timeout_seconds} seconds",
                content_id=ref.id,
            ) from None
        except CanvasForgeError:
            raise
        except Exception as e:
            raise ContentFetchError(f"Failed to fetch content: {e}", content_id=ref.id) from e

    def describe(self) -> dict[str, Any]:
        """Summarize backend configuration for health reporting."""
        return {
            "backend": self.backend_name,
            "max_content_bytes": self._max_content_bytes,
            "timeout_seconds": self._timeout_seconds,
        }

    @abstractmethod
    def _upload(self, content: bytes, content_type: str, labels: dict[str, str]) -> ContentRef:
        """Transfer a validated payload to the backend."""

    @abstractmethod
    def _download(self, ref: ContentRef) -> bytes:
        """Read a payload from the backend."""

    def close(self) -> None:
        """Release transfer workers."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, *args):
        """Context manager exit."""
        self.close()
