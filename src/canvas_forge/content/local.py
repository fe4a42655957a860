"""
Local filesystem content store.

Stores payloads under a directory tree for development and tests:
- <root>/<id[:2]>/<id>            (payload)
- <root>/<id[:2]>/<id>.json       (labels, content type, sha256)

Every put gets a fresh id, so re-storing identical bytes (as a fork does)
produces an independent entry.
"""

import hashlib
import json
import os
import uuid
from pathlib import Path

from canvas_forge.content.store import ContentStore
from canvas_forge.core.exceptions import NotFoundError
from canvas_forge.core.models import ContentRef, utc_now


class LocalContentStore(ContentStore):
    """Directory-backed content store."""

    backend_name = "local"

    def __init__(self, root_dir: Path | None = None, **kwargs):
        """
        Initialize local content storage.

        Args:
            root_dir: Base directory (default: var/content/)
            **kwargs: Passed to ContentStore (size ceiling, timeout)
        """
        super().__init__(**kwargs)
        self._root_dir = root_dir or Path("var/content")
        self._root_dir.mkdir(parents=True, exist_ok=True)

    @property
    def root_dir(self) -> Path:
        """Base directory of the store."""
        return self._root_dir

    def _content_path(self, content_id: str) -> Path:
        shard = self._root_dir / content_id[:2]
        shard.mkdir(parents=True, exist_ok=True)
        return shard / content_id

    def _upload(self, content: bytes, content_type: str, labels: dict[str, str]) -> ContentRef:
        content_id = uuid.uuid4().hex
        path = self._content_path(content_id)
        temp_path = path.with_suffix(".tmp")

        try:
            temp_path.write_bytes(content)
            os.replace(temp_path, path)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

        sidecar = {
            "content_id": content_id,
            "content_type": content_type,
            "sha256": hashlib.sha256(content).hexdigest(),
            "size_bytes": len(content),
            "labels": labels,
            "stored_at": utc_now(),
        }
        path.with_suffix(".json").write_text(json.dumps(sidecar, indent=2))

        return ContentRef(
            id=content_id,
            url=path.resolve().as_uri(),
            size_bytes=len(content),
        )

    def _download(self, ref: ContentRef) -> bytes:
        path = self._content_path(ref.id)
        if not path.exists():
            raise NotFoundError(
                f"Content {ref.id} not found",
                details={"content_id": ref.id},
            )
        return path.read_bytes()

    def labels(self, content_id: str) -> dict[str, str]:
        """Return the labels recorded for a stored payload."""
        sidecar = self._content_path(content_id).with_suffix(".json")
        if not sidecar.exists():
            raise NotFoundError(
                f"Content {content_id} not found",
                details={"content_id": content_id},
            )
        return json.loads(sidecar.read_text())["labels"]

    def describe(self) -> dict[str, object]:
        info = super().describe()
        info["root_dir"] = str(self._root_dir)
        return info
