"""
Pinata content store.

Pins game payloads to IPFS through the Pinata pinning API and serves them
back through an IPFS gateway.
"""

import json

import httpx

from canvas_forge.config import DEFAULT_GATEWAY, ForgeSettings
from canvas_forge.content.store import ContentStore
from canvas_forge.core.exceptions import (
    ContentFetchError,
    NotFoundError,
    UploadError,
    UploadErrorKind,
)
from canvas_forge.core.models import ContentRef


class PinataContentStore(ContentStore):
    """
    Content store backed by Pinata / IPFS.

    Environment variables (via ForgeSettings):
    - PINATA_JWT: Bearer token for the pinning API
    - PINATA_GATEWAY_URL: Gateway host used to build retrieval URLs
    """

    backend_name = "pinata"

    PIN_FILE_PATH = "/pinning/pinFileToIPFS"

    def __init__(
        self,
        jwt: str,
        *,
        gateway: str = DEFAULT_GATEWAY,
        api_url: str = "https://api.pinata.cloud",
        client: httpx.Client | None = None,
        **kwargs,
    ):
        """
        Initialize the Pinata store.

        Args:
            jwt: Pinata JWT
            gateway: Gateway host (no scheme), e.g. ``ipfs.io``
            api_url: Pinata API base URL
            client: Preconfigured httpx client (tests inject a MockTransport)
            **kwargs: Passed to ContentStore (size ceiling, timeout)
        """
        super().__init__(**kwargs)
        self._jwt = jwt
        self._gateway = gateway.removeprefix("https://").rstrip("/")
        self._api_url = api_url.rstrip("/")
        self._client = client or httpx.Client(timeout=self.timeout_seconds, follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: ForgeSettings) -> "PinataContentStore":
        """Build a store from loaded settings."""
        return cls(
            settings.pinata_jwt,
            gateway=settings.pinata_gateway,
            api_url=settings.pinata_api_url,
            max_content_bytes=settings.max_content_bytes,
            timeout_seconds=settings.upload_timeout_seconds,
        )

    def gateway_url(self, cid: str) -> str:
        """Public retrieval URL for a CID."""
        return f"https://{self._gateway}/ipfs/{cid}"

    def _upload(self, content: bytes, content_type: str, labels: dict[str, str]) -> ContentRef:
        if not self._jwt:
            raise UploadError(
                UploadErrorKind.AUTHENTICATION,
                "Pinata JWT not configured. Set PINATA_JWT environment variable.",
                backend=self.backend_name,
            )

        keyvalues = dict(labels)
        filename = keyvalues.pop("name", "game.html")
        data = {
            "pinataMetadata": json.dumps({"name": filename, "keyvalues": keyvalues}),
            "pinataOptions": json.dumps({"cidVersion": 1}),
        }
        files = {"file": (filename, content, content_type)}

        try:
            response = self._client.post(
                f"{self._api_url}{self.PIN_FILE_PATH}",
                headers={"Authorization": f"Bearer {self._jwt}"},
                data=data,
                files=files,
            )
        except httpx.TimeoutException as e:
            raise UploadError(
                UploadErrorKind.TIMEOUT,
                f"Pinata upload timed out: {e}",
                backend=self.backend_name,
            ) from e
        except httpx.HTTPError as e:
            raise UploadError(
                UploadErrorKind.UNKNOWN,
                f"HTTP error during Pinata upload: {e}",
                backend=self.backend_name,
            ) from e

        if response.status_code >= 400:
            self._handle_http_error(response)

        try:
            result = response.json()
            cid = result["IpfsHash"]
            size = int(result.get("PinSize", len(content)))
        except (ValueError, KeyError, TypeError) as e:
            raise UploadError(
                UploadErrorKind.UNKNOWN,
                "Pinata returned an unexpected response",
                status_code=response.status_code,
                backend=self.backend_name,
            ) from e

        return ContentRef(id=cid, url=self.gateway_url(cid), size_bytes=size)

    def _handle_http_error(self, response: httpx.Response) -> None:
        """Convert HTTP error statuses to UploadError kinds."""
        status_code = response.status_code
        body = response.text[:500]

        if status_code == 401:
            kind = UploadErrorKind.AUTHENTICATION
        elif status_code == 403:
            kind = UploadErrorKind.PERMISSION
        elif status_code == 413:
            kind = UploadErrorKind.PAYLOAD_TOO_LARGE
        elif status_code == 429:
            kind = UploadErrorKind.RATE_LIMIT
        else:
            kind = UploadErrorKind.UNKNOWN

        raise UploadError(
            kind,
            f"Pinata upload failed: {status_code}",
            reason=body if kind is UploadErrorKind.PERMISSION else None,
            status_code=status_code,
            backend=self.backend_name,
        )

    def _download(self, ref: ContentRef) -> bytes:
        try:
            response = self._client.get(ref.url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ContentFetchError(f"HTTP error fetching {ref.id}: {e}", content_id=ref.id) from e

        if response.status_code == 404:
            raise NotFoundError(
                f"Content {ref.id} not found on gateway",
                details={"content_id": ref.id},
            )
        if not response.is_success:
            raise ContentFetchError(
                f"Gateway returned {response.status_code} for {ref.id}",
                content_id=ref.id,
                status_code=response.status_code,
            )
        return response.content

    def describe(self) -> dict[str, object]:
        info = super().describe()
        info.update({"gateway": self._gateway, "configured": bool(self._jwt)})
        return info

    def close(self) -> None:
        """Close the HTTP client and transfer workers."""
        super().close()
        self._client.close()
