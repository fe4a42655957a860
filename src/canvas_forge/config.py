"""
Configuration for Canvas Forge.

Settings are read from the environment once and passed explicitly to the
components that need them.

Environment variables:
- CF_DATA_DIR: Base directory for local state (default: var)
- CF_DATABASE_PATH: SQLite metadata database (default: <data>/games.db)
- CF_CONTENT_BACKEND: Content store backend, local|pinata (default: local)
- CF_CONTENT_DIR: Root of the local content store (default: <data>/content)
- PINATA_JWT: Bearer token for the Pinata pinning API
- PINATA_GATEWAY_URL: IPFS gateway host (falls back to NEXT_PUBLIC_GATEWAY_URL)
- CF_MAX_CONTENT_BYTES: Payload ceiling in bytes (default: 50 MiB)
- CF_UPLOAD_TIMEOUT_SECONDS: Upper bound for a single upload (default: 60)
- CF_SAVE_MAX_ATTEMPTS: Save attempts on version conflicts (default: 5)
- CF_LOG_LEVEL: Log level for the API and CLI (default: INFO)
"""

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

from canvas_forge.core.exceptions import ConfigurationError

DEFAULT_MAX_CONTENT_BYTES = 50 * 1024 * 1024
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 60.0
DEFAULT_GATEWAY = "ipfs.io"


class ContentBackend(Enum):
    """Supported content store backends."""

    LOCAL = "local"
    PINATA = "pinata"


class ForgeSettings(BaseModel):
    """Runtime configuration for the service, API and CLI."""

    data_dir: Path = Path("var")
    database_path: Path | None = None
    content_backend: ContentBackend = ContentBackend.LOCAL
    content_dir: Path | None = None
    pinata_jwt: str = ""
    pinata_gateway: str = DEFAULT_GATEWAY
    pinata_api_url: str = "https://api.pinata.cloud"
    max_content_bytes: int = Field(default=DEFAULT_MAX_CONTENT_BYTES, gt=0)
    upload_timeout_seconds: float = Field(default=DEFAULT_UPLOAD_TIMEOUT_SECONDS, gt=0)
    save_max_attempts: int = Field(default=5, ge=1)
    log_level: str = "INFO"

    @property
    def resolved_database_path(self) -> Path:
        """Database path, defaulting under the data directory."""
        return self.database_path or self.data_dir / "games.db"

    @property
    def resolved_content_dir(self) -> Path:
        """Local content root, defaulting under the data directory."""
        return self.content_dir or self.data_dir / "content"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid integer for {name}: {raw}", env_var=name
        ) from None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid number for {name}: {raw}", env_var=name
        ) from None


def load_settings() -> ForgeSettings:
    """
    Load configuration from environment.

    Raises:
        ConfigurationError: If a variable holds an unusable value
    """
    backend_str = os.getenv("CF_CONTENT_BACKEND", ContentBackend.LOCAL.value).lower()
    try:
        backend = ContentBackend(backend_str)
    except ValueError:
        raise ConfigurationError(
            f"Unknown content backend: {backend_str}",
            env_var="CF_CONTENT_BACKEND",
            details={"allowed": [b.value for b in ContentBackend]},
        ) from None

    database_path = os.getenv("CF_DATABASE_PATH")
    content_dir = os.getenv("CF_CONTENT_DIR")
    gateway = os.getenv("PINATA_GATEWAY_URL") or os.getenv("NEXT_PUBLIC_GATEWAY_URL") or DEFAULT_GATEWAY

    max_content_bytes = _int_env("CF_MAX_CONTENT_BYTES", DEFAULT_MAX_CONTENT_BYTES)
    upload_timeout = _float_env("CF_UPLOAD_TIMEOUT_SECONDS", DEFAULT_UPLOAD_TIMEOUT_SECONDS)
    save_max_attempts = _int_env("CF_SAVE_MAX_ATTEMPTS", 5)

    if max_content_bytes <= 0:
        raise ConfigurationError("CF_MAX_CONTENT_BYTES must be positive", env_var="CF_MAX_CONTENT_BYTES")
    if upload_timeout <= 0:
        raise ConfigurationError("CF_UPLOAD_TIMEOUT_SECONDS must be positive", env_var="CF_UPLOAD_TIMEOUT_SECONDS")
    if save_max_attempts < 1:
        raise ConfigurationError("CF_SAVE_MAX_ATTEMPTS must be at least 1", env_var="CF_SAVE_MAX_ATTEMPTS")

    return ForgeSettings(
        data_dir=Path(os.getenv("CF_DATA_DIR", "var")),
        database_path=Path(database_path) if database_path else None,
        content_backend=backend,
        content_dir=Path(content_dir) if content_dir else None,
        pinata_jwt=os.getenv("PINATA_JWT", ""),
        pinata_gateway=gateway.removeprefix("https://").rstrip("/"),
        max_content_bytes=max_content_bytes,
        upload_timeout_seconds=upload_timeout,
        save_max_attempts=save_max_attempts,
        log_level=os.getenv("CF_LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> ForgeSettings:
    """Get the process-wide settings (cached)."""
    return load_settings()
