"""
SQLite game repository.

Stores games and versions in a single SQLite database:
- games          (one row per game, denormalized latest metadata)
- game_versions  (append-only, UNIQUE(game_id, number))

Thread-safe: each thread gets its own connection and every write runs in
a BEGIN IMMEDIATE transaction, so concurrent writers queue on the database
lock instead of interleaving.
"""

import json
import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from canvas_forge.core.exceptions import (
    CanvasForgeError,
    ConcurrencyConflictError,
    NotFoundError,
    RepositoryError,
)
from canvas_forge.core.models import (
    Channel,
    ContentRef,
    Game,
    GameMetadata,
    Version,
    VersionRecord,
    utc_now,
)
from canvas_forge.repository.base import DEFAULT_PAGE_LIMIT, GameRepository, page_offset

logger = logging.getLogger(__name__)

# channel -> (flag column, timestamp column)
_CHANNEL_COLUMNS = {
    Channel.MARKETPLACE: ("is_published_to_marketplace", "marketplace_published_at"),
    Channel.COMMUNITY: ("is_published_to_community", "community_published_at"),
}


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteGameRepository(GameRepository):
    """
    Game repository backed by SQLite.

    Defaults to var/games.db. Connections use WAL journaling and a busy
    timeout so readers never block writers.
    """

    def __init__(self, database_path: Path | None = None, busy_timeout_seconds: float = 30.0):
        """
        Initialize the repository and create the schema if needed.

        Args:
            database_path: SQLite file (default: var/games.db)
            busy_timeout_seconds: How long a writer waits for the lock
        """
        self._database_path = database_path or Path("var/games.db")
        self._database_path.parent.mkdir(parents=True, exist_ok=True)
        self._busy_timeout = busy_timeout_seconds
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

        self._init_schema()

    @property
    def database_path(self) -> Path:
        """Location of the SQLite file."""
        return self._database_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local SQLite connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            try:
                conn = sqlite3.connect(
                    str(self._database_path),
                    timeout=self._busy_timeout,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                conn.execute("PRAGMA journal_mode = WAL")
                conn.execute("PRAGMA synchronous = NORMAL")
            except sqlite3.Error as e:
                raise RepositoryError(f"Cannot open database: {e}", operation="connect") from e
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def _transaction(self, operation: str, game_id: str | None = None) -> Iterator[sqlite3.Connection]:
        """Run a block inside BEGIN IMMEDIATE, mapping sqlite failures to RepositoryError."""
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise RepositoryError(
                f"Cannot start transaction: {e}", operation=operation, game_id=game_id
            ) from e
        try:
            yield conn
            conn.execute("COMMIT")
        except CanvasForgeError:
            conn.execute("ROLLBACK")
            raise
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise RepositoryError(
                f"Database error during {operation}: {e}", operation=operation, game_id=game_id
            ) from e
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def _init_schema(self) -> None:
        """Initialize the games and versions tables."""
        with self._transaction("init_schema") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS games (
                    game_id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    tags TEXT,
                    current_version INTEGER NOT NULL DEFAULT 0,
                    is_published_to_marketplace INTEGER NOT NULL DEFAULT 0,
                    marketplace_published_at TEXT,
                    is_published_to_community INTEGER NOT NULL DEFAULT 0,
                    community_published_at TEXT,
                    fork_count INTEGER NOT NULL DEFAULT 0,
                    original_game_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS game_versions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    game_id TEXT NOT NULL,
                    number INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    tags TEXT,
                    content_id TEXT NOT NULL,
                    content_url TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE (game_id, number),
                    FOREIGN KEY (game_id) REFERENCES games(game_id) ON DELETE CASCADE
                )
                """
            )

            indexes = [
                ("idx_games_owner", "games(owner_id, updated_at)"),
                ("idx_games_marketplace", "games(is_published_to_marketplace, marketplace_published_at)"),
                ("idx_games_community", "games(is_published_to_community, community_published_at)"),
                ("idx_games_original", "games(original_game_id)"),
                ("idx_versions_game", "game_versions(game_id, number)"),
            ]
            for idx_name, target in indexes:
                conn.execute(f"CREATE INDEX IF NOT EXISTS {idx_name} ON {target}")

    def _row_to_version(self, row: sqlite3.Row) -> Version:
        return Version(
            number=row["number"],
            title=row["title"],
            description=row["description"],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            content_ref=ContentRef(
                id=row["content_id"],
                url=row["content_url"],
                size_bytes=row["size_bytes"],
            ),
            created_at=row["created_at"],
        )

    def _row_to_game(self, row: sqlite3.Row, versions: list[Version]) -> Game:
        return Game(
            game_id=row["game_id"],
            owner_id=row["owner_id"],
            title=row["title"],
            description=row["description"],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            versions=versions,
            current_version=row["current_version"],
            is_published_to_marketplace=bool(row["is_published_to_marketplace"]),
            marketplace_published_at=row["marketplace_published_at"],
            is_published_to_community=bool(row["is_published_to_community"]),
            community_published_at=row["community_published_at"],
            fork_count=row["fork_count"],
            original_game_id=row["original_game_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _load_game(self, conn: sqlite3.Connection, game_id: str) -> Game | None:
        row = conn.execute("SELECT * FROM games WHERE game_id = ?", (game_id,)).fetchone()
        if row is None:
            return None
        version_rows = conn.execute(
            "SELECT * FROM game_versions WHERE game_id = ? ORDER BY number",
            (game_id,),
        ).fetchall()
        return self._row_to_game(row, [self._row_to_version(v) for v in version_rows])

    def _load_games(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Game]:
        """Attach versions to a page of game rows with a single query."""
        if not rows:
            return []
        game_ids = [row["game_id"] for row in rows]
        placeholders = ",".join("?" * len(game_ids))
        version_rows = conn.execute(
            f"SELECT * FROM game_versions WHERE game_id IN ({placeholders}) ORDER BY game_id, number",
            game_ids,
        ).fetchall()

        versions: dict[str, list[Version]] = {gid: [] for gid in game_ids}
        for v in version_rows:
            versions[v["game_id"]].append(self._row_to_version(v))
        return [self._row_to_game(row, versions[row["game_id"]]) for row in rows]

    def _require_game(self, conn: sqlite3.Connection, game_id: str) -> Game:
        game = self._load_game(conn, game_id)
        if game is None:
            raise NotFoundError(f"Game '{game_id}' not found", game_id=game_id)
        return game

    def create_game(
        self,
        owner_id: str,
        metadata: GameMetadata,
        original_game_id: str | None = None,
    ) -> Game:
        game_id = str(uuid.uuid4())
        now = utc_now()
        with self._transaction("create_game", game_id) as conn:
            conn.execute(
                """
                INSERT INTO games (
                    game_id, owner_id, title, description, tags,
                    current_version, original_game_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
                """,
                (
                    game_id,
                    owner_id,
                    metadata.title,
                    metadata.description,
                    json.dumps(metadata.tags, ensure_ascii=False),
                    original_game_id,
                    now,
                    now,
                ),
            )
            game = self._require_game(conn, game_id)

        logger.debug(f"Created game record {game_id} for {owner_id}")
        return game

    def append_version(
        self,
        game_id: str,
        expected_current_version: int,
        record: VersionRecord,
    ) -> Game:
        with self._transaction("append_version", game_id) as conn:
            row = conn.execute(
                "SELECT current_version FROM games WHERE game_id = ?", (game_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Game '{game_id}' not found", game_id=game_id)

            actual = row["current_version"]
            if actual != expected_current_version:
                raise ConcurrencyConflictError(
                    f"Game '{game_id}' is at version {actual}, expected {expected_current_version}",
                    game_id=game_id,
                    expected_version=expected_current_version,
                    actual_version=actual,
                    content_ref=record.content_ref,
                )

            number = expected_current_version + 1
            metadata = record.metadata
            tags_json = json.dumps(metadata.tags, ensure_ascii=False)
            try:
                conn.execute(
                    """
                    INSERT INTO game_versions (
                        game_id, number, title, description, tags,
                        content_id, content_url, size_bytes, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        game_id,
                        number,
                        metadata.title,
                        metadata.description,
                        tags_json,
                        record.content_ref.id,
                        record.content_ref.url,
                        record.content_ref.size_bytes,
                        record.created_at,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise ConcurrencyConflictError(
                    f"Version {number} of game '{game_id}' already exists",
                    game_id=game_id,
                    expected_version=expected_current_version,
                    content_ref=record.content_ref,
                ) from e

            cursor = conn.execute(
                """
                UPDATE games SET
                    current_version = ?, title = ?, description = ?, tags = ?, updated_at = ?
                WHERE game_id = ? AND current_version = ?
                """,
                (
                    number,
                    metadata.title,
                    metadata.description,
                    tags_json,
                    utc_now(),
                    game_id,
                    expected_current_version,
                ),
            )
            if cursor.rowcount != 1:
                raise ConcurrencyConflictError(
                    f"Game '{game_id}' changed during append",
                    game_id=game_id,
                    expected_version=expected_current_version,
                    content_ref=record.content_ref,
                )

            return self._require_game(conn, game_id)

    def increment_fork_count(self, game_id: str) -> int:
        with self._transaction("increment_fork_count", game_id) as conn:
            row = conn.execute(
                "UPDATE games SET fork_count = fork_count + 1 WHERE game_id = ? RETURNING fork_count",
                (game_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Game '{game_id}' not found", game_id=game_id)
            return row["fork_count"]

    def set_publication_flag(
        self,
        game_id: str,
        channel: Channel,
        published: bool,
        timestamp: str | None,
    ) -> Game:
        flag_col, at_col = _CHANNEL_COLUMNS[channel]
        with self._transaction("set_publication_flag", game_id) as conn:
            self._require_game(conn, game_id)
            if published:
                # Sticky: only an unpublished channel takes the new timestamp
                conn.execute(
                    f"UPDATE games SET {flag_col} = 1, {at_col} = ?, updated_at = ? "
                    f"WHERE game_id = ? AND {flag_col} = 0",
                    (timestamp or utc_now(), utc_now(), game_id),
                )
            else:
                conn.execute(
                    f"UPDATE games SET {flag_col} = 0, {at_col} = NULL, updated_at = ? "
                    f"WHERE game_id = ? AND {flag_col} = 1",
                    (utc_now(), game_id),
                )
            return self._require_game(conn, game_id)

    def get_by_id(self, game_id: str) -> Game | None:
        conn = self._get_connection()
        try:
            return self._load_game(conn, game_id)
        except sqlite3.Error as e:
            raise RepositoryError(f"Database error reading game: {e}", operation="get_by_id", game_id=game_id) from e

    def list_by_owner(self, owner_id: str, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> list[Game]:
        offset = page_offset(page, limit)
        conn = self._get_connection()
        try:
            rows = conn.execute(
                """
                SELECT * FROM games WHERE owner_id = ?
                ORDER BY updated_at DESC, game_id
                LIMIT ? OFFSET ?
                """,
                (owner_id, limit, offset),
            ).fetchall()
            return self._load_games(conn, rows)
        except sqlite3.Error as e:
            raise RepositoryError(f"Database error listing games: {e}", operation="list_by_owner") from e

    def list_by_channel(
        self,
        channel: Channel,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        search_text: str | None = None,
    ) -> list[Game]:
        offset = page_offset(page, limit)
        flag_col, at_col = _CHANNEL_COLUMNS[channel]

        conditions = [f"{flag_col} = 1"]
        params: list[object] = []
        if search_text and search_text.strip():
            pattern = f"%{_escape_like(search_text.strip())}%"
            conditions.append(
                "(title LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\'"
                " OR EXISTS (SELECT 1 FROM json_each(games.tags) WHERE json_each.value LIKE ? ESCAPE '\\'))"
            )
            params.extend([pattern, pattern, pattern])
        params.extend([limit, offset])

        conn = self._get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT * FROM games WHERE {' AND '.join(conditions)}
                ORDER BY {at_col} DESC, game_id
                LIMIT ? OFFSET ?
                """,
                params,
            ).fetchall()
            return self._load_games(conn, rows)
        except sqlite3.Error as e:
            raise RepositoryError(f"Database error listing games: {e}", operation="list_by_channel") from e

    def delete_game(self, game_id: str) -> bool:
        with self._transaction("delete_game", game_id) as conn:
            cursor = conn.execute("DELETE FROM games WHERE game_id = ?", (game_id,))
            return cursor.rowcount > 0

    def count_games(self) -> int:
        conn = self._get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM games").fetchone()[0]
        except sqlite3.Error as e:
            raise RepositoryError(f"Database error counting games: {e}", operation="count_games") from e

    def close(self) -> None:
        """Close every connection opened by this repository."""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()
