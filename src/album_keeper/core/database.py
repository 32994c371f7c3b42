"""
SQLite database operations for Album Keeper
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from .config import get_data_dir


# Database schema version for migrations
SCHEMA_VERSION = 4


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return get_data_dir() / "album_keeper.db"


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string (the storage format for timestamps)."""
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def get_db_connection():
    """Get a database connection with proper cleanup and concurrency support."""
    db_path = get_database_path()
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL allows reads during writes; foreign keys drive album -> track cascades
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 2:
        # v2: public sharing of albums
        try:
            conn.execute("ALTER TABLE albums ADD COLUMN is_public INTEGER NOT NULL DEFAULT 0")
        except sqlite3.OperationalError as e:
            if "duplicate column" not in str(e).lower():
                raise
        conn.commit()

    if current_version < 3:
        # v3: recently deleted albums (undo buffer)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS album_trash (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                album_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                payload TEXT NOT NULL, -- JSON snapshot of album + tracks
                deleted_at TEXT NOT NULL
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_album_trash_user ON album_trash (user_id, deleted_at)"
        )
        conn.commit()

    if current_version < 4:
        # v4: bookmarks of other users' shared albums
        conn.execute("""
            CREATE TABLE IF NOT EXISTS saved_albums (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                album_id TEXT NOT NULL,
                saved_at TEXT NOT NULL,
                UNIQUE (user_id, album_id),
                FOREIGN KEY (album_id) REFERENCES albums (id) ON DELETE CASCADE
            )
        """)
        conn.commit()


def init_database() -> None:
    """Initialize the database with required tables."""
    db_path = get_database_path()

    # Ensure data directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS albums (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                artist TEXT NOT NULL DEFAULT 'Unknown Artist',
                description TEXT NOT NULL DEFAULT '',
                release_date TEXT,
                cover_url TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # duration has no declared type: numeric seconds or the "0:00" placeholder
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id TEXT PRIMARY KEY,
                album_id TEXT NOT NULL,
                title TEXT NOT NULL,
                artist TEXT NOT NULL DEFAULT 'Unknown Artist',
                track_order INTEGER NOT NULL,
                playback_url TEXT,
                file_name TEXT,
                duration,
                processing INTEGER NOT NULL DEFAULT 1,
                source TEXT NOT NULL DEFAULT 'ia',
                created_at TEXT NOT NULL,
                FOREIGN KEY (album_id) REFERENCES albums (id) ON DELETE CASCADE
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS archive_credentials (
                user_id TEXT PRIMARY KEY,
                access_key TEXT NOT NULL,
                secret_key TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        conn.execute("CREATE INDEX IF NOT EXISTS idx_albums_user ON albums (user_id)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_album ON tracks (album_id, track_order)"
        )

        cursor = conn.execute("SELECT MAX(version) AS version FROM schema_version")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 1

        if current_version < SCHEMA_VERSION:
            logger.info(f"Migrating database from v{current_version} to v{SCHEMA_VERSION}")
            migrate_database(conn, current_version)

        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()
