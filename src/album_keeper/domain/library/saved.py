"""
Saved albums: a listener's bookmarks of shared albums.

Only albums the listener can see (their own, or public ones) can be saved.
Saving twice is not an error, and bookmarks of albums that were made private
again are hidden rather than deleted.
"""

from typing import Optional

from loguru import logger

from album_keeper.core.database import utc_now_iso
from album_keeper.domain.exceptions import InvalidRequestError
from album_keeper.domain.library.albums import _load_album, get_album
from album_keeper.domain.models import Album


def save_album(conn, user_id: str, album_id: Optional[str]) -> bool:
    """
    Bookmark an album for user_id.

    Returns:
        True if a new bookmark was stored, False if it already existed

    Raises:
        InvalidRequestError: No album id
        NotFoundError: Album missing, or private and not owned by user_id
    """
    if not album_id:
        raise InvalidRequestError("Album id is required")
    get_album(conn, album_id, user_id)

    cursor = conn.execute(
        """
        INSERT OR IGNORE INTO saved_albums (user_id, album_id, saved_at)
        VALUES (?, ?, ?)
    """,
        (user_id, album_id, utc_now_iso()),
    )
    conn.commit()
    if cursor.rowcount:
        logger.info(f"{user_id} saved album {album_id}")
    return cursor.rowcount > 0


def unsave_album(conn, user_id: str, album_id: Optional[str]) -> bool:
    """Remove a bookmark. Returns False when there was none."""
    if not album_id:
        raise InvalidRequestError("Album id is required")
    cursor = conn.execute(
        "DELETE FROM saved_albums WHERE user_id = ? AND album_id = ?",
        (user_id, album_id),
    )
    conn.commit()
    return cursor.rowcount > 0


def is_album_saved(conn, user_id: str, album_id: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM saved_albums WHERE user_id = ? AND album_id = ?",
        (user_id, album_id),
    )
    return cursor.fetchone() is not None


def list_saved_albums(conn, user_id: str) -> list[Album]:
    """Bookmarked albums still visible to user_id, most recently saved first."""
    cursor = conn.execute(
        """
        SELECT albums.* FROM saved_albums
        JOIN albums ON albums.id = saved_albums.album_id
        WHERE saved_albums.user_id = ?
          AND (albums.is_public = 1 OR albums.user_id = ?)
        ORDER BY saved_albums.saved_at DESC, saved_albums.id DESC
    """,
        (user_id, user_id),
    )
    return [_load_album(conn, row) for row in cursor.fetchall()]
