"""
Album CRUD, public sharing and the recently-deleted (trash) buffer.

Deleting an album cascades to its tracks after snapshotting album and tracks
into album_trash. Only the most recent entries per user are kept there.
"""

import base64
import json
from typing import Any, Dict, Optional

from loguru import logger

from album_keeper.core.database import utc_now_iso
from album_keeper.domain.exceptions import InvalidRequestError, NotFoundError
from album_keeper.domain.models import DEFAULT_ARTIST, Album

DEFAULT_TRASH_SIZE = 10

# API field name -> column name
EDITABLE_FIELDS = {
    "title": "title",
    "artist": "artist",
    "description": "description",
    "release_date": "release_date",
    "cover_url": "cover_url",
    "is_public": "is_public",
}


def require_album_owner(conn, album_id: str, user_id: str):
    """Return the album row if user_id owns it.

    Raises:
        NotFoundError: Album missing or owned by someone else
    """
    cursor = conn.execute(
        "SELECT * FROM albums WHERE id = ? AND user_id = ?", (album_id, user_id)
    )
    row = cursor.fetchone()
    if not row:
        raise NotFoundError("Album not found")
    return row


def touch_album(conn, album_id: str) -> None:
    conn.execute(
        "UPDATE albums SET updated_at = ? WHERE id = ?", (utc_now_iso(), album_id)
    )


def _load_album(conn, row) -> Album:
    from album_keeper.domain.library.tracks import list_tracks

    return Album.from_row(row, tracks=list_tracks(conn, row["id"]))


def list_albums(conn, user_id: str) -> list[Album]:
    """All albums owned by user_id, newest first."""
    cursor = conn.execute(
        "SELECT * FROM albums WHERE user_id = ? ORDER BY created_at DESC",
        (user_id,),
    )
    return [_load_album(conn, row) for row in cursor.fetchall()]


def get_album(conn, album_id: str, user_id: Optional[str] = None) -> tuple[Album, bool]:
    """
    Fetch an album visible to the caller.

    Owners see their albums; anyone sees public albums.

    Returns:
        (album, is_owned)

    Raises:
        NotFoundError: Album missing, or private and not owned by the caller
    """
    cursor = conn.execute("SELECT * FROM albums WHERE id = ?", (album_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFoundError("Album not found")

    is_owned = user_id is not None and row["user_id"] == user_id
    if not is_owned and not row["is_public"]:
        raise NotFoundError("Album not found")
    return _load_album(conn, row), is_owned


def get_public_album(conn, album_id: str) -> Album:
    """Fetch a shared album for an anonymous viewer."""
    album, _ = get_album(conn, album_id, user_id=None)
    return album


def create_album(
    conn,
    user_id: str,
    title: Optional[str],
    artist: Optional[str] = None,
    description: Optional[str] = None,
    release_date: Optional[str] = None,
    cover_url: Optional[str] = None,
) -> Album:
    """Create an empty album owned by user_id."""
    if not title or not title.strip():
        raise InvalidRequestError("Title is required")

    album_id = Album.generate_id()
    now = utc_now_iso()
    conn.execute(
        """
        INSERT INTO albums (
            id, user_id, title, artist, description, release_date,
            cover_url, is_public, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
    """,
        (
            album_id,
            user_id,
            title.strip(),
            (artist or "").strip() or DEFAULT_ARTIST,
            description or "",
            release_date,
            cover_url,
            now,
            now,
        ),
    )
    conn.commit()
    logger.info(f"Created album {album_id} '{title.strip()}' for {user_id}")
    album, _ = get_album(conn, album_id, user_id)
    return album


def update_album(conn, album_id: str, user_id: str, **changes: Any) -> Album:
    """Update editable album fields; unknown or None values are ignored."""
    require_album_owner(conn, album_id, user_id)

    assignments = []
    values = []
    for name, value in changes.items():
        column = EDITABLE_FIELDS.get(name)
        if column is None or value is None:
            continue
        if name == "title" and not str(value).strip():
            raise InvalidRequestError("Title cannot be empty")
        if name == "is_public":
            value = 1 if value else 0
        assignments.append(f"{column} = ?")
        values.append(value)

    if assignments:
        assignments.append("updated_at = ?")
        values.append(utc_now_iso())
        conn.execute(
            f"UPDATE albums SET {', '.join(assignments)} WHERE id = ?",
            (*values, album_id),
        )
        conn.commit()

    album, _ = get_album(conn, album_id, user_id)
    return album


def set_album_cover(
    conn, album_id: str, user_id: str, data: bytes, content_type: str
) -> str:
    """Store cover art inline as a data URL and return it."""
    if not data:
        raise InvalidRequestError("No image data")
    if not content_type.startswith("image/"):
        raise InvalidRequestError("Cover must be an image")

    cover_url = f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
    update_album(conn, album_id, user_id, cover_url=cover_url)
    logger.info(f"Updated cover for album {album_id} ({len(data)} bytes)")
    return cover_url


def prune_trash(conn, user_id: str, keep: int = DEFAULT_TRASH_SIZE) -> int:
    """Drop all but the most recent `keep` trash entries for user_id."""
    cursor = conn.execute(
        """
        DELETE FROM album_trash
        WHERE user_id = ? AND id NOT IN (
            SELECT id FROM album_trash
            WHERE user_id = ?
            ORDER BY deleted_at DESC, id DESC
            LIMIT ?
        )
    """,
        (user_id, user_id, keep),
    )
    return cursor.rowcount


def delete_album(
    conn, album_id: str, user_id: str, trash_size: int = DEFAULT_TRASH_SIZE
) -> Album:
    """
    Move an album (and its tracks) to the trash.

    The album + tracks snapshot is written before the rows are removed, in
    one transaction.
    """
    row = require_album_owner(conn, album_id, user_id)
    album = _load_album(conn, row)

    try:
        conn.execute(
            """
            INSERT INTO album_trash (album_id, user_id, payload, deleted_at)
            VALUES (?, ?, ?, ?)
        """,
            (album_id, user_id, json.dumps(album.to_snapshot()), utc_now_iso()),
        )
        conn.execute("DELETE FROM albums WHERE id = ?", (album_id,))
        pruned = prune_trash(conn, user_id, trash_size)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(
        f"Moved album {album_id} ({len(album.tracks)} tracks) to trash"
        + (f", pruned {pruned} old entries" if pruned else "")
    )
    return album


def list_trash(conn, user_id: str, limit: int = DEFAULT_TRASH_SIZE) -> list[Dict[str, Any]]:
    """Recently deleted albums, newest first, as API payloads with deletedAt."""
    cursor = conn.execute(
        """
        SELECT payload, deleted_at FROM album_trash
        WHERE user_id = ?
        ORDER BY deleted_at DESC, id DESC
        LIMIT ?
    """,
        (user_id, limit),
    )
    deleted = []
    for row in cursor.fetchall():
        album = Album.from_snapshot(json.loads(row["payload"]))
        deleted.append({**album.to_api(), "deletedAt": row["deleted_at"]})
    return deleted


def restore_album(conn, album_id: str, user_id: str) -> Album:
    """
    Undo an album delete: re-insert album and tracks and drop the trash entry.

    Raises:
        NotFoundError: No trash entry for this album and user
    """
    cursor = conn.execute(
        """
        SELECT id, payload FROM album_trash
        WHERE album_id = ? AND user_id = ?
        ORDER BY deleted_at DESC, id DESC
        LIMIT 1
    """,
        (album_id, user_id),
    )
    entry = cursor.fetchone()
    if not entry:
        raise NotFoundError("Album not found in trash")

    album = Album.from_snapshot(json.loads(entry["payload"]))
    try:
        conn.execute(
            """
            INSERT INTO albums (
                id, user_id, title, artist, description, release_date,
                cover_url, is_public, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                album.id,
                album.user_id,
                album.title,
                album.artist,
                album.description,
                album.release_date,
                album.cover_url,
                1 if album.is_public else 0,
                album.created_at.isoformat() if album.created_at else utc_now_iso(),
                utc_now_iso(),
            ),
        )
        for track in album.tracks:
            conn.execute(
                """
                INSERT INTO tracks (
                    id, album_id, title, artist, track_order, playback_url,
                    file_name, duration, processing, source, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    track.id,
                    album.id,
                    track.title,
                    track.artist,
                    track.order,
                    track.playback_url,
                    track.file_name,
                    track.duration,
                    1 if track.processing else 0,
                    track.source.value,
                    track.created_at.isoformat() if track.created_at else utc_now_iso(),
                ),
            )
        # Older snapshots of the same album can't be restored once it is back
        conn.execute(
            "DELETE FROM album_trash WHERE album_id = ? AND user_id = ?",
            (album_id, user_id),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"Restored album {album_id} from trash")
    restored, _ = get_album(conn, album_id, user_id)
    return restored
