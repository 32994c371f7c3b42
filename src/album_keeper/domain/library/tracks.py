"""
Track persistence for albums.

All functions take an open connection from get_db_connection() and check
album ownership before mutating anything. Track orders are zero-based and
kept dense: after any delete they equal list position.
"""

import uuid
from typing import Iterable, Mapping, Optional, Union

from loguru import logger

from album_keeper.core.database import utc_now_iso
from album_keeper.domain.exceptions import InvalidRequestError, NotFoundError
from album_keeper.domain.library.albums import require_album_owner, touch_album
from album_keeper.domain.models import (
    DEFAULT_ARTIST,
    DURATION_PLACEHOLDER,
    Track,
    TrackSource,
    duration_seconds,
)

OrderUpdate = Union[Mapping[str, object], tuple]


def list_tracks(conn, album_id: str) -> list[Track]:
    """Tracks of an album in play order."""
    cursor = conn.execute(
        """
        SELECT * FROM tracks
        WHERE album_id = ?
        ORDER BY track_order, created_at
    """,
        (album_id,),
    )
    return [Track.from_row(row) for row in cursor.fetchall()]


def get_track(conn, track_id: str) -> Optional[Track]:
    cursor = conn.execute("SELECT * FROM tracks WHERE id = ?", (track_id,))
    row = cursor.fetchone()
    return Track.from_row(row) if row else None


def get_owned_track(conn, track_id: str, user_id: str) -> Track:
    """Fetch a track whose album belongs to user_id.

    Raises:
        NotFoundError: Track missing or owned by someone else
    """
    cursor = conn.execute(
        """
        SELECT t.* FROM tracks t
        JOIN albums a ON a.id = t.album_id
        WHERE t.id = ? AND a.user_id = ?
    """,
        (track_id, user_id),
    )
    row = cursor.fetchone()
    if not row:
        raise NotFoundError("Track not found")
    return Track.from_row(row)


def _stored_duration(duration) -> object:
    """Numeric seconds when known and positive, otherwise the placeholder."""
    seconds = duration_seconds(duration)
    if seconds is None or seconds <= 0:
        return DURATION_PLACEHOLDER
    return seconds


def create_track(
    conn,
    album_id: str,
    user_id: str,
    title: Optional[str],
    playback_url: Optional[str],
    file_name: Optional[str] = None,
    artist: Optional[str] = None,
    duration=None,
    source: TrackSource = TrackSource.REMOTE_ARCHIVE,
) -> Track:
    """
    Append a track to an album.

    New tracks are placed after the existing ones (track number = count + 1)
    and start out processing.

    Raises:
        NotFoundError: Album missing or not owned by user_id
        InvalidRequestError: Title or playback URL missing
    """
    album = require_album_owner(conn, album_id, user_id)
    if not title or not title.strip() or not playback_url:
        raise InvalidRequestError("Missing required fields")

    cursor = conn.execute(
        "SELECT COUNT(*) AS count FROM tracks WHERE album_id = ?", (album_id,)
    )
    count = cursor.fetchone()["count"]

    track_id = uuid.uuid4().hex
    conn.execute(
        """
        INSERT INTO tracks (
            id, album_id, title, artist, track_order, playback_url,
            file_name, duration, processing, source, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
    """,
        (
            track_id,
            album_id,
            title.strip(),
            artist or album["artist"] or DEFAULT_ARTIST,
            count,
            playback_url,
            file_name,
            _stored_duration(duration),
            source.value,
            utc_now_iso(),
        ),
    )
    touch_album(conn, album_id)
    conn.commit()

    logger.info(f"Created track {track_id} in album {album_id} at position {count}")
    return get_track(conn, track_id)


def renumber_tracks(conn, album_id: str) -> list[Track]:
    """Rewrite track orders to 0..n-1 following the current order."""
    tracks = list_tracks(conn, album_id)
    for index, track in enumerate(tracks):
        if track.order != index:
            conn.execute(
                "UPDATE tracks SET track_order = ? WHERE id = ?", (index, track.id)
            )
    return [track.with_order(index) for index, track in enumerate(tracks)]


def delete_track(conn, album_id: str, track_id: str, user_id: str) -> bool:
    """
    Delete a track and renumber the rest.

    An unknown track id is a no-op (a reorder payload may still mention a
    track another request already deleted).

    Returns:
        True if a track was deleted
    """
    require_album_owner(conn, album_id, user_id)

    cursor = conn.execute(
        "DELETE FROM tracks WHERE id = ? AND album_id = ?", (track_id, album_id)
    )
    if cursor.rowcount == 0:
        logger.debug(f"Delete of unknown track {track_id} in album {album_id} ignored")
        return False

    renumber_tracks(conn, album_id)
    touch_album(conn, album_id)
    conn.commit()
    logger.info(f"Deleted track {track_id} from album {album_id}")
    return True


def _parse_order_update(update: OrderUpdate) -> tuple[str, int]:
    if isinstance(update, Mapping):
        track_id, order = update.get("id"), update.get("order")
    else:
        track_id, order = update
    if track_id is None or order is None:
        raise InvalidRequestError("Invalid track orders")
    try:
        return str(track_id), int(order)
    except (TypeError, ValueError) as e:
        raise InvalidRequestError("Invalid track orders") from e


def update_track_order(
    conn, album_id: str, user_id: str, track_orders: Iterable[OrderUpdate]
) -> int:
    """
    Apply a new order to an album's tracks.

    Each {id, order} is applied on its own; ids that are not in the album
    are ignored.

    Returns:
        Number of tracks updated
    """
    require_album_owner(conn, album_id, user_id)
    updates = [_parse_order_update(update) for update in track_orders]

    updated = 0
    for track_id, order in updates:
        cursor = conn.execute(
            "UPDATE tracks SET track_order = ? WHERE id = ? AND album_id = ?",
            (order, track_id, album_id),
        )
        updated += cursor.rowcount

    touch_album(conn, album_id)
    conn.commit()
    logger.debug(f"Reordered {updated}/{len(updates)} tracks in album {album_id}")
    return updated


def set_track_duration(
    conn, album_id: str, track_id: str, user_id: str, seconds
) -> None:
    """
    Record a measured duration.

    Raises:
        InvalidRequestError: Duration is not a non-negative number
        NotFoundError: Album or track not found
    """
    require_album_owner(conn, album_id, user_id)
    value = duration_seconds(seconds)
    if value is None or value < 0:
        raise InvalidRequestError("Invalid duration")

    cursor = conn.execute(
        "UPDATE tracks SET duration = ? WHERE id = ? AND album_id = ?",
        (value, track_id, album_id),
    )
    if cursor.rowcount == 0:
        raise NotFoundError("Track not found")
    conn.commit()


def set_processing(
    conn, track_id: str, processing: bool, user_id: Optional[str] = None
) -> bool:
    """Flag a track as processing or ready. Returns False for unknown tracks."""
    if user_id is not None:
        get_owned_track(conn, track_id, user_id)
    cursor = conn.execute(
        "UPDATE tracks SET processing = ? WHERE id = ?",
        (1 if processing else 0, track_id),
    )
    conn.commit()
    if cursor.rowcount:
        logger.info(f"Track {track_id} processing={processing}")
    return cursor.rowcount > 0


def set_playback_url(
    conn, track_id: str, playback_url: str, user_id: Optional[str] = None
) -> bool:
    """Point a track at a new file. Returns False for unknown tracks."""
    if not playback_url:
        raise InvalidRequestError("Missing playback URL")
    if user_id is not None:
        get_owned_track(conn, track_id, user_id)
    cursor = conn.execute(
        "UPDATE tracks SET playback_url = ? WHERE id = ?", (playback_url, track_id)
    )
    conn.commit()
    return cursor.rowcount > 0
