"""Library domain - albums, tracks and archive credentials in SQLite.

This domain handles:
- Album CRUD, sharing and the trash buffer
- Track creation, deletion, renumbering and ordering
- Per-user archive credentials
- Saved (bookmarked) shared albums
"""

from .albums import (
    DEFAULT_TRASH_SIZE,
    create_album,
    delete_album,
    get_album,
    get_public_album,
    list_albums,
    list_trash,
    prune_trash,
    require_album_owner,
    restore_album,
    set_album_cover,
    update_album,
)

from .tracks import (
    create_track,
    delete_track,
    get_owned_track,
    get_track,
    list_tracks,
    renumber_tracks,
    set_playback_url,
    set_processing,
    set_track_duration,
    update_track_order,
)

from .credentials import delete_credentials, get_credentials, save_credentials

from .saved import is_album_saved, list_saved_albums, save_album, unsave_album

__all__ = [
    # Albums
    "DEFAULT_TRASH_SIZE",
    "create_album",
    "delete_album",
    "get_album",
    "get_public_album",
    "list_albums",
    "list_trash",
    "prune_trash",
    "require_album_owner",
    "restore_album",
    "set_album_cover",
    "update_album",
    # Tracks
    "create_track",
    "delete_track",
    "get_owned_track",
    "get_track",
    "list_tracks",
    "renumber_tracks",
    "set_playback_url",
    "set_processing",
    "set_track_duration",
    "update_track_order",
    # Credentials
    "delete_credentials",
    "get_credentials",
    "save_credentials",
    # Saved albums
    "is_album_saved",
    "list_saved_albums",
    "save_album",
    "unsave_album",
]
