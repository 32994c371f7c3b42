"""
Optimistic track overlay.

Session-wide registry of tracks that exist locally but are not persisted yet
(uploads in flight). Album views display ``server tracks ++ overlay tracks
for that album``. The overlay never reconciles ids with server tracks: the
upload workflow removes its entry once the persisted track exists.
"""

from dataclasses import replace
from typing import Callable, Iterable, Optional

from loguru import logger

from album_keeper.domain.models import OverlayTrack, Track
from album_keeper.domain.scheduling import DeferredQueue

OverlayListener = Callable[[list[OverlayTrack]], None]


class TrackOverlay:
    """In-memory mapping of track id -> OverlayTrack.

    ``add``/``update``/``remove`` apply immediately. The ``post_*`` variants
    queue the mutation until ``flush()``, which the rendering layer calls
    between frames so a render or drag callback never observes a change
    mid-pass.
    """

    def __init__(self, queue: Optional[DeferredQueue] = None):
        self._tracks: dict[str, OverlayTrack] = {}
        self._queue = queue or DeferredQueue()
        self._listeners: dict[str, list[OverlayListener]] = {}

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks

    def get(self, track_id: str) -> Optional[OverlayTrack]:
        return self._tracks.get(track_id)

    @property
    def pending(self) -> int:
        """Number of deferred mutations waiting for flush()."""
        return len(self._queue)

    def add(self, track: OverlayTrack) -> None:
        """Insert a track; an existing entry with the same id is overwritten."""
        self._tracks[track.id] = track
        self._notify(track.album_id)

    def update(self, track_id: str, **changes) -> Optional[OverlayTrack]:
        """Replace fields of an entry. Unknown ids are ignored."""
        current = self._tracks.get(track_id)
        if current is None:
            logger.debug(f"Overlay update for unknown track {track_id} ignored")
            return None
        updated = replace(current, **changes)
        self._tracks[track_id] = updated
        self._notify(updated.album_id)
        return updated

    def remove(self, track_id: str) -> Optional[OverlayTrack]:
        removed = self._tracks.pop(track_id, None)
        if removed is not None:
            self._notify(removed.album_id)
        return removed

    def post_add(self, track: OverlayTrack) -> None:
        self._queue.post(lambda: self.add(track))

    def post_update(self, track_id: str, **changes) -> None:
        self._queue.post(lambda: self.update(track_id, **changes))

    def post_remove(self, track_id: str) -> None:
        self._queue.post(lambda: self.remove(track_id))

    def flush(self) -> int:
        """Apply deferred mutations in the order they were posted."""
        return self._queue.drain()

    def tracks_for_album(self, album_id: str) -> list[OverlayTrack]:
        return [track for track in self._tracks.values() if track.album_id == album_id]

    def subscribe(self, album_id: str, listener: OverlayListener) -> Callable[[], None]:
        """Listen for changes to one album's overlay entries.

        Returns:
            Function that removes the listener
        """
        self._listeners.setdefault(album_id, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(album_id, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def _notify(self, album_id: str) -> None:
        listeners = list(self._listeners.get(album_id, []))
        if not listeners:
            return
        snapshot = self.tracks_for_album(album_id)
        for listener in listeners:
            listener(snapshot)


def merge_tracks(
    server_tracks: Iterable[Track],
    overlay_tracks: Iterable[Track],
    album_id: str,
) -> list[Track]:
    """Displayed list for an album: server tracks followed by this album's overlay tracks."""
    return list(server_tracks) + [
        track for track in overlay_tracks if track.album_id == album_id
    ]
