"""
Ordered track list for one album view.

Mutations apply locally first, keep the playback cursor in sync when this
album is the one playing, then persist through the gateway. Persistence
failures roll the list back and become notifications; they never propagate
to the caller. Guests get a read-only list: every mutation raises
ReadOnlyViewError before any network call.
"""

import asyncio
from dataclasses import replace
from typing import Awaitable, Callable, Iterable, Optional

from loguru import logger

from album_keeper.core.config import TrackListConfig
from album_keeper.domain.exceptions import (
    AlbumKeeperError,
    InvalidRequestError,
    ReadOnlyViewError,
    ReorderRejectedError,
)
from album_keeper.domain.models import OverlayTrack, Track, renumber
from album_keeper.domain.playback.cursor import PlaybackCursor
from album_keeper.domain.tracklist.overlay import TrackOverlay, merge_tracks
from album_keeper.domain.uploads.api_client import TrackGateway
from album_keeper.domain.uploads.notifications import Notifier

Sleep = Callable[[float], Awaitable[None]]


def move_track(tracks: list[Track], from_index: int, to_index: int) -> list[Track]:
    """Move one track, keeping everything else in relative order, and renumber."""
    moved = list(tracks)
    track = moved.pop(from_index)
    moved.insert(to_index, track)
    return renumber(moved)


def order_payload(tracks: Iterable[Track]) -> list[dict]:
    return [{"id": track.id, "order": track.order} for track in tracks]


class TrackListController:
    """Owns the ordered tracks of one album view.

    Args:
        album_id: Album shown by this view
        tracks: Server tracks in order
        gateway: Track persistence
        cursor: The session's playback cursor
        overlay: The session's optimistic overlay (for display and drag rules)
        notifier: Where failures are reported
        is_guest: Read-only view of someone else's shared album
        config: Delete animation timing
        sleep: Timer used for the delete animation
    """

    def __init__(
        self,
        album_id: str,
        tracks: Iterable[Track],
        gateway: TrackGateway,
        cursor: PlaybackCursor,
        overlay: Optional[TrackOverlay] = None,
        notifier: Optional[Notifier] = None,
        is_guest: bool = False,
        config: Optional[TrackListConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.album_id = album_id
        self.tracks: list[Track] = list(tracks)
        self.deleting_id: Optional[str] = None
        self._gateway = gateway
        self._cursor = cursor
        self._overlay = overlay
        self._notifier = notifier or Notifier()
        self._is_guest = is_guest
        self._config = config or TrackListConfig()
        self._sleep = sleep

    @property
    def can_edit(self) -> bool:
        return not self._is_guest

    def _require_edit(self) -> None:
        if not self.can_edit:
            raise ReadOnlyViewError()

    def _sync_cursor(self, tracks: list[Track]) -> None:
        if self._cursor.is_active_for(self.album_id):
            self._cursor.update_playlist(tracks)

    def _rollback(self, snapshot: list[Track], keep_id: Optional[str] = None) -> list[Track]:
        """Snapshot order restricted to tracks still present, plus tracks added since, renumbered."""
        present = {track.id for track in self.tracks}
        if keep_id is not None:
            present.add(keep_id)
        snapshot_ids = {track.id for track in snapshot}
        restored = [track for track in snapshot if track.id in present]
        restored += [track for track in self.tracks if track.id not in snapshot_ids]
        return renumber(restored)

    def display_tracks(self) -> list[Track]:
        """Server tracks followed by this album's in-flight uploads."""
        overlay_tracks = self._overlay.tracks_for_album(self.album_id) if self._overlay else []
        return merge_tracks(self.tracks, overlay_tracks, self.album_id)

    def can_drag(self, track: Track) -> bool:
        if not self.can_edit:
            return False
        if track.processing or track.id == self.deleting_id:
            return False
        if isinstance(track, OverlayTrack) and track.is_uploading:
            return False
        return True

    def get(self, track_id: str) -> Optional[Track]:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def play(self, track_id: str) -> bool:
        """Load this album into the cursor starting at track_id (allowed for guests)."""
        track = self.get(track_id)
        if track is None:
            return False
        return self._cursor.play(track, self.tracks)

    def replace_tracks(self, tracks: Iterable[Track]) -> None:
        """Take a fresh server listing."""
        self.tracks = list(tracks)
        self._sync_cursor(self.tracks)

    def mark_ready(self, track_id: str) -> None:
        """A processing track became playable."""
        self.tracks = [
            replace(track, processing=False) if track.id == track_id else track
            for track in self.tracks
        ]
        self._sync_cursor(self.tracks)

    async def insert(self, track: Track) -> None:
        """Append a freshly persisted track and persist the renumbered order."""
        self._require_edit()
        self.tracks = renumber([*self.tracks, track])
        self._sync_cursor(self.tracks)
        try:
            await self._gateway.update_track_order(self.album_id, order_payload(self.tracks))
        except AlbumKeeperError as e:
            self._notifier.error(e, "Couldn't save track order")

    async def delete(self, track_id: str, also_delete_remote: bool = False) -> bool:
        """
        Delete a track after its exit animation.

        The track stays listed (as deleting_id) for the animation, the cursor
        is resynced before the track leaves the list, and the gateway is asked
        to delete last. On failure the track comes back.

        Returns:
            True if the gateway deleted the track
        """
        self._require_edit()
        if self.get(track_id) is None:
            logger.debug(f"Delete of unknown track {track_id} ignored")
            return False

        snapshot = list(self.tracks)
        self.deleting_id = track_id
        try:
            await self._sleep(self._config.delete_animation_seconds)
            remaining = renumber(track for track in self.tracks if track.id != track_id)
            self._sync_cursor(remaining)
            self.tracks = remaining
            await self._gateway.delete_track(self.album_id, track_id, also_delete_remote)
        except AlbumKeeperError as e:
            self.tracks = self._rollback(snapshot, keep_id=track_id)
            self._sync_cursor(self.tracks)
            self._notifier.error(e, "Couldn't delete track")
            return False
        finally:
            # a later delete may own the marker by now
            if self.deleting_id == track_id:
                self.deleting_id = None

        logger.info(f"Deleted track {track_id} from album {self.album_id}")
        return True

    async def reorder(self, from_index: int, to_index: int) -> bool:
        """
        Move one track and persist the full new order.

        On persistence failure the list and cursor return to their state
        before the move and a ReorderRejectedError notification is published.

        Returns:
            True if the new order was saved
        """
        self._require_edit()
        count = len(self.tracks)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise InvalidRequestError(f"Reorder indices out of range: {from_index} -> {to_index}")
        if from_index == to_index:
            return True
        if not self.can_drag(self.tracks[from_index]):
            logger.debug(f"Track at {from_index} can't be moved right now")
            return False

        snapshot = list(self.tracks)
        self.tracks = move_track(self.tracks, from_index, to_index)
        self._sync_cursor(self.tracks)

        try:
            await self._gateway.update_track_order(self.album_id, order_payload(self.tracks))
        except AlbumKeeperError as e:
            self.tracks = self._rollback(snapshot)
            self._sync_cursor(self.tracks)
            self._notifier.error(
                ReorderRejectedError(f"Couldn't save track order: {e.message}"),
                "Reorder failed",
            )
            return False
        return True
