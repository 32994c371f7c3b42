"""
Playback cursor: the one active playlist and position in it.

The playlist is a copy of an album's track list, not an alias. Whoever
mutates an album's tracks while that album is loaded must call
``update_playlist`` with the new list.
"""

from typing import Optional, Protocol, Sequence

from loguru import logger

from album_keeper.domain.models import Track

# previous() restarts the current track instead of going back past this point
RESTART_THRESHOLD_SECONDS = 3.0


class AudioEngine(Protocol):
    """What the cursor needs from an audio output."""

    def load(self, url: str) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    @property
    def position(self) -> float: ...

    @property
    def duration(self) -> Optional[float]: ...


class SilentEngine:
    """In-memory engine that tracks state without producing sound."""

    def __init__(self) -> None:
        self.url: Optional[str] = None
        self.playing = False
        self._position = 0.0
        self._duration: Optional[float] = None

    def load(self, url: str) -> None:
        self.url = url
        self.playing = False
        self._position = 0.0
        self._duration = None

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def seek(self, seconds: float) -> None:
        self._position = max(0.0, seconds)

    def advance(self, seconds: float) -> None:
        """Simulate playback time passing."""
        if self.playing:
            self._position += seconds

    def set_duration(self, seconds: Optional[float]) -> None:
        self._duration = seconds

    @property
    def position(self) -> float:
        return self._position

    @property
    def duration(self) -> Optional[float]:
        return self._duration


class PlaybackCursor:
    """Single playback position shared by every album view.

    When the current track disappears from an updated playlist, playback
    pauses and the track stays as a detached ``current_track``. The index
    stays on the slot it occupied, so ``next()`` plays whatever moved into
    that slot.
    """

    def __init__(self, engine: Optional[AudioEngine] = None):
        self._engine = engine or SilentEngine()
        self._playlist: list[Track] = []
        self._index: int = -1
        self._current: Optional[Track] = None
        self._playing = False
        self._detached = False

    @property
    def engine(self) -> AudioEngine:
        return self._engine

    @property
    def current_track(self) -> Optional[Track]:
        return self._current

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_detached(self) -> bool:
        """True when the current track is no longer in the playlist."""
        return self._detached

    @property
    def current_time(self) -> float:
        return self._engine.position if self._current else 0.0

    @property
    def duration(self) -> Optional[float]:
        if self._current is None:
            return None
        return self._engine.duration or self._current.duration_seconds

    @property
    def playlist(self) -> list[Track]:
        return list(self._playlist)

    @property
    def index(self) -> int:
        return self._index

    def is_active_for(self, album_id: str) -> bool:
        """True if the loaded track belongs to album_id."""
        return self._current is not None and self._current.album_id == album_id

    def play(self, track: Track, playlist: Optional[Sequence[Track]] = None) -> bool:
        """Start playing track, loading playlist as the active sequence.

        Returns:
            False if the track isn't playable yet (still processing or no URL)
        """
        if not track.is_playable:
            logger.info(f"Track {track.id} is not playable yet")
            return False

        tracks = list(playlist) if playlist is not None else [track]
        index = _index_of(tracks, track.id)
        if index is None:
            tracks = [track]
            index = 0

        self._playlist = tracks
        self._start(index)
        return True

    def _start(self, index: int) -> None:
        track = self._playlist[index]
        self._index = index
        self._current = track
        self._detached = False
        self._engine.load(track.playback_url)
        self._engine.seek(0.0)
        self._engine.play()
        self._playing = True
        logger.debug(f"Playing {track.title} ({index + 1}/{len(self._playlist)})")

    def pause(self) -> None:
        if self._playing:
            self._engine.pause()
            self._playing = False

    def resume(self) -> None:
        if self._current is not None and not self._playing:
            self._engine.play()
            self._playing = True

    def seek(self, seconds: float) -> None:
        if self._current is None:
            return
        self._engine.seek(max(0.0, seconds))

    def _step(self, start: int, direction: int) -> Optional[Track]:
        """Play the first playable track from start, moving in direction and wrapping."""
        count = len(self._playlist)
        for offset in range(count):
            index = (start + direction * offset) % count
            if self._playlist[index].is_playable:
                self._start(index)
                return self._current
        return None

    def next(self) -> Optional[Track]:
        """Advance to the next playable track, wrapping to the start."""
        if not self._playlist:
            return None
        start = self._index if self._detached else self._index + 1
        return self._step(start, 1)

    def previous(self) -> Optional[Track]:
        """Go back one playable track, or restart the current one after 3 s."""
        if self._current is not None and self.current_time > RESTART_THRESHOLD_SECONDS:
            self._engine.seek(0.0)
            return self._current
        if not self._playlist:
            return None
        return self._step(self._index - 1, -1)

    def on_track_end(self) -> Optional[Track]:
        """Engine callback when the current track finishes."""
        return self.next()

    def update_playlist(self, tracks: Sequence[Track]) -> None:
        """Replace the playlist, re-resolving the current index by track id."""
        self._playlist = list(tracks)
        if self._current is None:
            self._index = -1
            return

        index = _index_of(self._playlist, self._current.id)
        if index is not None:
            self._index = index
            self._current = self._playlist[index]
            self._detached = False
            return

        if not self._detached:
            logger.info(f"Current track {self._current.id} left the playlist; pausing")
        self.pause()
        self._detached = True
        self._index = max(0, min(self._index, len(self._playlist)))


def _index_of(tracks: Sequence[Track], track_id: str) -> Optional[int]:
    for i, track in enumerate(tracks):
        if track.id == track_id:
            return i
    return None
