"""Playback domain - the single playback cursor and audio engine seam."""

from .cursor import (
    RESTART_THRESHOLD_SECONDS,
    AudioEngine,
    PlaybackCursor,
    SilentEngine,
)

__all__ = [
    "RESTART_THRESHOLD_SECONDS",
    "AudioEngine",
    "PlaybackCursor",
    "SilentEngine",
]
