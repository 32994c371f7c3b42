"""Track list domain - what an album view shows and how it changes.

This domain handles:
- The optimistic overlay of in-flight uploads
- Ordered insert/delete/reorder with cursor resync
- Readiness polling of processing tracks
"""

from .overlay import TrackOverlay, merge_tracks
from .controller import TrackListController, move_track, order_payload
from .poller import ReadinessPoller

__all__ = [
    "TrackOverlay",
    "merge_tracks",
    "TrackListController",
    "move_track",
    "order_payload",
    "ReadinessPoller",
]
