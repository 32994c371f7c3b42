"""
Application session: the services every album view shares.

The overlay, playback cursor and notifier exist once per session and are
handed to each consumer.
"""

import asyncio
from typing import Optional

import httpx
from loguru import logger

from album_keeper.core.config import Config
from album_keeper.domain.archive.transport import ArchiveTransport
from album_keeper.domain.models import Track
from album_keeper.domain.playback.cursor import AudioEngine, PlaybackCursor
from album_keeper.domain.scheduling import CancellationToken
from album_keeper.domain.tracklist.controller import TrackListController
from album_keeper.domain.tracklist.overlay import TrackOverlay
from album_keeper.domain.tracklist.poller import ReadinessPoller
from album_keeper.domain.uploads.api_client import ApiClient
from album_keeper.domain.uploads.backfill import DurationBackfiller
from album_keeper.domain.uploads.notifications import Notifier
from album_keeper.domain.uploads.workflow import UploadWorkflow


class Session:
    """Wires session services together.

    Args:
        config: Loaded configuration
        api: Backend client (defaults to config.client settings)
        http: AsyncClient for the archive (uploads and probes)
        engine: Audio output for the cursor
    """

    def __init__(
        self,
        config: Config,
        api: Optional[ApiClient] = None,
        http: Optional[httpx.AsyncClient] = None,
        engine: Optional[AudioEngine] = None,
    ):
        self.config = config
        self.api = api or ApiClient(config.client.api_base_url, config.client.user_id)
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=config.uploads.request_timeout_seconds)

        self.overlay = TrackOverlay()
        self.cursor = PlaybackCursor(engine)
        self.notifier = Notifier()
        self.token = CancellationToken()

        self.transport = ArchiveTransport(self.http, config.uploads)
        self.poller = ReadinessPoller(
            self.api, self.http, config.processing, on_ready=self._track_ready
        )
        self.workflow = UploadWorkflow(
            self.api, self.transport, self.overlay, self.notifier, self.poller, config.uploads
        )
        self.backfiller = DurationBackfiller(self.api, client=self.http)
        self.controllers: dict[str, TrackListController] = {}
        self._poll_task: Optional[asyncio.Task] = None

    def _track_ready(self, track: Track) -> None:
        controller = self.controllers.get(track.album_id)
        if controller is not None:
            controller.mark_ready(track.id)

    async def open_album(self, album_id: str) -> TrackListController:
        """Load an album and build its track list view (read-only for non-owners)."""
        album, is_owned = await self.api.get_album(album_id)
        controller = TrackListController(
            album_id,
            album.tracks,
            self.api,
            self.cursor,
            overlay=self.overlay,
            notifier=self.notifier,
            is_guest=not is_owned,
            config=self.config.tracklist,
        )
        self.controllers[album_id] = controller
        self.poller.watch(album.tracks)
        return controller

    def start_polling(self) -> asyncio.Task:
        """Run the readiness poller in the background (restarting it if it stopped)."""
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self.poller.run(self.token))
            self.token.on_cancel(self._poll_task.cancel)
        return self._poll_task

    async def aclose(self) -> None:
        self.token.cancel()
        if self._poll_task is not None:
            await asyncio.gather(self._poll_task, return_exceptions=True)
        await self.api.aclose()
        if self._owns_http:
            await self.http.aclose()
        logger.debug("Session closed")

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
