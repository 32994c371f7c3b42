"""
Upload workflow: from a selected file to a playable track.

select file -> signed target -> direct upload -> persist track -> overlay
entry removed -> readiness polling -> list insert -> cursor resync.

Failures are converted to notifications and returned; they never propagate.
The overlay entry is removed on every path.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

from album_keeper.core.config import UploadConfig
from album_keeper.domain.archive.transport import (
    ArchiveTransport,
    ProgressReporter,
    UploadSource,
    estimate_progress,
)
from album_keeper.domain.exceptions import AlbumKeeperError, PersistenceFailedError
from album_keeper.domain.models import DEFAULT_ARTIST, OverlayTrack, Track
from album_keeper.domain.scheduling import CancellationToken
from album_keeper.domain.tracklist.overlay import TrackOverlay
from album_keeper.domain.tracklist.poller import ReadinessPoller
from album_keeper.domain.uploads.api_client import ApiClient
from album_keeper.domain.uploads.notifications import Notification, Notifier

if TYPE_CHECKING:
    from album_keeper.domain.tracklist.controller import TrackListController

Sleep = Callable[[float], Awaitable[None]]


class UploadStage(str, Enum):
    PREPARING = "preparing"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    SAVING = "saving"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class UploadResult:
    track: Optional[Track] = None
    error: Optional[AlbumKeeperError] = None
    notification: Optional[Notification] = None

    @property
    def ok(self) -> bool:
        return self.track is not None and self.error is None


def read_audio_duration(file_path) -> Optional[float]:
    """Duration in seconds read with mutagen, or None if it can't be determined."""
    try:
        audio_file = MutagenFile(file_path)
    except (MutagenError, OSError) as e:
        logger.debug(f"Couldn't read duration of {file_path}: {e}")
        return None
    if audio_file is None or audio_file.info is None:
        return None
    length = getattr(audio_file.info, "length", None)
    if not length or length <= 0:
        return None
    return float(length)


class UploadWorkflow:
    """Runs track uploads for one session.

    Args:
        gateway: Backend client (issues targets, persists tracks)
        transport: Direct upload to the archive
        overlay: Where in-flight uploads are shown
        notifier: Where failures and completions are reported
        poller: Watches new tracks until the archive has processed them
        config: Progress policy
        sleep: Timer for the progress estimate
        duration_reader: Reads a local file's duration
    """

    def __init__(
        self,
        gateway: ApiClient,
        transport: ArchiveTransport,
        overlay: TrackOverlay,
        notifier: Notifier,
        poller: Optional[ReadinessPoller] = None,
        config: Optional[UploadConfig] = None,
        sleep: Sleep = asyncio.sleep,
        duration_reader: Callable[[Path], Optional[float]] = read_audio_duration,
    ):
        self._gateway = gateway
        self._transport = transport
        self._overlay = overlay
        self._notifier = notifier
        self._poller = poller
        self.config = config or transport.config
        self._sleep = sleep
        self._duration_reader = duration_reader

    async def _transfer(self, source, target, reporter: ProgressReporter, token):
        ticker = asyncio.create_task(
            estimate_progress(reporter, source.size, self.config, self._sleep)
        )
        try:
            return await self._transport.upload(source, target, token=token, reporter=reporter)
        finally:
            ticker.cancel()
            await asyncio.gather(ticker, return_exceptions=True)

    async def upload_track(
        self,
        album_id: str,
        source: UploadSource,
        title: Optional[str] = None,
        artist: Optional[str] = None,
        controller: Optional["TrackListController"] = None,
        token: Optional[CancellationToken] = None,
        on_stage: Optional[Callable[[UploadStage], None]] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> UploadResult:
        """Upload one file into an album.

        Returns:
            UploadResult with the persisted track, or the error and the
            notification published for it
        """
        token = token or CancellationToken()
        title = (title or Path(source.name).stem).strip()
        # callers stop hearing from this upload once the token is cancelled
        on_stage = token.guard(on_stage) if on_stage is not None else None
        on_progress = token.guard(on_progress) if on_progress is not None else None

        def stage(value: UploadStage) -> None:
            logger.debug(f"Upload of {source.name}: {value.value}")
            if on_stage is not None:
                on_stage(value)

        def progress(value: int) -> None:
            self._overlay.update(temp.id, upload_progress=value)
            if on_progress is not None:
                on_progress(value)

        temp = OverlayTrack(
            id=OverlayTrack.generate_id(),
            album_id=album_id,
            title=title,
            artist=artist or DEFAULT_ARTIST,
            order=len(controller.tracks) if controller else 0,
            file_name=source.name,
            created_at=datetime.now(timezone.utc),
        )
        self._overlay.add(temp)
        reporter = ProgressReporter(progress, token, self.config.transfer_progress_ceiling)

        try:
            stage(UploadStage.PREPARING)
            target = await self._gateway.issue_upload_target(
                source.name, source.content_type, title, artist or ""
            )

            stage(UploadStage.UPLOADING)
            receipt = await self._transfer(source, target, reporter, token)

            stage(UploadStage.PROCESSING)
            duration = None
            if source.path is not None:
                duration = await asyncio.to_thread(self._duration_reader, source.path)

            stage(UploadStage.SAVING)
            try:
                track = await self._gateway.create_track(
                    album_id,
                    title,
                    receipt.playback_url,
                    file_name=target.file_name or source.name,
                    artist=artist,
                    duration=duration,
                )
            except AlbumKeeperError as e:
                raise PersistenceFailedError(
                    f"File uploaded but the track couldn't be saved: {e.message}",
                    playback_url=receipt.playback_url,
                ) from e
        except AlbumKeeperError as e:
            self._overlay.remove(temp.id)
            stage(UploadStage.FAILED)
            return UploadResult(error=e, notification=self._notifier.error(e, "Upload failed"))

        self._overlay.remove(temp.id)
        if controller is not None and not token.cancelled:
            await controller.insert(track)
        if self._poller is not None:
            self._poller.watch([track])

        stage(UploadStage.COMPLETE)
        self._notifier.success(f"Uploaded {track.title}")
        return UploadResult(track=track)

    async def upload_cover(
        self, album_id: str, data: bytes, content_type: str
    ) -> Optional[str]:
        """Upload album art through the backend (retried). Returns the new cover URL."""
        try:
            response = await self._transport.upload_cover(
                self._gateway.url(self._gateway.cover_path(album_id)),
                data,
                content_type,
                headers=self._gateway.auth_headers,
            )
        except AlbumKeeperError as e:
            self._notifier.error(e, "Cover upload failed")
            return None
        return response.json().get("coverUrl")
