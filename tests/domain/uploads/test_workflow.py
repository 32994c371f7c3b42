"""Tests for the upload workflow."""

import asyncio

import httpx
import pytest

from album_keeper.core.config import UploadConfig
from album_keeper.domain.archive.signing import UploadTarget
from album_keeper.domain.archive.transport import ArchiveTransport, UploadSource
from album_keeper.domain.exceptions import (
    PersistenceFailedError,
    UploadFailedError,
)
from album_keeper.domain.scheduling import CancellationToken
from album_keeper.domain.playback.cursor import PlaybackCursor
from album_keeper.domain.tracklist.controller import TrackListController
from album_keeper.domain.tracklist.overlay import TrackOverlay
from album_keeper.domain.tracklist.poller import ReadinessPoller
from album_keeper.domain.uploads.notifications import Notifier
from album_keeper.domain.uploads.workflow import (
    UploadStage,
    UploadWorkflow,
    read_audio_duration,
)
from factories import FakeGateway, make_track, no_sleep

BUCKET = "music-1700000000000-abc123"


class FakeApi(FakeGateway):
    """Backend double that also signs upload targets and serves cover URLs."""

    base_url = "http://api.test"
    auth_headers = {"X-User-Id": "alice"}

    async def issue_upload_target(self, file_name, content_type, title="", artist=""):
        self.calls.append(("issue_upload_target", file_name, content_type, title))
        return UploadTarget(
            upload_url=f"https://s3.us.archive.org/{BUCKET}/{file_name}",
            headers={"Authorization": "LOW a:b", "Content-Type": content_type},
            playback_url=f"https://archive.org/download/{BUCKET}/{file_name}",
            details_url=f"https://archive.org/details/{BUCKET}",
            identifier=BUCKET,
            file_name=file_name,
        )

    def url(self, path):
        return f"{self.base_url}{path}"

    def cover_path(self, album_id):
        return f"/api/albums/{album_id}/cover"


async def yielding_sleep(seconds):
    await asyncio.sleep(0)


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def overlay():
    return TrackOverlay()


@pytest.fixture
def notifier():
    return Notifier()


def build(api, overlay, notifier, handler, poller=None, sleep=yielding_sleep, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = ArchiveTransport(client, UploadConfig(chunk_size=1024), sleep=sleep)
    return UploadWorkflow(
        api, transport, overlay, notifier, poller=poller, sleep=sleep, **kwargs
    )


@pytest.mark.anyio
async def test_successful_upload_lifecycle(api, overlay, notifier):
    in_flight = {}

    def handler(request):
        in_flight["entries"] = [
            (t.album_id, t.title, t.is_uploading) for t in overlay.tracks_for_album("album-1")
        ]
        return httpx.Response(200)

    cursor = PlaybackCursor()
    controller = TrackListController(
        "album-1", [make_track("a", 0)], api, cursor, overlay=overlay, sleep=no_sleep
    )
    poller = ReadinessPoller(api, client=None)
    stages, progress = [], []
    workflow = build(api, overlay, notifier, handler, poller=poller)

    result = await workflow.upload_track(
        "album-1",
        UploadSource.from_bytes("My Song.mp3", b"x" * 5000),
        controller=controller,
        on_stage=stages.append,
        on_progress=progress.append,
    )

    assert result.ok
    assert in_flight["entries"] == [("album-1", "My Song", True)]
    assert len(overlay) == 0
    assert stages == [
        UploadStage.PREPARING,
        UploadStage.UPLOADING,
        UploadStage.PROCESSING,
        UploadStage.SAVING,
        UploadStage.COMPLETE,
    ]
    assert progress[-1] == 100
    assert progress == sorted(progress)
    assert [t.id for t in controller.tracks] == ["a", "server-1"]
    assert controller.tracks[-1].order == 1
    assert [t.id for t in poller.pending] == ["server-1"]
    assert api.names() == ["issue_upload_target", "create_track", "update_track_order"]
    assert api.calls[1][3] == f"https://archive.org/download/{BUCKET}/My Song.mp3"
    assert notifier.history[-1].level == "success"


@pytest.mark.anyio
async def test_cancelled_upload_stops_reporting(api, overlay, notifier):
    token = CancellationToken()

    def handler(request):
        token.cancel()
        return httpx.Response(200)

    controller = TrackListController("album-1", [], api, PlaybackCursor(), sleep=no_sleep)
    stages, progress = [], []
    workflow = build(api, overlay, notifier, handler)

    result = await workflow.upload_track(
        "album-1",
        UploadSource.from_bytes("s.mp3", b"x" * 5000),
        controller=controller,
        token=token,
        on_stage=stages.append,
        on_progress=progress.append,
    )

    assert result.ok
    assert stages == [UploadStage.PREPARING, UploadStage.UPLOADING]
    assert 100 not in progress
    assert controller.tracks == []


@pytest.mark.anyio
async def test_duration_read_from_local_file(api, overlay, notifier, tmp_path):
    path = tmp_path / "song.flac"
    path.write_bytes(b"f" * 100)
    workflow = build(
        api, overlay, notifier, lambda r: httpx.Response(200), duration_reader=lambda p: 187.0
    )

    result = await workflow.upload_track("album-1", UploadSource.from_path(path))

    assert result.track.duration == 187.0
    assert result.track.title == "song"


@pytest.mark.anyio
async def test_store_rejection_removes_overlay_entry(api, overlay, notifier):
    stages = []
    workflow = build(
        api, overlay, notifier, lambda r: httpx.Response(403, text="<Error>AccessDenied</Error>")
    )

    result = await workflow.upload_track(
        "album-1", UploadSource.from_bytes("s.mp3", b"x" * 10), on_stage=stages.append
    )

    assert not result.ok
    assert isinstance(result.error, UploadFailedError)
    assert len(overlay) == 0
    assert stages[-1] is UploadStage.FAILED
    assert "create_track" not in api.names()
    assert "AccessDenied" in result.notification.details
    assert notifier.history[-1].error_type == "UploadFailedError"


@pytest.mark.anyio
async def test_save_failure_reports_orphaned_file(api, overlay, notifier):
    api.fail_create = True
    workflow = build(api, overlay, notifier, lambda r: httpx.Response(200))

    result = await workflow.upload_track("album-1", UploadSource.from_bytes("s.mp3", b"x"))

    assert isinstance(result.error, PersistenceFailedError)
    assert result.error.playback_url == f"https://archive.org/download/{BUCKET}/s.mp3"
    assert result.notification.details == f"Orphaned file: {result.error.playback_url}"
    assert len(overlay) == 0


@pytest.mark.anyio
async def test_cover_upload_returns_new_url(api, overlay, notifier):
    seen = []

    def handler(request):
        seen.append((str(request.url), request.headers["X-User-Id"]))
        return httpx.Response(200, json={"success": True, "coverUrl": "data:image/png;base64,AA=="})

    workflow = build(api, overlay, notifier, handler)

    cover = await workflow.upload_cover("album-1", b"png", "image/png")

    assert cover == "data:image/png;base64,AA=="
    assert seen == [("http://api.test/api/albums/album-1/cover", "alice")]


@pytest.mark.anyio
async def test_cover_upload_failure_notifies(api, overlay, notifier, sleeps):
    workflow = build(api, overlay, notifier, lambda r: httpx.Response(500), sleep=sleeps)

    assert await workflow.upload_cover("album-1", b"png", "image/png") is None
    assert sleeps.recorded == [1.0, 1.0]
    assert notifier.history[-1].title == "Cover upload failed"


def test_unreadable_audio_has_no_duration(tmp_path):
    path = tmp_path / "notes.bin"
    path.write_bytes(b"not audio at all")
    assert read_audio_duration(path) is None
    assert read_audio_duration(tmp_path / "missing.mp3") is None
