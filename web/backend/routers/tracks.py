import asyncio
from typing import Optional

from fastapi import APIRouter, Depends
from loguru import logger

from album_keeper.core.config import Config
from album_keeper.domain.archive.probe import probe_playback_url, resolve_readiness
from album_keeper.domain.archive.remote import delete_remote_file
from album_keeper.domain.library import tracks as library
from album_keeper.domain.library.albums import require_album_owner
from album_keeper.domain.library.credentials import get_credentials
from album_keeper.domain.models import TrackSource
from ..deps import get_config, get_db, get_probe_client, require_user
from ..schemas import (
    CheckStatusRequest,
    CreateTrackRequest,
    DeleteTrackRequest,
    DurationRequest,
    ReorderRequest,
    UpdateTrackRequest,
)

router = APIRouter()


@router.post("/albums/{album_id}/tracks")
async def create_track(
    album_id: str,
    body: CreateTrackRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
):
    track = library.create_track(
        db,
        album_id,
        user_id,
        body.title,
        body.playback_url,
        file_name=body.file_name,
        artist=body.artist,
        duration=body.duration,
        source=TrackSource.REMOTE_ARCHIVE,
    )
    return {"success": True, "track": track.to_api()}


# Declared before /tracks/{track_id} routes so "reorder" isn't taken for an id
@router.patch("/albums/{album_id}/tracks/reorder")
async def reorder_tracks(
    album_id: str,
    body: ReorderRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
):
    library.update_track_order(
        db, album_id, user_id, [order.model_dump() for order in body.track_orders]
    )
    return {"success": True}


@router.delete("/albums/{album_id}/tracks/{track_id}")
async def delete_track(
    album_id: str,
    track_id: str,
    body: Optional[DeleteTrackRequest] = None,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
    config: Config = Depends(get_config),
):
    """Delete a track, optionally removing its file from the archive first.

    The remote delete is best-effort and never blocks the local delete.
    """
    require_album_owner(db, album_id, user_id)
    remote_deleted = False

    if body is not None and body.delete_from_ia:
        track = library.get_track(db, track_id)
        if track is not None and track.album_id == album_id:
            remote_deleted = await asyncio.to_thread(
                delete_remote_file,
                track.playback_url,
                get_credentials(db, user_id),
                config.archive,
            )

    deleted = library.delete_track(db, album_id, track_id, user_id)
    return {"success": True, "deleted": deleted, "remoteDeleted": remote_deleted}


@router.patch("/albums/{album_id}/tracks/{track_id}/duration")
async def update_duration(
    album_id: str,
    track_id: str,
    body: DurationRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
):
    library.set_track_duration(db, album_id, track_id, user_id, body.duration)
    return {"success": True}


@router.patch("/tracks/{track_id}")
async def update_track(
    track_id: str,
    body: UpdateTrackRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
):
    library.get_owned_track(db, track_id, user_id)
    if body.playback_url is not None:
        library.set_playback_url(db, track_id, body.playback_url)
    if body.processing is not None:
        library.set_processing(db, track_id, body.processing)
    return {"success": True}


@router.post("/check-ia-status")
async def check_status(
    body: CheckStatusRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
    config: Config = Depends(get_config),
    client=Depends(get_probe_client),
):
    """Probe a processing track; mark it ready when the archive serves it
    (or when it's old enough and the probe can't tell)."""
    track = library.get_owned_track(db, body.track_id, user_id)
    if not track.processing:
        return {"ready": True}

    url = body.playback_url or track.playback_url
    if not url:
        return {"ready": False}

    outcome = await probe_playback_url(client, url, config.processing.probe_timeout_seconds)
    ready = resolve_readiness(
        outcome,
        track.created_at,
        fallback_after=config.processing.ready_fallback_seconds,
    )
    if ready:
        library.set_processing(db, track.id, False)
        logger.info(f"Track {track.id} ready ({outcome.value})")
    return {"ready": ready}
