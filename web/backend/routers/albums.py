from fastapi import APIRouter, Depends, Request
from loguru import logger

from album_keeper.core.config import Config
from album_keeper.domain.library import albums as library
from ..deps import get_config, get_current_user, get_db, require_user
from ..schemas import CreateAlbumRequest, UndoRequest, UpdateAlbumRequest

router = APIRouter()


@router.get("/albums")
async def list_albums(user_id: str = Depends(require_user), db=Depends(get_db)):
    albums = library.list_albums(db, user_id)
    return {"albums": [album.to_api() for album in albums]}


@router.post("/albums")
async def create_album(
    body: CreateAlbumRequest, user_id: str = Depends(require_user), db=Depends(get_db)
):
    album = library.create_album(
        db,
        user_id,
        body.title,
        artist=body.artist,
        description=body.description,
        release_date=body.release_date,
        cover_url=body.cover_art,
    )
    return {"success": True, "album": album.to_api()}


# Declared before /albums/{album_id} so "trash" isn't taken for an id
@router.get("/albums/trash")
async def list_trash(
    user_id: str = Depends(require_user),
    db=Depends(get_db),
    config: Config = Depends(get_config),
):
    return {"deleted": library.list_trash(db, user_id, config.trash.max_entries)}


@router.post("/albums/undo")
async def undo_delete(
    body: UndoRequest, user_id: str = Depends(require_user), db=Depends(get_db)
):
    album = library.restore_album(db, body.album_id, user_id)
    return {"success": True, "album": album.to_api()}


@router.get("/albums/{album_id}")
async def get_album(album_id: str, user_id=Depends(get_current_user), db=Depends(get_db)):
    """Owner view, or a read-only view of a public album."""
    album, is_owned = library.get_album(db, album_id, user_id)
    return {**album.to_api(), "isOwned": is_owned}


@router.patch("/albums/{album_id}")
async def update_album(
    album_id: str,
    body: UpdateAlbumRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
):
    album = library.update_album(db, album_id, user_id, **body.model_dump(exclude_none=True))
    return {"success": True, "album": album.to_api()}


@router.delete("/albums/{album_id}")
async def delete_album(
    album_id: str,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
    config: Config = Depends(get_config),
):
    library.delete_album(db, album_id, user_id, config.trash.max_entries)
    return {"success": True, "albumId": album_id}


@router.post("/albums/{album_id}/cover")
async def upload_cover(
    album_id: str,
    request: Request,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
):
    """Raw image bytes in the body; stored inline as a data URL."""
    data = await request.body()
    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    cover_url = library.set_album_cover(db, album_id, user_id, data, content_type)
    return {"success": True, "coverUrl": cover_url}


@router.get("/share/{album_id}")
async def shared_album(album_id: str, db=Depends(get_db)):
    """Public album for anonymous listeners; private albums are 404."""
    album = library.get_public_album(db, album_id)
    logger.debug(f"Serving shared album {album_id}")
    return {**album.to_api(), "isOwned": False}
