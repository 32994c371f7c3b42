from fastapi import APIRouter, Depends

from album_keeper.domain.library import saved as library
from ..deps import get_current_user, get_db, require_user
from ..schemas import SavedAlbumRequest

router = APIRouter()


@router.get("/saved-albums")
async def list_saved_albums(user_id: str = Depends(require_user), db=Depends(get_db)):
    albums = library.list_saved_albums(db, user_id)
    return {"albums": [album.to_api() for album in albums]}


@router.post("/saved-albums")
async def save_album(
    body: SavedAlbumRequest, user_id: str = Depends(require_user), db=Depends(get_db)
):
    """Bookmark a shared album; saving it again is a no-op."""
    library.save_album(db, user_id, body.album_id)
    return {"success": True}


@router.delete("/saved-albums")
async def unsave_album(
    body: SavedAlbumRequest, user_id: str = Depends(require_user), db=Depends(get_db)
):
    library.unsave_album(db, user_id, body.album_id)
    return {"success": True}


@router.get("/check-saved-album/{album_id}")
async def check_saved_album(
    album_id: str, user_id=Depends(get_current_user), db=Depends(get_db)
):
    """Guests get isAuthenticated False rather than an error."""
    if user_id is None:
        return {"isAuthenticated": False, "isSaved": False}
    return {"isAuthenticated": True, "isSaved": library.is_album_saved(db, user_id, album_id)}
