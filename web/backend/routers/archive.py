from fastapi import APIRouter, Depends
from loguru import logger

from album_keeper.core.config import Config
from album_keeper.domain.archive.signing import UploadRequest, issue_upload_target
from album_keeper.domain.library.credentials import (
    delete_credentials,
    get_credentials,
    save_credentials,
)
from ..deps import get_config, get_current_user, get_db, require_user
from ..schemas import CredentialsRequest, UploadUrlRequest

router = APIRouter()


@router.get("/ia-credentials")
async def credentials_status(user_id=Depends(get_current_user), db=Depends(get_db)):
    """Whether the caller has archive keys on file (the secret is never returned)."""
    if user_id is None:
        return {"hasCredentials": False}
    credentials = get_credentials(db, user_id)
    if credentials is None:
        return {"hasCredentials": False}
    return {"hasCredentials": True, "accessKey": credentials.access_key}


@router.post("/ia-credentials")
async def store_credentials(
    body: CredentialsRequest, user_id: str = Depends(require_user), db=Depends(get_db)
):
    save_credentials(db, user_id, body.access_key, body.secret_key)
    return {"success": True}


@router.delete("/ia-credentials")
async def remove_credentials(user_id: str = Depends(require_user), db=Depends(get_db)):
    delete_credentials(db, user_id)
    return {"success": True}


@router.post("/generate-ia-upload-url")
async def generate_upload_url(
    body: UploadUrlRequest,
    user_id: str = Depends(require_user),
    db=Depends(get_db),
    config: Config = Depends(get_config),
):
    """Sign a one-time direct upload target for the caller's archive account."""
    target = issue_upload_target(
        UploadRequest(
            file_name=body.file_name or "",
            content_type=body.content_type or "",
            title=body.title,
            artist=body.artist,
        ),
        get_credentials(db, user_id),
        config.archive,
    )
    logger.info(f"Issued upload target {target.identifier} for {user_id}")
    return {"success": True, **target.to_api()}
