"""
Best-effort removal of uploaded files from the archive store.

Blocking (requests); call it from async code with asyncio.to_thread.
"""

from typing import Optional

import requests
from loguru import logger

from album_keeper.core.config import ArchiveConfig
from album_keeper.domain.archive.signing import file_key_from_url, identifier_from_url
from album_keeper.domain.models import ArchiveCredentials

REMOTE_DELETE_TIMEOUT_SECONDS = 30


def delete_remote_file(
    playback_url: Optional[str],
    credentials: Optional[ArchiveCredentials],
    config: Optional[ArchiveConfig] = None,
    session: Optional[requests.Session] = None,
) -> bool:
    """Delete the file behind a playback URL from the archive.

    Failures are logged and reported as False, never raised.

    Returns:
        True if the store accepted the delete
    """
    if credentials is None:
        logger.warning("Skipping remote delete: no archive credentials stored")
        return False

    identifier = identifier_from_url(playback_url)
    key = file_key_from_url(playback_url)
    if not identifier or not key:
        logger.warning(f"Skipping remote delete: not an archive URL: {playback_url}")
        return False

    config = config or ArchiveConfig()
    url = f"{config.s3_endpoint.rstrip('/')}/{identifier}/{key}"
    headers = {
        "Authorization": f"LOW {credentials.access_key}:{credentials.secret_key}",
        "x-archive-cascade-delete": "1",
    }

    http = session or requests
    try:
        response = http.delete(url, headers=headers, timeout=REMOTE_DELETE_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.error(f"Remote delete of {url} failed: {e}")
        return False

    if not response.ok:
        logger.error(
            f"Remote delete of {url} rejected: {response.status_code} {response.text[:200]}"
        )
        return False

    logger.info(f"Deleted {key} from archive item {identifier}")
    return True
