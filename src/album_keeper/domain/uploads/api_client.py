"""
Session-side gateway to the Album Keeper backend over HTTP (httpx).

Error bodies look like ``{"error": message, "type": ExceptionName}``; the
client raises the matching AlbumKeeperError subclass so session components
handle server and local failures the same way.
"""

from typing import Any, Dict, Iterable, Optional, Protocol

import httpx
from loguru import logger

from album_keeper.domain import exceptions
from album_keeper.domain.archive.signing import UploadTarget
from album_keeper.domain.exceptions import AlbumKeeperError
from album_keeper.domain.models import Album, Track, parse_timestamp

USER_HEADER = "X-User-Id"

_ERRORS_BY_TYPE: Dict[str, type[AlbumKeeperError]] = {
    cls.__name__: cls
    for cls in vars(exceptions).values()
    if isinstance(cls, type) and issubclass(cls, AlbumKeeperError)
}

_ERRORS_BY_STATUS: Dict[int, type[AlbumKeeperError]] = {
    400: exceptions.InvalidRequestError,
    401: exceptions.UnauthorizedError,
    404: exceptions.NotFoundError,
}


class TrackGateway(Protocol):
    """Track persistence operations the session relies on."""

    async def create_track(
        self,
        album_id: str,
        title: str,
        playback_url: str,
        file_name: Optional[str] = None,
        artist: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Track: ...

    async def delete_track(
        self, album_id: str, track_id: str, also_delete_remote: bool = False
    ) -> Dict[str, bool]: ...

    async def update_track_order(
        self, album_id: str, track_orders: Iterable[Dict[str, Any]]
    ) -> None: ...

    async def set_track_duration(
        self, album_id: str, track_id: str, seconds: float
    ) -> None: ...

    async def set_processing(self, track_id: str, processing: bool) -> None: ...


def error_from_response(response: httpx.Response) -> AlbumKeeperError:
    """Build the exception matching an error response."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = str(body.get("error") or f"Request failed with status {response.status_code}")
    error_cls = _ERRORS_BY_TYPE.get(str(body.get("type")))
    if error_cls is None:
        error_cls = _ERRORS_BY_STATUS.get(response.status_code, AlbumKeeperError)

    if error_cls is exceptions.UploadFailedError:
        return error_cls(message, store_status=response.status_code, response_body=response.text)
    return error_cls(message)


def album_from_api(data: Dict[str, Any], user_id: str = "") -> Album:
    album_id = str(data["id"])
    return Album(
        id=album_id,
        user_id=user_id,
        title=data.get("title") or "",
        artist=data.get("artist") or "",
        description=data.get("description") or "",
        release_date=data.get("releaseDate"),
        cover_url=data.get("coverUrl"),
        is_public=bool(data.get("isPublic", False)),
        created_at=parse_timestamp(data.get("createdAt")),
        updated_at=parse_timestamp(data.get("updatedAt")),
        tracks=[Track.from_api(track, album_id) for track in data.get("tracks", [])],
    )


class ApiClient:
    """HTTP implementation of TrackGateway plus the other backend calls.

    Args:
        base_url: Backend root, e.g. http://127.0.0.1:8000
        user_id: Identity sent with every request
        client: Pre-configured AsyncClient (tests pass one on an ASGITransport)
        timeout: Request timeout in seconds when the client is created here
    """

    def __init__(
        self,
        base_url: str,
        user_id: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    @property
    def auth_headers(self) -> Dict[str, str]:
        return {USER_HEADER: self.user_id} if self.user_id else {}

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {**self.auth_headers, **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(
                method, self.url(path), headers=headers, **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise AlbumKeeperError(f"Request failed: {e}") from e

        if not response.is_success:
            error = error_from_response(response)
            logger.debug(f"{method} {path} -> {response.status_code}: {error.message}")
            raise error
        if not response.content:
            return {}
        return response.json()

    # Archive

    async def issue_upload_target(
        self, file_name: str, content_type: str, title: str = "", artist: str = ""
    ) -> UploadTarget:
        data = await self._request(
            "POST",
            "/api/generate-ia-upload-url",
            json={
                "fileName": file_name,
                "contentType": content_type,
                "title": title,
                "artist": artist,
            },
        )
        return UploadTarget.from_api(data)

    async def credentials_status(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/ia-credentials")

    async def save_credentials(self, access_key: str, secret_key: str) -> None:
        await self._request(
            "POST",
            "/api/ia-credentials",
            json={"accessKey": access_key, "secretKey": secret_key},
        )

    async def check_ready(self, track_id: str, playback_url: str) -> bool:
        data = await self._request(
            "POST",
            "/api/check-ia-status",
            json={"trackId": track_id, "playbackUrl": playback_url},
        )
        return bool(data.get("ready"))

    # Albums

    async def list_albums(self) -> list[Album]:
        data = await self._request("GET", "/api/albums")
        return [album_from_api(album, self.user_id) for album in data.get("albums", [])]

    async def get_album(self, album_id: str) -> tuple[Album, bool]:
        """Returns (album, is_owned)."""
        data = await self._request("GET", f"/api/albums/{album_id}")
        is_owned = bool(data.get("isOwned"))
        return album_from_api(data, self.user_id if is_owned else ""), is_owned

    async def list_trash(self) -> list[Dict[str, Any]]:
        data = await self._request("GET", "/api/albums/trash")
        return data.get("deleted", [])

    async def restore_album(self, album_id: str) -> Album:
        data = await self._request("POST", "/api/albums/undo", json={"albumId": album_id})
        return album_from_api(data["album"], self.user_id)

    def cover_path(self, album_id: str) -> str:
        return f"/api/albums/{album_id}/cover"

    # Saved albums

    async def list_saved_albums(self) -> list[Album]:
        data = await self._request("GET", "/api/saved-albums")
        return [album_from_api(album) for album in data.get("albums", [])]

    async def save_album(self, album_id: str) -> None:
        await self._request("POST", "/api/saved-albums", json={"albumId": album_id})

    async def unsave_album(self, album_id: str) -> None:
        await self._request("DELETE", "/api/saved-albums", json={"albumId": album_id})

    async def is_album_saved(self, album_id: str) -> bool:
        data = await self._request("GET", f"/api/check-saved-album/{album_id}")
        return bool(data.get("isSaved"))

    # Tracks

    async def create_track(
        self,
        album_id: str,
        title: str,
        playback_url: str,
        file_name: Optional[str] = None,
        artist: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Track:
        payload: Dict[str, Any] = {
            "title": title,
            "playbackUrl": playback_url,
            "fileName": file_name,
        }
        if artist:
            payload["artist"] = artist
        if duration:
            payload["duration"] = duration
        data = await self._request("POST", f"/api/albums/{album_id}/tracks", json=payload)
        return Track.from_api(data["track"], album_id)

    async def delete_track(
        self, album_id: str, track_id: str, also_delete_remote: bool = False
    ) -> Dict[str, bool]:
        data = await self._request(
            "DELETE",
            f"/api/albums/{album_id}/tracks/{track_id}",
            json={"deleteFromIA": also_delete_remote},
        )
        return {
            "deleted": bool(data.get("deleted")),
            "remoteDeleted": bool(data.get("remoteDeleted")),
        }

    async def update_track_order(
        self, album_id: str, track_orders: Iterable[Dict[str, Any]]
    ) -> None:
        await self._request(
            "PATCH",
            f"/api/albums/{album_id}/tracks/reorder",
            json={"trackOrders": list(track_orders)},
        )

    async def set_track_duration(self, album_id: str, track_id: str, seconds: float) -> None:
        await self._request(
            "PATCH",
            f"/api/albums/{album_id}/tracks/{track_id}/duration",
            json={"duration": seconds},
        )

    async def set_processing(self, track_id: str, processing: bool) -> None:
        await self._request("PATCH", f"/api/tracks/{track_id}", json={"processing": processing})
