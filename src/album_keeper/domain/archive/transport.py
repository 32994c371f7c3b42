"""
Direct upload of audio files from the session to the archive store.

Track uploads stream the file with a PUT to a signed target and never retry.
Cover uploads are small and retried a fixed number of times.
"""

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx
from loguru import logger

from album_keeper.core.config import UploadConfig
from album_keeper.domain.archive.signing import UploadTarget
from album_keeper.domain.exceptions import UploadFailedError
from album_keeper.domain.scheduling import CancellationToken

ProgressCallback = Callable[[int], None]
Sleep = Callable[[float], Awaitable[None]]

AUDIO_MIME_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".opus": "audio/opus",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".wav": "audio/wav",
}


def get_mime_type(file_path: Path) -> str:
    """Pure function - deterministic MIME type detection."""
    mime = AUDIO_MIME_TYPES.get(file_path.suffix.lower())
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(str(file_path))
    return guessed or "application/octet-stream"


@dataclass
class UploadSource:
    """A file the user selected, either on disk or already in memory."""

    name: str
    size: int
    content_type: str
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> "UploadSource":
        path = Path(path)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            content_type=content_type or get_mime_type(path),
            path=path,
        )

    @classmethod
    def from_bytes(
        cls, name: str, data: bytes, content_type: Optional[str] = None
    ) -> "UploadSource":
        return cls(
            name=name,
            size=len(data),
            content_type=content_type or get_mime_type(Path(name)),
            data=data,
        )

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        if self.data is not None:
            for start in range(0, len(self.data), chunk_size):
                yield self.data[start : start + chunk_size]
            return
        if self.path is None:
            raise ValueError(f"Upload source {self.name} has no content")
        with open(self.path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                yield chunk


class ProgressReporter:
    """Forward upload progress (0-100) to a callback, never going backwards.

    Values are clamped to 0-100 and only strictly increasing values are
    forwarded. After the token is cancelled nothing is forwarded.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
        transfer_ceiling: int = 90,
    ):
        self._callback = callback
        self._token = token
        self.transfer_ceiling = transfer_ceiling
        self.value = 0

    def report(self, percent: float) -> None:
        if self._token is not None and self._token.cancelled:
            return
        percent = max(0, min(100, int(percent)))
        if percent <= self.value:
            return
        self.value = percent
        if self._callback is not None:
            self._callback(percent)

    def transferred(self, sent: int, total: int) -> None:
        """Map bytes sent onto 0..transfer_ceiling."""
        if total <= 0:
            self.report(self.transfer_ceiling)
            return
        self.report(min(sent, total) * self.transfer_ceiling // total)

    def acknowledged(self) -> None:
        """The store confirmed receipt."""
        self.report(100)


async def estimate_progress(
    reporter: ProgressReporter,
    size_bytes: int,
    config: Optional[UploadConfig] = None,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Advance progress on a client-side estimate until the transfer ceiling.

    Total estimated time is max(estimate_min_seconds, estimate_seconds_per_mb
    per MB). Runs until cancelled or the ceiling is reached.
    """
    config = config or UploadConfig()
    ceiling = reporter.transfer_ceiling
    estimate = max(
        config.estimate_min_seconds,
        (size_bytes / (1024 * 1024)) * config.estimate_seconds_per_mb,
    )
    steps = max(1, ceiling // config.estimate_step)
    interval = estimate / steps

    while reporter.value < ceiling:
        await sleep(interval)
        reporter.report(min(ceiling, reporter.value + config.estimate_step))


@dataclass
class UploadReceipt:
    """The store accepted the file."""

    playback_url: str
    identifier: str
    status_code: int = 200


class ArchiveTransport:
    """PUT files straight to signed archive targets using httpx.

    Args:
        client: Shared AsyncClient (tests inject one with a MockTransport).
            When omitted a client is created per request.
        config: Upload settings
        sleep: Delay function used between cover retries
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[UploadConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self.config = config or UploadConfig()
        self._sleep = sleep

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        async with httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds
        ) as client:
            return await client.request(method, url, **kwargs)

    async def upload(
        self,
        source: UploadSource,
        target: UploadTarget,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> UploadReceipt:
        """Stream a track to its signed target.

        Progress covers 0-90 while bytes are sent and jumps to 100 only when
        the store answers with a 2xx.

        Raises:
            UploadFailedError: Transport error or non-2xx answer (not retried)
        """
        if reporter is None:
            reporter = ProgressReporter(
                on_progress, token, self.config.transfer_progress_ceiling
            )
        chunk_size = self.config.chunk_size

        async def body() -> AsyncIterator[bytes]:
            sent = 0
            async for chunk in source.iter_chunks(chunk_size):
                sent += len(chunk)
                yield chunk
                reporter.transferred(sent, source.size)

        headers = dict(target.headers)
        headers["Content-Length"] = str(source.size)

        logger.info(
            f"Uploading {source.name} ({source.size} bytes) to {target.identifier}"
        )
        try:
            response = await self._send(
                "PUT", target.upload_url, content=body(), headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Upload of {source.name} failed: {e}")
            raise UploadFailedError(f"Upload failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"Archive rejected {source.name}: {response.status_code} {response.text[:500]}"
            )
            raise UploadFailedError(
                f"Upload failed with status {response.status_code}",
                store_status=response.status_code,
                response_body=response.text,
            )

        reporter.acknowledged()
        logger.info(f"Uploaded {source.name} to {target.playback_url}")
        return UploadReceipt(
            playback_url=target.playback_url,
            identifier=target.identifier,
            status_code=response.status_code,
        )

    async def upload_cover(
        self,
        url: str,
        data: bytes,
        content_type: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Upload cover art, retrying with a fixed delay.

        Raises:
            UploadFailedError: Every attempt failed
        """
        attempts = self.config.cover_max_attempts
        request_headers = {**(headers or {}), "Content-Type": content_type}
        last_status: Optional[int] = None
        last_body = ""

        for attempt in range(1, attempts + 1):
            try:
                response = await self._send(
                    "POST", url, content=data, headers=request_headers
                )
                if response.is_success:
                    return response
                last_status = response.status_code
                last_body = response.text
                logger.warning(
                    f"Cover upload attempt {attempt}/{attempts} got {response.status_code}"
                )
            except httpx.HTTPError as e:
                last_status = None
                last_body = str(e)
                logger.warning(f"Cover upload attempt {attempt}/{attempts} failed: {e}")

            if attempt < attempts:
                await self._sleep(self.config.cover_retry_delay_seconds)

        raise UploadFailedError(
            f"Cover upload failed after {attempts} attempts",
            store_status=last_status,
            response_body=last_body,
        )
