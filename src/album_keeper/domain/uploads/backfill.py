"""
Duration backfill for tracks whose length wasn't known at upload time.

Each track is measured at most once per session.
"""

import asyncio
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional
from urllib.parse import urlparse

import httpx
from loguru import logger

from album_keeper.domain.exceptions import AlbumKeeperError
from album_keeper.domain.models import Track
from album_keeper.domain.uploads.api_client import TrackGateway
from album_keeper.domain.uploads.workflow import read_audio_duration

Measure = Callable[[str], Awaitable[Optional[float]]]


def needs_duration(track: Track) -> bool:
    """Ready, has a URL, and no real duration yet."""
    if track.processing or not track.playback_url:
        return False
    seconds = track.duration_seconds
    return seconds is None or seconds <= 0


async def download_and_measure(client: httpx.AsyncClient, url: str) -> Optional[float]:
    """Download a playback URL to a temp file and read its duration with mutagen."""
    suffix = Path(urlparse(url).path).suffix
    with tempfile.TemporaryDirectory(prefix="album-keeper-") as tmp_dir:
        tmp_path = Path(tmp_dir) / f"track{suffix}"
        try:
            async with client.stream("GET", url, follow_redirects=True) as response:
                response.raise_for_status()
                with open(tmp_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            logger.warning(f"Couldn't download {url} to measure duration: {e}")
            return None
        return await asyncio.to_thread(read_audio_duration, tmp_path)


class DurationBackfiller:
    """Measures and stores durations for an album's tracks.

    Args:
        gateway: Persists measured durations
        client: AsyncClient used by the default measurer
        measure: Replaces the download-and-read measurer
    """

    def __init__(
        self,
        gateway: TrackGateway,
        client: Optional[httpx.AsyncClient] = None,
        measure: Optional[Measure] = None,
    ):
        if measure is None and client is None:
            raise ValueError("DurationBackfiller needs a client or a measure function")
        self._gateway = gateway
        self._client = client
        self._measure = measure
        self._attempted: set[str] = set()

    async def _measure_url(self, url: str) -> Optional[float]:
        if self._measure is not None:
            return await self._measure(url)
        return await download_and_measure(self._client, url)

    async def run(self, album_id: str, tracks: Iterable[Track]) -> dict[str, float]:
        """Measure every track that needs a duration and hasn't been tried.

        Returns:
            Mapping of track id -> seconds for durations that were saved
        """
        saved: dict[str, float] = {}
        for track in tracks:
            if track.id in self._attempted or not needs_duration(track):
                continue
            self._attempted.add(track.id)

            seconds = await self._measure_url(track.playback_url)
            if not seconds:
                continue
            try:
                await self._gateway.set_track_duration(album_id, track.id, seconds)
            except AlbumKeeperError as e:
                logger.warning(f"Couldn't save duration of track {track.id}: {e.message}")
                continue
            saved[track.id] = seconds
            logger.info(f"Backfilled duration of {track.title}: {seconds:.1f}s")
        return saved
