"""
Readiness polling for tracks the archive is still processing.

Every poll interval all pending tracks are probed concurrently; the loop
decides whether to continue only after every probe of the tick has finished.
A track that has been resolved once is never polled again in this session.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional

import httpx
from loguru import logger

from album_keeper.core.config import ProcessingConfig
from album_keeper.domain.archive.probe import (
    ProbeOutcome,
    probe_playback_url,
    resolve_readiness,
)
from album_keeper.domain.exceptions import AlbumKeeperError
from album_keeper.domain.models import Track
from album_keeper.domain.scheduling import CancellationToken
from album_keeper.domain.uploads.api_client import TrackGateway

Sleep = Callable[[float], Awaitable[None]]
Probe = Callable[[httpx.AsyncClient, str, float], Awaitable[ProbeOutcome]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadinessPoller:
    """Moves tracks from processing to ready.

    Args:
        gateway: Persists processing=False for ready tracks
        client: AsyncClient used for HEAD probes
        config: Interval, probe timeout and fallback age
        on_ready: Called with each track once it is ready and persisted
        sleep: Timer between ticks
        now: Clock used for the age fallback
        probe: Probe function (defaults to a HEAD request)
    """

    def __init__(
        self,
        gateway: TrackGateway,
        client: httpx.AsyncClient,
        config: Optional[ProcessingConfig] = None,
        on_ready: Optional[Callable[[Track], None]] = None,
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = _utc_now,
        probe: Probe = probe_playback_url,
    ):
        self._gateway = gateway
        self._client = client
        self.config = config or ProcessingConfig()
        self.on_ready = on_ready
        self._sleep = sleep
        self._now = now
        self._probe = probe
        self._pending: dict[str, Track] = {}
        self._checked: set[str] = set()

    @property
    def pending(self) -> list[Track]:
        return list(self._pending.values())

    @property
    def checked(self) -> frozenset[str]:
        return frozenset(self._checked)

    def watch(self, tracks: Iterable[Track]) -> int:
        """Start polling processing tracks that have a playback URL.

        Tracks already resolved in this session are skipped even when a
        refresh lists them again.

        Returns:
            Number of tracks newly admitted
        """
        admitted = 0
        for track in tracks:
            if not track.processing or not track.playback_url:
                continue
            if track.id in self._checked or track.id in self._pending:
                continue
            self._pending[track.id] = track
            admitted += 1
        if admitted:
            logger.debug(f"Watching {admitted} processing track(s)")
        return admitted

    async def _check(self, track: Track) -> bool:
        outcome = await self._probe(
            self._client, track.playback_url, self.config.probe_timeout_seconds
        )
        ready = resolve_readiness(
            outcome,
            track.created_at,
            now=self._now(),
            fallback_after=self.config.ready_fallback_seconds,
        )
        if not ready:
            return False
        if outcome is ProbeOutcome.INCONCLUSIVE:
            logger.info(f"Assuming track {track.id} is ready (probe inconclusive, old enough)")

        try:
            await self._gateway.set_processing(track.id, False)
        except AlbumKeeperError as e:
            logger.warning(f"Couldn't mark track {track.id} ready: {e.message}")
            return False
        return True

    async def check_once(self, token: Optional[CancellationToken] = None) -> list[Track]:
        """Probe every pending track concurrently and resolve the ready ones.

        Returns:
            Tracks that became ready in this tick
        """
        batch = self.pending
        if not batch:
            return []

        results = await asyncio.gather(
            *(self._check(track) for track in batch), return_exceptions=True
        )

        ready = []
        for track, is_ready in zip(batch, results):
            if isinstance(is_ready, Exception):
                logger.opt(exception=is_ready).warning(f"Readiness check of track {track.id} failed")
                continue
            if not is_ready:
                continue
            self._pending.pop(track.id, None)
            self._checked.add(track.id)
            ready.append(replace(track, processing=False))

        if token is not None and token.cancelled:
            return ready
        for track in ready:
            logger.info(f"Track {track.id} is ready")
            if self.on_ready is not None:
                self.on_ready(track)
        return ready

    async def run(self, token: Optional[CancellationToken] = None) -> None:
        """Poll until no tracks are pending or the token is cancelled."""
        token = token or CancellationToken()
        while self._pending and not token.cancelled:
            await self._sleep(self.config.poll_interval_seconds)
            if token.cancelled:
                break
            await self.check_once(token)
        logger.debug("Readiness polling stopped")
