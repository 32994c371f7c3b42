"""
Readiness probes for freshly uploaded archive files.

The archive accepts bytes before the file is retrievable. A HEAD request
against the playback URL tells whether it is ready yet; when the probe can't
get a definitive answer, a track is assumed ready once it is old enough.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import httpx
from loguru import logger

from album_keeper.domain.exceptions import ProbeInconclusiveError

# Assume ready after this long since creation when the probe keeps failing
READY_FALLBACK_SECONDS = 300.0
PROBE_TIMEOUT_SECONDS = 5.0


class ProbeOutcome(str, Enum):
    READY = "ready"
    NOT_READY = "not_ready"
    INCONCLUSIVE = "inconclusive"


async def _head(client: httpx.AsyncClient, url: str, timeout: float) -> int:
    try:
        response = await client.head(url, timeout=timeout, follow_redirects=False)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ProbeInconclusiveError(f"Probe of {url} failed: {e!r}") from e
    return response.status_code


async def probe_playback_url(
    client: httpx.AsyncClient,
    url: str,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> ProbeOutcome:
    """HEAD the playback URL.

    Success and redirect statuses (200-399) mean ready. Any other status means
    not ready yet. Network errors, timeouts and unparseable URLs are
    inconclusive. Never raises.
    """
    try:
        status = await _head(client, url, timeout)
    except ProbeInconclusiveError as e:
        logger.debug(e.message)
        return ProbeOutcome.INCONCLUSIVE

    if 200 <= status < 400:
        return ProbeOutcome.READY
    logger.debug(f"Probe of {url} returned {status}")
    return ProbeOutcome.NOT_READY


def resolve_readiness(
    outcome: ProbeOutcome,
    created_at: Optional[datetime],
    now: Optional[datetime] = None,
    fallback_after: float = READY_FALLBACK_SECONDS,
) -> bool:
    """Decide readiness from a probe outcome and the track's age.

    An inconclusive probe counts as ready once more than fallback_after
    seconds have passed since created_at.
    """
    if outcome is ProbeOutcome.READY:
        return True
    if outcome is ProbeOutcome.NOT_READY or created_at is None:
        return False

    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    elapsed = (now - created_at).total_seconds()
    return elapsed > fallback_after
