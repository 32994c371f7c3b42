"""Tests for playback URL readiness probes."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from album_keeper.domain.archive.probe import (
    ProbeOutcome,
    probe_playback_url,
    resolve_readiness,
)

URL = "https://archive.org/download/music-1-abc/song.mp3"
NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.anyio
@pytest.mark.parametrize("status", [200, 204, 302, 399])
async def test_success_and_redirect_mean_ready(status):
    outcome = await probe_playback_url(client_for(lambda r: httpx.Response(status)), URL)
    assert outcome is ProbeOutcome.READY


@pytest.mark.anyio
@pytest.mark.parametrize("status", [403, 404, 500, 503])
async def test_other_statuses_mean_not_ready(status):
    outcome = await probe_playback_url(client_for(lambda r: httpx.Response(status)), URL)
    assert outcome is ProbeOutcome.NOT_READY


@pytest.mark.anyio
async def test_probe_uses_head_without_following_redirects():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(302, headers={"Location": "https://ia800.us.archive.org/x"})

    outcome = await probe_playback_url(client_for(handler), URL)

    assert outcome is ProbeOutcome.READY
    assert len(seen) == 1
    assert seen[0].method == "HEAD"


@pytest.mark.anyio
async def test_network_error_is_inconclusive():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    assert await probe_playback_url(client_for(handler), URL) is ProbeOutcome.INCONCLUSIVE


@pytest.mark.anyio
async def test_timeout_is_inconclusive():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    assert await probe_playback_url(client_for(handler), URL) is ProbeOutcome.INCONCLUSIVE


class TestResolveReadiness:
    def test_ready_probe_wins(self):
        assert resolve_readiness(ProbeOutcome.READY, NOW, now=NOW)

    def test_not_ready_ignores_age(self):
        old = NOW - timedelta(hours=2)
        assert not resolve_readiness(ProbeOutcome.NOT_READY, old, now=NOW)

    def test_inconclusive_young_track_stays_processing(self):
        young = NOW - timedelta(seconds=299)
        assert not resolve_readiness(ProbeOutcome.INCONCLUSIVE, young, now=NOW)

    def test_inconclusive_at_exactly_five_minutes_stays_processing(self):
        assert not resolve_readiness(
            ProbeOutcome.INCONCLUSIVE, NOW - timedelta(seconds=300), now=NOW
        )

    def test_inconclusive_old_track_assumed_ready(self):
        old = NOW - timedelta(seconds=301)
        assert resolve_readiness(ProbeOutcome.INCONCLUSIVE, old, now=NOW)

    def test_naive_created_at_treated_as_utc(self):
        old = (NOW - timedelta(minutes=10)).replace(tzinfo=None)
        assert resolve_readiness(ProbeOutcome.INCONCLUSIVE, old, now=NOW)

    def test_unknown_creation_time(self):
        assert not resolve_readiness(ProbeOutcome.INCONCLUSIVE, None, now=NOW)


@pytest.mark.anyio
async def test_unparseable_url_is_inconclusive():
    seen = []
    bad_url = "https://archive.org/download/music-1-abc/a\x01b.mp3"

    outcome = await probe_playback_url(client_for(seen.append), bad_url)

    assert outcome is ProbeOutcome.INCONCLUSIVE
    assert seen == []
