"""Tests for duration backfill."""

import httpx
import pytest

from album_keeper.domain.uploads.backfill import (
    DurationBackfiller,
    download_and_measure,
    needs_duration,
)
from factories import make_track


def measurer(values):
    calls = []

    async def measure(url):
        calls.append(url)
        return values.get(url)

    measure.calls = calls
    return measure


def test_needs_duration():
    assert needs_duration(make_track("a", duration="0:00"))
    assert needs_duration(make_track("a", duration=None))
    assert not needs_duration(make_track("a", duration=120))
    assert not needs_duration(make_track("a", processing=True))
    assert not needs_duration(make_track("a", playback_url=None))


@pytest.mark.anyio
async def test_measures_and_saves_missing_durations(gateway):
    a = make_track("a", duration="0:00")
    b = make_track("b", 1, duration=99)
    c = make_track("c", 2, duration=None)
    measure = measurer({a.playback_url: 200.5, c.playback_url: 31.0})
    backfiller = DurationBackfiller(gateway, measure=measure)

    saved = await backfiller.run("album-1", [a, b, c])

    assert saved == {"a": 200.5, "c": 31.0}
    assert measure.calls == [a.playback_url, c.playback_url]
    assert gateway.calls == [
        ("set_track_duration", "album-1", "a", 200.5),
        ("set_track_duration", "album-1", "c", 31.0),
    ]


@pytest.mark.anyio
async def test_each_track_attempted_once(gateway):
    a = make_track("a")
    measure = measurer({})
    backfiller = DurationBackfiller(gateway, measure=measure)

    await backfiller.run("album-1", [a])
    await backfiller.run("album-1", [a])

    assert measure.calls == [a.playback_url]
    assert gateway.calls == []


def test_requires_client_or_measure(gateway):
    with pytest.raises(ValueError):
        DurationBackfiller(gateway)


@pytest.mark.anyio
async def test_download_failure_gives_no_duration():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
    assert await download_and_measure(client, "https://archive.org/download/m/x.mp3") is None


@pytest.mark.anyio
async def test_undecodable_download_gives_no_duration():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"garbage"))
    )
    assert await download_and_measure(client, "https://archive.org/download/m/x.bin") is None
