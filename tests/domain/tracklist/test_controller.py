"""Tests for the ordered track list controller."""

import asyncio

import pytest

from album_keeper.domain.exceptions import InvalidRequestError, ReadOnlyViewError
from album_keeper.domain.models import OverlayTrack
from album_keeper.domain.playback.cursor import PlaybackCursor
from album_keeper.domain.tracklist.controller import TrackListController, move_track
from album_keeper.domain.tracklist.overlay import TrackOverlay
from album_keeper.domain.uploads.notifications import Notifier
from factories import make_track, no_sleep


def abc():
    return [make_track("a", 0), make_track("b", 1), make_track("c", 2)]


@pytest.fixture
def cursor():
    return PlaybackCursor()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def controller(gateway, cursor, notifier):
    return TrackListController(
        "album-1", abc(), gateway, cursor, overlay=TrackOverlay(), notifier=notifier,
        sleep=no_sleep,
    )


def ids(tracks):
    return [t.id for t in tracks]


def test_move_track_renumbers():
    moved = move_track(abc(), 0, 2)
    assert ids(moved) == ["b", "c", "a"]
    assert [t.order for t in moved] == [0, 1, 2]


class TestDelete:
    @pytest.mark.anyio
    async def test_removes_and_renumbers(self, controller, gateway, cursor):
        controller.play("a")

        assert await controller.delete("b") is True

        assert ids(controller.tracks) == ["a", "c"]
        assert [t.order for t in controller.tracks] == [0, 1]
        assert ids(cursor.playlist) == ["a", "c"]
        assert cursor.index == 0
        assert gateway.calls == [("delete_track", "album-1", "b", False)]

    @pytest.mark.anyio
    async def test_track_stays_listed_during_animation(self, gateway, cursor):
        seen = []
        controller = None

        async def watching_sleep(seconds):
            seen.append((seconds, controller.deleting_id, ids(controller.tracks), gateway.names()))

        controller = TrackListController("album-1", abc(), gateway, cursor, sleep=watching_sleep)
        await controller.delete("b", also_delete_remote=True)

        assert seen == [(0.3, "b", ["a", "b", "c"], [])]
        assert controller.deleting_id is None
        assert gateway.calls[-1] == ("delete_track", "album-1", "b", True)

    @pytest.mark.anyio
    async def test_cursor_resynced_before_gateway_call(self, controller, gateway, cursor):
        controller.play("c")
        seen = []
        original = gateway.delete_track

        async def recording_delete(*args):
            seen.append((ids(cursor.playlist), cursor.index))
            return await original(*args)

        gateway.delete_track = recording_delete
        await controller.delete("a")

        assert seen == [(["b", "c"], 1)]

    @pytest.mark.anyio
    async def test_deleting_playing_track_pauses(self, controller, cursor):
        controller.play("b")
        await controller.delete("b")

        assert cursor.is_playing is False
        assert cursor.current_track.id == "b"
        assert cursor.is_detached

    @pytest.mark.anyio
    async def test_failure_restores_track_and_notifies(self, controller, gateway, cursor, notifier):
        controller.play("a")
        gateway.fail_delete = True

        assert await controller.delete("b") is False

        assert ids(controller.tracks) == ["a", "b", "c"]
        assert [t.order for t in controller.tracks] == [0, 1, 2]
        assert ids(cursor.playlist) == ["a", "b", "c"]
        assert notifier.history[-1].level == "error"
        assert notifier.history[-1].title == "Couldn't delete track"

    @pytest.mark.anyio
    async def test_failure_keeps_tracks_added_meanwhile(self, gateway, cursor):
        controller = None

        async def sleep_then_refresh(seconds):
            controller.replace_tracks([*abc(), make_track("d", 3)])

        controller = TrackListController(
            "album-1", abc(), gateway, cursor, sleep=sleep_then_refresh
        )
        gateway.fail_delete = True

        await controller.delete("b")

        assert ids(controller.tracks) == ["a", "b", "c", "d"]

    @pytest.mark.anyio
    async def test_unknown_track(self, controller, gateway):
        assert await controller.delete("zzz") is False
        assert gateway.calls == []

    @pytest.mark.anyio
    async def test_overlapping_deletes_keep_latest_marker(self, gateway, cursor):
        releases = []

        async def held_sleep(seconds):
            release = asyncio.Event()
            releases.append(release)
            await release.wait()

        controller = TrackListController("album-1", abc(), gateway, cursor, sleep=held_sleep)
        first = asyncio.create_task(controller.delete("a"))
        await asyncio.sleep(0)
        second = asyncio.create_task(controller.delete("b"))
        await asyncio.sleep(0)
        assert controller.deleting_id == "b"

        releases[0].set()
        await first

        assert controller.deleting_id == "b"
        assert not controller.can_drag(controller.get("b"))

        releases[1].set()
        await second

        assert controller.deleting_id is None
        assert ids(controller.tracks) == ["c"]


class TestReorder:
    @pytest.mark.anyio
    async def test_persists_full_order(self, controller, gateway):
        assert await controller.reorder(2, 0) is True

        assert ids(controller.tracks) == ["c", "a", "b"]
        assert gateway.calls == [
            (
                "update_track_order",
                "album-1",
                [{"id": "c", "order": 0}, {"id": "a", "order": 1}, {"id": "b", "order": 2}],
            )
        ]

    @pytest.mark.anyio
    async def test_cursor_follows_playing_track(self, controller, cursor):
        controller.play("a")
        await controller.reorder(0, 2)

        assert cursor.current_track.id == "a"
        assert cursor.index == 2
        assert cursor.is_playing

    @pytest.mark.anyio
    async def test_rejected_reorder_rolls_back(self, controller, gateway, cursor, notifier):
        before = list(controller.tracks)
        controller.play("b")
        gateway.fail_reorder = True

        assert await controller.reorder(0, 2) is False

        assert controller.tracks == before
        assert cursor.current_track.id == "b"
        assert cursor.index == 1
        assert notifier.history[-1].error_type == "ReorderRejectedError"

    @pytest.mark.anyio
    async def test_rollback_after_interleaved_delete_stays_dense(
        self, controller, gateway, cursor, notifier
    ):
        release = asyncio.Event()
        original = gateway.update_track_order

        async def held_then_rejected(album_id, track_orders):
            await release.wait()
            gateway.fail_reorder = True
            try:
                await original(album_id, track_orders)
            finally:
                gateway.fail_reorder = False

        gateway.update_track_order = held_then_rejected
        reorder = asyncio.create_task(controller.reorder(0, 2))
        await asyncio.sleep(0)

        assert await controller.delete("b") is True
        release.set()
        assert await reorder is False

        assert ids(controller.tracks) == ["a", "c"]
        assert [t.order for t in controller.tracks] == [0, 1]
        assert notifier.history[-1].error_type == "ReorderRejectedError"

        gateway.update_track_order = original
        await controller.insert(make_track("d", 9))
        assert gateway.calls[-1][2] == [
            {"id": "a", "order": 0},
            {"id": "c", "order": 1},
            {"id": "d", "order": 2},
        ]

    @pytest.mark.anyio
    async def test_processing_track_cannot_move(self, gateway, cursor):
        tracks = [make_track("a", 0, processing=True), make_track("b", 1)]
        controller = TrackListController("album-1", tracks, gateway, cursor, sleep=no_sleep)

        assert await controller.reorder(0, 1) is False
        assert gateway.calls == []

    @pytest.mark.anyio
    async def test_out_of_range(self, controller):
        with pytest.raises(InvalidRequestError):
            await controller.reorder(0, 5)

    @pytest.mark.anyio
    async def test_same_position_is_noop(self, controller, gateway):
        assert await controller.reorder(1, 1) is True
        assert gateway.calls == []


class TestGuest:
    @pytest.fixture
    def guest(self, gateway, cursor):
        return TrackListController("album-1", abc(), gateway, cursor, is_guest=True, sleep=no_sleep)

    @pytest.mark.anyio
    async def test_mutations_rejected_without_network(self, guest, gateway):
        with pytest.raises(ReadOnlyViewError):
            await guest.delete("a")
        with pytest.raises(ReadOnlyViewError):
            await guest.reorder(0, 1)
        with pytest.raises(ReadOnlyViewError):
            await guest.insert(make_track("d", 3))
        assert gateway.calls == []
        assert ids(guest.tracks) == ["a", "b", "c"]

    def test_guest_can_play_but_not_drag(self, guest, cursor):
        assert guest.play("a") is True
        assert cursor.current_track.id == "a"
        assert not any(guest.can_drag(t) for t in guest.tracks)


class TestDisplay:
    def test_overlay_tracks_follow_server_tracks(self, gateway, cursor):
        overlay = TrackOverlay()
        overlay.add(OverlayTrack(id="temp-1", album_id="album-1", title="up"))
        overlay.add(OverlayTrack(id="temp-2", album_id="album-2", title="other"))
        controller = TrackListController("album-1", abc(), gateway, cursor, overlay=overlay)

        assert ids(controller.display_tracks()) == ["a", "b", "c", "temp-1"]
        assert not controller.can_drag(overlay.get("temp-1"))

    @pytest.mark.anyio
    async def test_insert_appends_and_persists_order(self, controller, gateway):
        await controller.insert(make_track("d", 7))

        assert ids(controller.tracks) == ["a", "b", "c", "d"]
        assert controller.tracks[-1].order == 3
        assert gateway.names() == ["update_track_order"]

    def test_mark_ready_updates_playlist(self, gateway, cursor):
        tracks = [make_track("a", 0), make_track("b", 1, processing=True)]
        controller = TrackListController("album-1", tracks, gateway, cursor)
        controller.play("a")

        controller.mark_ready("b")

        assert controller.get("b").processing is False
        assert cursor.playlist[1].is_playable
