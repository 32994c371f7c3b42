"""Tests for albums, sharing and the trash buffer."""

import pytest

from album_keeper.domain.exceptions import InvalidRequestError, NotFoundError
from album_keeper.domain.library import albums, tracks


def add_track(db, album, title):
    return tracks.create_track(
        db, album.id, album.user_id, title, f"https://archive.org/download/m-1-a/{title}.mp3"
    )


class TestAlbums:
    def test_create_defaults(self, db):
        album = albums.create_album(db, "alice", "  Debut  ")
        assert album.title == "Debut"
        assert album.artist == "Unknown Artist"
        assert album.is_public is False
        assert album.tracks == []

    def test_title_required(self, db):
        with pytest.raises(InvalidRequestError):
            albums.create_album(db, "alice", "")

    def test_list_only_own_albums(self, db):
        albums.create_album(db, "alice", "A")
        albums.create_album(db, "bob", "B")
        assert [a.title for a in albums.list_albums(db, "alice")] == ["A"]

    def test_private_album_hidden_from_others(self, db):
        album = albums.create_album(db, "alice", "A")
        with pytest.raises(NotFoundError):
            albums.get_album(db, album.id, "bob")

    def test_public_album_visible_read_only(self, db):
        album = albums.create_album(db, "alice", "A")
        albums.update_album(db, album.id, "alice", is_public=True)

        shared, is_owned = albums.get_album(db, album.id, "bob")
        assert shared.id == album.id
        assert is_owned is False
        assert albums.get_public_album(db, album.id).title == "A"

    def test_owner_flag(self, db):
        album = albums.create_album(db, "alice", "A")
        _, is_owned = albums.get_album(db, album.id, "alice")
        assert is_owned is True

    def test_update_ignores_unknown_fields(self, db):
        album = albums.create_album(db, "alice", "A")
        updated = albums.update_album(
            db, album.id, "alice", description="liner notes", bogus="x", artist=None
        )
        assert updated.description == "liner notes"
        assert updated.artist == "Unknown Artist"

    def test_update_rejects_empty_title(self, db):
        album = albums.create_album(db, "alice", "A")
        with pytest.raises(InvalidRequestError):
            albums.update_album(db, album.id, "alice", title="  ")

    def test_cover_stored_as_data_url(self, db):
        album = albums.create_album(db, "alice", "A")
        cover = albums.set_album_cover(db, album.id, "alice", b"\x89PNG", "image/png")
        assert cover == "data:image/png;base64,iVBORw=="
        assert albums.get_album(db, album.id, "alice")[0].cover_url == cover

    def test_cover_must_be_image(self, db):
        album = albums.create_album(db, "alice", "A")
        with pytest.raises(InvalidRequestError):
            albums.set_album_cover(db, album.id, "alice", b"abc", "audio/mpeg")


class TestTrash:
    def test_delete_moves_album_and_tracks_to_trash(self, db):
        album = albums.create_album(db, "alice", "A")
        add_track(db, album, "one")

        albums.delete_album(db, album.id, "alice")

        with pytest.raises(NotFoundError):
            albums.get_album(db, album.id, "alice")
        assert tracks.list_tracks(db, album.id) == []
        trash = albums.list_trash(db, "alice")
        assert [entry["id"] for entry in trash] == [album.id]
        assert len(trash[0]["tracks"]) == 1
        assert trash[0]["deletedAt"]

    def test_trash_keeps_ten_newest_first(self, db):
        ids = []
        for n in range(12):
            album = albums.create_album(db, "alice", f"Album {n}")
            albums.delete_album(db, album.id, "alice")
            ids.append(album.id)

        trash = albums.list_trash(db, "alice")

        assert [entry["id"] for entry in trash] == list(reversed(ids))[:10]
        count = db.execute("SELECT COUNT(*) FROM album_trash").fetchone()[0]
        assert count == 10

    def test_trash_is_per_user(self, db):
        album = albums.create_album(db, "alice", "A")
        albums.delete_album(db, album.id, "alice")
        assert albums.list_trash(db, "bob") == []

    def test_restore_brings_back_tracks_in_order(self, db):
        album = albums.create_album(db, "alice", "A", artist="Band")
        add_track(db, album, "one")
        add_track(db, album, "two")
        albums.delete_album(db, album.id, "alice")

        restored = albums.restore_album(db, album.id, "alice")

        assert restored.artist == "Band"
        assert [(t.title, t.order) for t in restored.tracks] == [("one", 0), ("two", 1)]
        assert albums.list_trash(db, "alice") == []

    def test_restore_unknown(self, db):
        with pytest.raises(NotFoundError):
            albums.restore_album(db, "nope", "alice")

    def test_other_user_cannot_restore(self, db):
        album = albums.create_album(db, "alice", "A")
        albums.delete_album(db, album.id, "alice")
        with pytest.raises(NotFoundError):
            albums.restore_album(db, album.id, "bob")
