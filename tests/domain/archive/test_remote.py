"""Tests for best-effort remote deletes."""

from unittest.mock import MagicMock

import requests

from album_keeper.core.config import ArchiveConfig
from album_keeper.domain.archive.remote import delete_remote_file
from album_keeper.domain.models import ArchiveCredentials

URL = "https://archive.org/download/music-1-abc/song.mp3"
CREDENTIALS = ArchiveCredentials(access_key="AKEY", secret_key="SECRET")


def session_returning(status: int) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.text = "nope"
    session.delete.return_value = response
    return session


def test_delete_targets_s3_key_with_cascade():
    session = session_returning(204)

    assert delete_remote_file(URL, CREDENTIALS, ArchiveConfig(), session=session) is True

    args, kwargs = session.delete.call_args
    assert args[0] == "https://s3.us.archive.org/music-1-abc/song.mp3"
    assert kwargs["headers"]["Authorization"] == "LOW AKEY:SECRET"
    assert kwargs["headers"]["x-archive-cascade-delete"] == "1"


def test_rejected_delete_returns_false():
    assert delete_remote_file(URL, CREDENTIALS, session=session_returning(403)) is False


def test_network_error_returns_false():
    session = MagicMock(spec=requests.Session)
    session.delete.side_effect = requests.ConnectionError("down")
    assert delete_remote_file(URL, CREDENTIALS, session=session) is False


def test_skipped_without_credentials():
    session = session_returning(200)
    assert delete_remote_file(URL, None, session=session) is False
    session.delete.assert_not_called()


def test_skipped_for_non_archive_url():
    session = session_returning(200)
    assert delete_remote_file("https://example.com/a.mp3", CREDENTIALS, session=session) is False
    session.delete.assert_not_called()
