"""Shared fixtures: an isolated database and in-memory session collaborators."""

import pytest

from album_keeper.core.database import get_db_connection, init_database
from factories import FakeGateway, make_track


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def data_home(tmp_path, monkeypatch):
    """Point XDG config/data dirs at a temp directory."""
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return tmp_path


@pytest.fixture
def db(data_home):
    """Fresh migrated database connection."""
    init_database()
    with get_db_connection() as conn:
        yield conn


@pytest.fixture
def track_factory():
    return make_track


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def sleeps():
    """Fake sleep that records requested delays."""
    recorded: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    fake_sleep.recorded = recorded
    return fake_sleep
