"""Pytest configuration for backend tests.

Every test gets its own database under a temp XDG data dir, default config
and a probe client whose HEAD answers are set through ``probe_status``.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from album_keeper.core.config import Config
from album_keeper.core.database import get_db_connection, init_database
from web.backend.deps import get_config, get_probe_client
from web.backend.main import app


class ProbeStatus:
    """HEAD status returned by the fake archive (None simulates a network error)."""

    def __init__(self) -> None:
        self.status: int | None = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status is None:
            raise httpx.ConnectError("archive unreachable", request=request)
        return httpx.Response(self.status)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def data_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    init_database()
    return tmp_path


@pytest.fixture
def db(data_home):
    with get_db_connection() as conn:
        yield conn


@pytest.fixture
def probe_status() -> ProbeStatus:
    return ProbeStatus()


@pytest.fixture
def client(data_home, probe_status):
    async def probe_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(probe_status.handler)) as c:
            yield c

    app.dependency_overrides[get_config] = lambda: Config()
    app.dependency_overrides[get_probe_client] = probe_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def as_user(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest.fixture
def alice():
    return as_user("alice")


@pytest.fixture
def bob():
    return as_user("bob")


@pytest.fixture
def album_id(client, alice) -> str:
    response = client.post("/api/albums", json={"title": "Debut", "artist": "The Band"}, headers=alice)
    return response.json()["album"]["id"]


@pytest.fixture
def add_track(client, alice, album_id):
    def add(title: str, **extra) -> dict:
        body = {
            "title": title,
            "playbackUrl": f"https://archive.org/download/music-1-abc/{title}.mp3",
            "fileName": f"{title}.mp3",
            **extra,
        }
        response = client.post(f"/api/albums/{album_id}/tracks", json=body, headers=alice)
        assert response.status_code == 200, response.text
        return response.json()["track"]

    return add
