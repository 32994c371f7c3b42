"""Tests for credentials and upload URL endpoints."""


def test_status_without_credentials(client, alice):
    assert client.get("/api/ia-credentials", headers=alice).json() == {"hasCredentials": False}


def test_status_for_guest(client):
    assert client.get("/api/ia-credentials").json() == {"hasCredentials": False}


def test_store_credentials_never_returns_secret(client, alice):
    response = client.post(
        "/api/ia-credentials", json={"accessKey": " AKEY ", "secretKey": "SECRET"}, headers=alice
    )
    assert response.json() == {"success": True}

    status = client.get("/api/ia-credentials", headers=alice).json()
    assert status == {"hasCredentials": True, "accessKey": "AKEY"}


def test_empty_credentials_rejected(client, alice):
    response = client.post(
        "/api/ia-credentials", json={"accessKey": "", "secretKey": "x"}, headers=alice
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid credentials"


def test_remove_credentials(client, alice):
    client.post("/api/ia-credentials", json={"accessKey": "a", "secretKey": "b"}, headers=alice)
    client.delete("/api/ia-credentials", headers=alice)
    assert client.get("/api/ia-credentials", headers=alice).json()["hasCredentials"] is False


def test_upload_url_requires_credentials(client, alice):
    response = client.post(
        "/api/generate-ia-upload-url",
        json={"fileName": "song.mp3", "contentType": "audio/mpeg"},
        headers=alice,
    )
    assert response.status_code == 400
    assert response.json() == {
        "error": "Archive credentials not found",
        "type": "CredentialsMissingError",
    }


def test_upload_url_is_signed(client, alice):
    client.post("/api/ia-credentials", json={"accessKey": "AKEY", "secretKey": "S"}, headers=alice)

    response = client.post(
        "/api/generate-ia-upload-url",
        json={"fileName": "My Song.mp3", "contentType": "audio/mpeg", "title": "My Song", "artist": "Band"},
        headers=alice,
    )

    data = response.json()
    assert response.status_code == 200
    assert data["success"] is True
    bucket = data["identifier"]
    assert bucket.startswith("music-")
    assert data["uploadUrl"] == f"https://s3.us.archive.org/{bucket}/My-Song.mp3"
    assert data["playbackUrl"] == f"https://archive.org/download/{bucket}/My-Song.mp3"
    assert data["iaDetailsUrl"] == f"https://archive.org/details/{bucket}"
    assert data["headers"]["Authorization"].startswith("LOW AKEY:")
    assert data["headers"]["x-archive-meta-creator"] == "band"


def test_upload_url_requires_file_name(client, alice):
    client.post("/api/ia-credentials", json={"accessKey": "AKEY", "secretKey": "S"}, headers=alice)
    response = client.post("/api/generate-ia-upload-url", json={"contentType": "audio/mpeg"}, headers=alice)
    assert response.status_code == 400


def test_upload_url_requires_user(client):
    response = client.post("/api/generate-ia-upload-url", json={"fileName": "a.mp3"})
    assert response.status_code == 401
