# mypy: ignore-errors
# tests/v1/test_profile_api.py
"""Tests for profile, user search and push token endpoints."""

import asyncio

from fastapi import status

from parley_stage.api.v1.dependencies import get_blob_storage
from parley_stage.core.settings import settings
from parley_stage.services.blob_storage import LocalBlobStorage


def test_get_own_and_other_profile(client, alice_headers, make_user) -> None:
    make_user("bob", display_name="Bob B", emoji="🎸")

    own = client.get("/api/v1/profile", headers=alice_headers)
    assert own.status_code == status.HTTP_200_OK
    assert own.json()["username"] == "alice"
    assert "password_hash" not in own.json()

    other = client.get("/api/v1/profile", params={"username": "bob"}, headers=alice_headers)
    assert other.json()["display_name"] == "Bob B"
    assert other.json()["emoji"] == "🎸"


def test_profile_not_found(client, alice_headers) -> None:
    response = client.get("/api/v1/profile", params={"username": "ghost"}, headers=alice_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_update_profile(client, alice_headers) -> None:
    response = client.put(
        "/api/v1/profile",
        json={"displayName": "  Alice A  ", "bio": "hello"},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["display_name"] == "Alice A"
    assert response.json()["bio"] == "hello"

    # Fields that are not sent stay untouched.
    response = client.put("/api/v1/profile", json={"emoji": "🦊"}, headers=alice_headers)
    assert response.json()["display_name"] == "Alice A"
    assert response.json()["emoji"] == "🦊"


def test_photo_upload(client, alice_headers, app, tmp_path) -> None:
    app.dependency_overrides[get_blob_storage] = lambda: LocalBlobStorage(tmp_path, "/media")
    try:
        response = client.post(
            "/api/v1/profile/photo",
            files={"photo": ("me.png", b"\x89PNG fake", "image/png")},
            headers=alice_headers,
        )
    finally:
        app.dependency_overrides.pop(get_blob_storage, None)

    assert response.status_code == status.HTTP_200_OK
    url = response.json()["url"]
    assert url.startswith("/media/profile-photos/alice-")
    assert url.endswith(".png")
    stored = tmp_path / url.removeprefix("/media/")
    assert stored.read_bytes() == b"\x89PNG fake"


def test_photo_upload_rejects_type_and_size(client, alice_headers, mocker) -> None:
    response = client.post(
        "/api/v1/profile/photo",
        files={"photo": ("notes.txt", b"text", "text/plain")},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    mocker.patch.object(settings, "photo_max_bytes", 4)
    response = client.post(
        "/api/v1/profile/photo",
        files={"photo": ("big.jpg", b"12345", "image/jpeg")},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


def test_search_users(client, alice_headers, make_user) -> None:
    for name in ("bob", "bobby", "carol", "alicebot"):
        make_user(name)

    def search(q):
        return client.get("/api/v1/users/search", params={"q": q}, headers=alice_headers).json()

    assert search("b") == {"users": []}
    assert search("BOB") == {"users": ["bob", "bobby"]}
    assert search("ali") == {"users": ["alicebot"]}


def test_search_caps_results(client, alice_headers, make_user) -> None:
    for index in range(12):
        make_user(f"user{index:02d}")
    response = client.get("/api/v1/users/search", params={"q": "user"}, headers=alice_headers)
    assert len(response.json()["users"]) == 10


def test_register_push_token(client, alice_headers, kv_store) -> None:
    response = client.post(
        "/api/v1/notifications/register", json={"pushToken": "device-123"}, headers=alice_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert asyncio.run(kv_store.get("push_token:alice")) == "device-123"
