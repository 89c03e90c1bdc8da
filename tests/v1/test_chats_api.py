# mypy: ignore-errors
# tests/v1/test_chats_api.py
"""Tests for chat list, history, send, delete and mark-read endpoints."""

import asyncio

from fastapi import status

from parley_stage.services.message_store import MessageStore
from parley_stage.store import TransientStoreError


def _send(client, headers, other_user, text, **extra):
    return client.post(
        "/api/v1/send", json={"text": text, "otherUser": other_user, **extra}, headers=headers
    )


def test_send_requires_auth(client, bob) -> None:
    response = client.post("/api/v1/send", json={"text": "hi", "otherUser": "bob"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_send_and_read_history(client, alice_headers, bob_headers) -> None:
    first = _send(client, alice_headers, "bob", "hi")
    assert first.status_code == status.HTTP_200_OK
    message = first.json()["message"]
    assert message["author"] == "alice"
    assert message["chat_id"] == "alice:bob"
    assert message["is_deleted"] is False

    _send(client, alice_headers, "bob", "there")

    for headers, other in ((alice_headers, "bob"), (bob_headers, "alice")):
        response = client.get("/api/v1/history", params={"otherUser": other}, headers=headers)
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["chat_id"] == "alice:bob"
        assert [m["text"] for m in body["messages"]] == ["hi", "there"]


def test_history_limit(client, alice_headers, bob) -> None:
    for text in ("a", "b", "c"):
        _send(client, alice_headers, "bob", text)

    response = client.get(
        "/api/v1/history", params={"otherUser": "bob", "limit": 2}, headers=alice_headers
    )
    assert [m["text"] for m in response.json()["messages"]] == ["b", "c"]


def test_history_of_unknown_chat_is_empty(client, alice_headers) -> None:
    response = client.get("/api/v1/history", params={"otherUser": "nobody"}, headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["messages"] == []


def test_send_to_unknown_recipient(client, alice_headers) -> None:
    response = _send(client, alice_headers, "ghost", "hello?")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Recipient not found"


def test_send_rejects_empty_and_self(client, alice_headers, bob) -> None:
    assert _send(client, alice_headers, "bob", "   ").status_code == status.HTTP_400_BAD_REQUEST
    assert _send(client, alice_headers, "alice", "me").status_code == status.HTTP_400_BAD_REQUEST


def test_send_rejects_oversized_text(client, alice_headers, bob, test_settings) -> None:
    text = "x" * (test_settings.message_max_length + 1)
    assert _send(client, alice_headers, "bob", text).status_code == status.HTTP_400_BAD_REQUEST


def test_send_with_client_id_is_not_duplicated(client, alice_headers, bob) -> None:
    first = _send(client, alice_headers, "bob", "once", clientId="tap-1")
    again = _send(client, alice_headers, "bob", "once", clientId="tap-1")

    assert first.json()["message"]["id"] == again.json()["message"]["id"]
    history = client.get("/api/v1/history", params={"otherUser": "bob"}, headers=alice_headers)
    assert len(history.json()["messages"]) == 1


def test_send_store_outage_returns_503(client, alice_headers, bob, mocker) -> None:
    mocker.patch.object(MessageStore, "send", side_effect=TransientStoreError("down"))
    response = _send(client, alice_headers, "bob", "hi")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_chat_list_with_unread_and_mark_read(client, alice_headers, bob_headers, carol) -> None:
    _send(client, alice_headers, "bob", "hi")
    _send(client, alice_headers, "bob", "there")
    _send(client, alice_headers, "carol", "hey carol")

    chats = client.get("/api/v1/chats", headers=bob_headers).json()["chats"]
    assert len(chats) == 1
    assert chats[0]["id"] == "alice:bob"
    assert chats[0]["other_user"] == "alice"
    assert chats[0]["unread_count"] == 2
    assert chats[0]["last_message"]["text"] == "there"
    assert chats[0]["folder_id"] is None

    response = client.post("/api/v1/mark-read", json={"otherUser": "alice"}, headers=bob_headers)
    assert response.status_code == status.HTTP_200_OK
    chats = client.get("/api/v1/chats", headers=bob_headers).json()["chats"]
    assert chats[0]["unread_count"] == 0

    # The sender's own messages never count as unread.
    alice_chats = client.get("/api/v1/chats", headers=alice_headers).json()["chats"]
    assert sorted(c["other_user"] for c in alice_chats) == ["bob", "carol"]
    assert all(c["unread_count"] == 0 for c in alice_chats)


def test_chat_list_reconcile(client, alice_headers, bob_headers, kv_store) -> None:
    _send(client, alice_headers, "bob", "hi")
    _send(client, alice_headers, "bob", "again")
    # Simulate a lost increment.
    asyncio.run(kv_store.hset("user:bob:unread", "alice:bob", "1"))

    plain = client.get("/api/v1/chats", headers=bob_headers).json()["chats"]
    assert plain[0]["unread_count"] == 1
    fixed = client.get("/api/v1/chats", params={"reconcile": "true"}, headers=bob_headers)
    assert fixed.json()["chats"][0]["unread_count"] == 2


def test_delete_message(client, alice_headers, bob_headers) -> None:
    message_id = _send(client, alice_headers, "bob", "regret").json()["message"]["id"]

    forbidden = client.post("/api/v1/delete", json={"messageId": message_id}, headers=bob_headers)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    missing = client.post("/api/v1/delete", json={"messageId": "nope"}, headers=alice_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    deleted = client.post("/api/v1/delete", json={"messageId": message_id}, headers=alice_headers)
    assert deleted.status_code == status.HTTP_200_OK

    history = client.get("/api/v1/history", params={"otherUser": "alice"}, headers=bob_headers)
    [message] = history.json()["messages"]
    assert message["id"] == message_id
    assert message["is_deleted"] is True
    assert message["text"] == "Message deleted"


def test_mark_read_validates_other_user(client, alice_headers) -> None:
    response = client.post("/api/v1/mark-read", json={"otherUser": "alice"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
