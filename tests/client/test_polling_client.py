# tests/client/test_polling_client.py
"""Tests for the interval polling client."""

import json

import httpx
import pytest

from parley_stage.client import AuthenticationError, ParleyClient, PollingChatClient
from parley_stage.schemas.chat import Message


def _message(message_id: str, author: str, timestamp: int) -> dict:
    return Message(
        id=message_id, chat_id="alice:bob", author=author, text=message_id, timestamp=timestamp
    ).model_dump()


class FakeServer:
    """Serves scripted history pages and records read acknowledgements."""

    def __init__(self, pages: list[list[dict]]) -> None:
        self.pages = pages
        self.mark_reads: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/history":
            assert request.headers["Authorization"] == "Bearer tok"
            assert request.url.params["otherUser"] == "alice"
            page = self.pages.pop(0) if len(self.pages) > 1 else self.pages[0]
            return httpx.Response(200, json={"chat_id": "alice:bob", "messages": page})
        if request.url.path == "/api/v1/mark-read":
            self.mark_reads.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404, json={"detail": "Not Found"})


def _client(server: FakeServer) -> ParleyClient:
    return ParleyClient("http://parley.test", "tok", transport=httpx.MockTransport(server))


@pytest.mark.asyncio
async def test_only_unseen_messages_are_surfaced() -> None:
    first = [_message("m1", "alice", 1), _message("m2", "bob", 2)]
    server = FakeServer([first, first + [_message("m3", "alice", 3)]])
    surfaced: list[str] = []
    notified: list[str] = []
    poller = PollingChatClient(
        _client(server),
        "alice",
        on_message=lambda m: surfaced.append(m.id),
        notify=lambda m: notified.append(m.id),
    )

    assert [m.id for m in await poller.poll_once()] == ["m1", "m2"]
    assert [m.id for m in await poller.poll_once()] == ["m3"]
    assert [m.id for m in await poller.poll_once()] == []

    assert surfaced == ["m1", "m2", "m3"]
    assert notified == ["m1", "m3"]
    assert server.mark_reads == [{"otherUser": "alice"}, {"otherUser": "alice"}]
    assert poller.watermark == 3


@pytest.mark.asyncio
async def test_own_messages_are_not_acknowledged() -> None:
    server = FakeServer([[_message("m1", "bob", 1)]])
    poller = PollingChatClient(_client(server), "alice")

    await poller.poll_once()
    assert server.mark_reads == []


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited() -> None:
    server = FakeServer([[_message("m1", "alice", 1)]])
    seen: list[str] = []

    async def on_message(message: Message) -> None:
        seen.append(message.id)

    poller = PollingChatClient(_client(server), "alice", on_message=on_message)
    await poller.poll_once()
    assert seen == ["m1"]


@pytest.mark.asyncio
async def test_run_stops_on_request() -> None:
    server = FakeServer([[_message("m1", "alice", 1)]])
    poller: PollingChatClient

    def on_message(message: Message) -> None:
        poller.stop()

    poller = PollingChatClient(
        _client(server), "alice", interval_seconds=0.01, on_message=on_message
    )
    await poller.run()
    assert "m1" in poller.inbox.seen


@pytest.mark.asyncio
async def test_run_raises_on_rejected_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Unauthorized"})

    api = ParleyClient("http://parley.test", "expired", transport=httpx.MockTransport(handler))
    with pytest.raises(AuthenticationError):
        await PollingChatClient(api, "alice", interval_seconds=0.01).run()
