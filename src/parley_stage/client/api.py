"""Thin async wrapper around the Parley HTTP API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx

from parley_stage.schemas.chat import HistoryResponse, Message

from .errors import AuthenticationError, ParleyClientError

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_BAD_REQUEST = 400


class ParleyClient:
    """HTTP client for one signed-in user."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method, path, json=json_data, params=params, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise ParleyClientError(f"{method} {path} failed: {exc}") from exc
        _raise_for_status(response)
        return response.json()

    async def login(self, username: str, password: str) -> str:
        """Exchange credentials for a token and keep it for later calls."""
        payload = await self._request(
            "POST", "/api/v1/login", json_data={"username": username, "password": password}
        )
        self.token = payload["access_token"]
        return self.token

    async def history(self, other_user: str, limit: int | None = None) -> list[Message]:
        params: dict[str, Any] = {"otherUser": other_user}
        if limit is not None:
            params["limit"] = limit
        payload = await self._request("GET", "/api/v1/history", params=params)
        return HistoryResponse.model_validate(payload).messages

    async def send(self, other_user: str, text: str, *, client_id: str | None = None) -> Message:
        body: dict[str, Any] = {"text": text, "otherUser": other_user}
        if client_id:
            body["clientId"] = client_id
        payload = await self._request("POST", "/api/v1/send", json_data=body)
        return Message.model_validate(payload["message"])

    async def mark_read(self, other_user: str) -> None:
        await self._request("POST", "/api/v1/mark-read", json_data={"otherUser": other_user})

    @asynccontextmanager
    async def open_stream(
        self, other_user: str, last_event_id: str | None = None
    ) -> AsyncIterator[httpx.Response]:
        """Open the event stream for the chat with `other_user`."""
        if not self.token:
            raise AuthenticationError("Not signed in", HTTP_UNAUTHORIZED)
        client = await self._ensure_client()
        headers = {"Accept": "text/event-stream"}
        if last_event_id:
            headers["Last-Event-ID"] = last_event_id
        request = client.build_request(
            "GET",
            "/api/v1/subscribe",
            params={"token": self.token, "otherUser": other_user},
            headers=headers,
            timeout=httpx.Timeout(self.timeout_seconds, read=None),
        )
        response = await client.send(request, stream=True)
        try:
            if response.status_code >= HTTP_BAD_REQUEST:
                await response.aread()
                _raise_for_status(response)
            yield response
        finally:
            await response.aclose()

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code < HTTP_BAD_REQUEST:
        return
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    if response.status_code == HTTP_UNAUTHORIZED:
        raise AuthenticationError(str(detail), response.status_code)
    raise ParleyClientError(
        f"Server responded with {response.status_code}: {detail}", response.status_code
    )
