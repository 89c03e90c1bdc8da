"""Incremental parser for `text/event-stream` bodies."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SSEEvent:
    """One dispatched Server-Sent Event."""

    data: str
    id: str | None = None
    event: str = "message"
    retry: int | None = None


class SSEParser:
    """Turns decoded lines into events following the EventSource rules.

    Feed lines without their terminator. Comment lines are ignored, an empty
    line dispatches the pending event, and an event without data is dropped.
    """

    def __init__(self) -> None:
        self.last_event_id: str | None = None
        self._data: list[str] = []
        self._event: str | None = None
        self._id: str | None = None
        self._retry: int | None = None

    def feed(self, line: str) -> SSEEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        return None

    def _dispatch(self) -> SSEEvent | None:
        if self._id is not None:
            self.last_event_id = self._id or None
        data, event, retry = self._data, self._event, self._retry
        self._data, self._event, self._id, self._retry = [], None, None, None
        if not data:
            return None
        return SSEEvent(
            data="\n".join(data),
            id=self.last_event_id,
            event=event or "message",
            retry=retry,
        )
