# tests/client/test_sse_parser.py
"""Tests for the event-stream line parser."""

from parley_stage.client import SSEEvent, SSEParser


def _feed(parser: SSEParser, text: str) -> list[SSEEvent]:
    events = []
    for line in text.split("\n"):
        event = parser.feed(line)
        if event is not None:
            events.append(event)
    return events


def test_comments_are_ignored() -> None:
    assert _feed(SSEParser(), ": connected\n\n: keepalive 123\n\n") == []


def test_event_with_id_and_data() -> None:
    parser = SSEParser()
    [event] = _feed(parser, 'id: m1\ndata: {"text": "hi"}\n\n')
    assert event == SSEEvent(data='{"text": "hi"}', id="m1")
    assert parser.last_event_id == "m1"


def test_multiline_data_is_joined() -> None:
    [event] = _feed(SSEParser(), "data: one\ndata: two\n\n")
    assert event.data == "one\ntwo"
    assert event.id is None


def test_last_event_id_persists_across_events() -> None:
    parser = SSEParser()
    events = _feed(parser, "id: a\ndata: 1\n\ndata: 2\n\n")
    assert [e.id for e in events] == ["a", "a"]


def test_event_type_and_retry() -> None:
    [event] = _feed(SSEParser(), "event: ping\nretry: 3000\ndata: x\n\n")
    assert event.event == "ping"
    assert event.retry == 3000


def test_id_only_block_updates_last_id_without_event() -> None:
    parser = SSEParser()
    assert _feed(parser, "id: z\n\n") == []
    assert parser.last_event_id == "z"
