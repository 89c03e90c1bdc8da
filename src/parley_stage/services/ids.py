"""Time-ordered message identifiers."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from threading import Lock

from parley_stage.db.time import now_ms

_SEQUENCE_LIMIT = 10_000


class MessageIdGenerator:
    """Generate ids whose lexical order matches their timestamp order.

    Ids have the form ``{timestamp:013d}-{sequence:04d}-{random}``. The
    timestamp never moves backwards within one generator, even if the wall
    clock does, and the sequence orders ids minted in the same millisecond.
    The random suffix keeps ids from different processes distinct.
    """

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._lock = Lock()
        self._last_ms = 0
        self._sequence = 0

    def next(self) -> tuple[str, int]:
        """Return a new ``(message_id, timestamp_ms)`` pair."""
        with self._lock:
            current = max(self._clock(), self._last_ms)
            if current == self._last_ms:
                self._sequence += 1
                if self._sequence >= _SEQUENCE_LIMIT:
                    # Sequence exhausted for this millisecond; borrow the next one.
                    current += 1
                    self._sequence = 0
            else:
                self._sequence = 0
            self._last_ms = current
            sequence = self._sequence
        return f"{current:013d}-{sequence:04d}-{secrets.token_hex(4)}", current


_default_generator = MessageIdGenerator()


def next_message_id() -> tuple[str, int]:
    """Return a new id from the process-wide generator."""
    return _default_generator.next()
