"""Messages, in-memory topics and publication with retry."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable

from .logs import LOGGER_NAME


class PublishError(Exception):
    """Raised when a message could not be delivered to its topic."""


@dataclass(frozen=True)
class Message:
    """A keyed record; ``topic`` and ``offset`` are set when it is written."""

    key: bytes = b""
    value: bytes = b""
    topic: str = ""
    offset: int = -1


class InMemoryTopic:
    """A single-partition topic usable as writer and reader with explicit commits."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._log: list[Message] = []
        self._position = 0
        self._committed = 0
        self._closed = False
        self._cond = threading.Condition()

    @property
    def messages(self) -> tuple[Message, ...]:
        with self._cond:
            return tuple(self._log)

    @property
    def committed(self) -> int:
        """Offset of the next message still to be processed."""
        with self._cond:
            return self._committed

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def write(self, message: Message) -> Message:
        """Append ``message`` and return it with its topic and offset filled in."""
        with self._cond:
            if self._closed:
                raise PublishError(f"topic {self.name!r} is closed")
            stored = replace(message, topic=self.name, offset=len(self._log))
            self._log.append(stored)
            self._cond.notify_all()
        return stored

    def fetch(self, timeout: float | None = None) -> Message | None:
        """Next unread message, or ``None`` on timeout; raises :class:`EOFError` once closed."""
        with self._cond:
            ready = self._cond.wait_for(lambda: self._closed or self._position < len(self._log), timeout)
            if self._closed:
                raise EOFError(f"topic {self.name!r} is closed")
            if not ready:
                return None
            self._position += 1
            return self._log[self._position - 1]

    def commit(self, message: Message) -> None:
        """Mark ``message`` and everything before it as processed."""
        if message.topic != self.name:
            raise ValueError(f"message belongs to topic {message.topic!r}, not {self.name!r}")
        with self._cond:
            self._committed = max(self._committed, message.offset + 1)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


def publish_with_retry(
    writer: Any,
    message: Message,
    attempts: int = 5,
    initial_delay: float = 0.1,
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Message:
    """Write through ``writer``, doubling the wait after each failure.

    Raises :class:`PublishError` when every attempt failed.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    log = logger or logging.getLogger(LOGGER_NAME)
    delay = initial_delay
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return writer.write(message)
        except Exception as exc:  # every write failure counts as transient
            last_error = exc
            log.warning("Publish failed, retrying", extra={"fields": {
                "topic": getattr(writer, "name", message.topic),
                "key": message.key.decode("utf-8", "replace"),
                "error": str(exc),
                "attempt": attempt,
            }})
            sleep(delay)
            delay *= 2
    raise PublishError(f"failed to publish after retries: {last_error}") from last_error