"""Reads inventory outcome topics and forwards them to a notification sink."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from .logs import LOGGER_NAME
from .models import InventoryFailed, InventoryReserved
from .sinks import NotificationSink

POLL_INTERVAL = 0.5


class NotificationConsumer:
    """Consumes the reserved and failed topics, one worker thread per topic.

    Readers must offer ``fetch(timeout)``, ``commit(message)`` and ``close()``.
    Every fetched message is committed, whether or not notifying succeeded.
    """

    def __init__(
        self,
        reserved_reader: Any,
        failed_reader: Any,
        sink: NotificationSink,
        logger: logging.Logger | None = None,
    ) -> None:
        self._reserved_reader = reserved_reader
        self._failed_reader = failed_reader
        self._sink = sink
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def run(self, stop: threading.Event | None = None) -> None:
        """Start both workers and block until ``stop`` is set."""
        if stop is None:
            stop = threading.Event()
        self._logger.info("🔔 Notification consumer started")
        workers = [
            threading.Thread(
                target=self._process,
                args=(self._reserved_reader, self._handle_reserved, stop),
                name="notify-reserved",
                daemon=True,
            ),
            threading.Thread(
                target=self._process,
                args=(self._failed_reader, self._handle_failed, stop),
                name="notify-failed",
                daemon=True,
            ),
        ]
        for worker in workers:
            worker.start()
        stop.wait()
        for worker in workers:
            worker.join()

    def _process(self, reader: Any, handle: Callable[[bytes], object], stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                message = reader.fetch(POLL_INTERVAL)
            except Exception as exc:
                self._logger.warning("FetchMessage error", extra={"fields": {"error": str(exc)}})
                return
            if message is None:
                continue
            try:
                handle(message.value)
            except Exception as exc:
                self._logger.error("Handle message error", extra={"fields": {"error": str(exc)}})
            try:
                reader.commit(message)
            except Exception as exc:
                self._logger.warning("Commit offset failed", extra={"fields": {"error": str(exc)}})

    def _handle_reserved(self, value: bytes) -> object:
        return self._sink.notify_reserved(InventoryReserved.from_json(value))

    def _handle_failed(self, value: bytes) -> object:
        return self._sink.notify_failed(InventoryFailed.from_json(value))

    def close(self) -> None:
        self._logger.info("Closing NotificationConsumer")
        self._reserved_reader.close()
        self._failed_reader.close()