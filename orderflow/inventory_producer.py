"""Publishes inventory outcome events once per order id, with retry."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from .logs import LOGGER_NAME
from .messaging import Message, PublishError, publish_with_retry
from .models import InventoryFailed, InventoryReserved


class InventoryProducer:
    """Writes reservation outcomes; an order id is published at most once across both topics."""

    def __init__(self, reserved_writer: Any, failed_writer: Any,
                 logger: logging.Logger | None = None,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self._reserved_writer = reserved_writer
        self._failed_writer = failed_writer
        self._logger = logger or logging.getLogger(LOGGER_NAME)
        self._sleep = sleep
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def _publish(self, writer: Any, order_id: str, value: bytes) -> bool:
        with self._lock:
            duplicate = order_id in self._seen
            self._seen.add(order_id)
        if duplicate:
            self._logger.warning("Duplicate publish skipped", extra={"fields": {"orderID": order_id}})
            return False
        message = Message(key=order_id.encode("utf-8"), value=value)
        try:
            publish_with_retry(writer, message, logger=self._logger, sleep=self._sleep)
        except PublishError as exc:
            raise PublishError("failed to publish after retries") from exc
        self._logger.info("Published event", extra={"fields": {
            "topic": getattr(writer, "name", ""), "orderID": order_id}})
        return True

    def emit_reserved(self, event: InventoryReserved) -> bool:
        """Publish a reservation; ``False`` if the order id was already published."""
        return self._publish(self._reserved_writer, event.order_id, event.to_json())

    def emit_failed(self, event: InventoryFailed) -> bool:
        """Publish a failure; ``False`` if the order id was already published."""
        return self._publish(self._failed_writer, event.order_id, event.to_json())

    def close(self) -> None:
        self._logger.info("Closing InventoryProducer")
        self._reserved_writer.close()
        self._failed_writer.close()