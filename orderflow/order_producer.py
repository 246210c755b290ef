"""Publishes OrderCreated events once per order id, with retry."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from .logs import LOGGER_NAME
from .messaging import Message, publish_with_retry
from .models import OrderCreated


class OrderProducer:
    """Writes OrderCreated events keyed by order id; repeated ids are skipped."""

    def __init__(self, writer: Any, logger: logging.Logger | None = None,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self._writer = writer
        self._logger = logger or logging.getLogger(LOGGER_NAME)
        self._sleep = sleep
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def publish(self, event: OrderCreated) -> bool:
        """Publish ``event``, or return ``False`` if its order id was seen before.

        Raises :class:`~orderflow.messaging.PublishError` when every retry failed.
        """
        with self._lock:
            duplicate = event.order_id in self._seen
            self._seen.add(event.order_id)
        fields = {"fields": {"orderID": event.order_id}}
        if duplicate:
            self._logger.warning("Duplicate OrderID, skipping publish", extra=fields)
            return False
        message = Message(key=event.order_id.encode("utf-8"), value=event.to_json())
        publish_with_retry(self._writer, message, logger=self._logger, sleep=self._sleep)
        self._logger.info("Published order event", extra=fields)
        return True

    def close(self) -> None:
        self._logger.info("Closing Kafka producer, flushing messages")
        self._writer.close()