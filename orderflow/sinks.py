"""Notification delivery targets."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

from .logs import LOGGER_NAME
from .models import InventoryFailed, InventoryReserved


class NotificationError(Exception):
    """Raised when a notification could not be delivered."""


class NotificationSink(ABC):
    """Something that tells customers about reservation outcomes."""

    @abstractmethod
    def notify_reserved(self, event: InventoryReserved) -> object: ...

    @abstractmethod
    def notify_failed(self, event: InventoryFailed) -> object: ...


class ConsoleSink(NotificationSink):
    """Writes notifications to the log."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def notify_reserved(self, event: InventoryReserved) -> None:
        self._logger.info("✔️ Reservation notification", extra={"fields": {
            "orderID": event.order_id, "items": list(event.items)}})

    def notify_failed(self, event: InventoryFailed) -> None:
        self._logger.info("❌ Failure notification", extra={"fields": {
            "orderID": event.order_id, "items": list(event.items), "reason": event.reason}})


class RetryDedupeSink(NotificationSink):
    """Wraps a sink with three tries and at most one notification per order id."""

    def __init__(self, inner: NotificationSink, logger: logging.Logger | None = None,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self._inner = inner
        self._logger = logger or logging.getLogger(LOGGER_NAME)
        self._sleep = sleep
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def notify_reserved(self, event: InventoryReserved) -> bool:
        """Deliver a reservation; ``False`` if this order id was already handled."""
        return self._deliver(lambda: self._inner.notify_reserved(event), "reserved", event.order_id)

    def notify_failed(self, event: InventoryFailed) -> bool:
        """Deliver a failure; ``False`` if this order id was already handled."""
        return self._deliver(lambda: self._inner.notify_failed(event), "failed", event.order_id)

    def _deliver(self, send: Callable[[], object], kind: str, order_id: str) -> bool:
        with self._lock:
            duplicate = order_id in self._seen
            self._seen.add(order_id)
        if duplicate:
            self._logger.debug("Duplicate notification skipped", extra={"fields": {"orderID": order_id}})
            return False
        delay = 0.1
        last_error: Exception | None = None
        for attempt in range(1, 4):
            try:
                send()
            except Exception as exc:
                last_error = exc
                self._logger.warning("Notification failed, retrying", extra={"fields": {
                    "type": kind, "orderID": order_id, "error": str(exc), "attempt": attempt}})
                self._sleep(delay)
                delay *= 2
                continue
            self._logger.info("Notification delivered", extra={"fields": {"type": kind, "orderID": order_id}})
            return True
        raise NotificationError("notification failed after retries: " + order_id) from last_error