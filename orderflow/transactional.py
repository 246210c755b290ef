"""Reserve stock for an order and publish the outcome exactly once per order id."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Protocol

from .logs import LOGGER_NAME
from .messaging import Message, PublishError
from .models import InventoryFailed, InventoryReserved, OrderCreated

RESERVED_TOPIC = "inventory.reserved"
FAILED_TOPIC = "inventory.failed"


class ReserveService(Protocol):
    """Anything that can reserve stock for a list of items."""

    def reserve(self, items: Iterable[str]) -> bool: ...


class TransactionalProducer:
    """Deduplicates orders, reserves stock and sends the outcome event.

    ``sender`` must offer ``send(message)``, routing by ``message.topic``,
    and ``close()``. ``session`` objects passed to :meth:`process` must offer
    ``mark_message(message)``.
    """

    def __init__(self, sender: Any, logger: logging.Logger | None = None) -> None:
        self._sender = sender
        self._logger = logger or logging.getLogger(LOGGER_NAME)
        self._seen: set[str] = set()
        self._lock = threading.Lock()
        self.topic_ok = RESERVED_TOPIC
        self.topic_fail = FAILED_TOPIC

    def process(
        self,
        order: OrderCreated,
        message: Message,
        session: Any,
        stock_service: ReserveService,
    ) -> bool:
        """Handle one order; return ``False`` if it was a duplicate.

        Raises :class:`~orderflow.messaging.PublishError` if the outcome could
        not be sent, in which case the consumed message is not marked.
        """
        with self._lock:
            duplicate = order.order_id in self._seen
            self._seen.add(order.order_id)
        if duplicate:
            self._logger.warning("duplicate order skipped", extra={"fields": {"orderID": order.order_id}})
            session.mark_message(message)
            return False

        error: Exception | None = None
        reserved = False
        try:
            reserved = stock_service.reserve(order.items)
        except Exception as exc:  # the reason is carried in the failure event
            error = exc

        if error is not None or not reserved:
            topic = self.topic_fail
            reason = str(error) if error is not None else "reservation declined"
            payload = InventoryFailed(order_id=order.order_id, items=list(order.items), reason=reason).to_json()
        else:
            topic = self.topic_ok
            payload = InventoryReserved(order_id=order.order_id, items=list(order.items)).to_json()

        outgoing = Message(key=order.order_id.encode("utf-8"), value=payload, topic=topic)
        try:
            self._sender.send(outgoing)
        except Exception as exc:
            raise PublishError(f"send message: {exc}") from exc
        self._logger.info("published event", extra={"fields": {"orderID": order.order_id, "topic": topic}})

        session.mark_message(message)
        return True

    def close(self) -> None:
        self._logger.info("closing producer")
        self._sender.close()