"""Consumers that turn OrderCreated events into inventory outcomes."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from .logs import LOGGER_NAME
from .messaging import Message
from .models import InventoryFailed, InventoryReserved, OrderCreated
from .transactional import ReserveService, TransactionalProducer

ORDERS_TOPIC = "orders.created"
POLL_INTERVAL = 0.5


class InventoryConsumer:
    """Reads orders, reserves stock and emits the outcome before committing.

    ``reader`` must offer ``fetch(timeout)``, ``commit(message)`` and ``close()``;
    ``producer`` must offer ``emit_reserved(event)`` and ``emit_failed(event)``.
    """

    def __init__(
        self,
        reader: Any,
        producer: Any,
        stock_service: ReserveService,
        logger: logging.Logger | None = None,
    ) -> None:
        self._reader = reader
        self._producer = producer
        self._stock = stock_service
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def run(self, stop: threading.Event | None = None) -> None:
        """Process messages until ``stop`` is set or the reader fails."""
        if stop is None:
            stop = threading.Event()
        self._logger.info("Inventory consumer started")
        while not stop.is_set():
            try:
                message = self._reader.fetch(POLL_INTERVAL)
            except Exception as exc:
                self._logger.warning(
                    "FetchMessage error, stopping consumer",
                    extra={"fields": {"error": str(exc)}},
                )
                return
            if message is not None:
                self._handle(message)

    def _handle(self, message: Message) -> None:
        try:
            order = OrderCreated.from_json(message.value)
        except ValueError as exc:
            self._logger.error(
                "Invalid OrderCreated payload",
                extra={"fields": {"error": str(exc), "offset": message.offset}},
            )
            self._commit(message)
            return

        fields = {"orderID": order.order_id}
        try:
            self._stock.reserve(order.items)
        except Exception as exc:
            self._logger.info("Stock reserve failed", extra={"fields": {**fields, "error": str(exc)}})
            event = InventoryFailed(order_id=order.order_id, items=list(order.items), reason=str(exc))
            try:
                self._producer.emit_failed(event)
            except Exception as emit_exc:
                self._logger.error("EmitFailed error", extra={"fields": {**fields, "error": str(emit_exc)}})
                return
        else:
            self._logger.info("Stock reserved", extra={"fields": fields})
            event = InventoryReserved(order_id=order.order_id, items=list(order.items))
            try:
                self._producer.emit_reserved(event)
            except Exception as emit_exc:
                self._logger.error("EmitReserved error", extra={"fields": {**fields, "error": str(emit_exc)}})
                return

        self._commit(message)

    def _commit(self, message: Message) -> None:
        try:
            self._reader.commit(message)
        except Exception as exc:
            self._logger.error(
                "CommitMessages error",
                extra={"fields": {"error": str(exc), "offset": message.offset}},
            )

    def close(self) -> None:
        self._logger.info("Closing InventoryConsumer")
        self._reader.close()


class TxConsumer:
    """Consumer-group handler that delegates each order to a :class:`TransactionalProducer`.

    ``group`` must offer ``consume(topics, handler, stop)``, which calls
    ``handler.consume_claim(session, messages)`` for each claim, and ``close()``.
    """

    def __init__(
        self,
        group: Any,
        producer: TransactionalProducer,
        stock_service: ReserveService,
        logger: logging.Logger | None = None,
    ) -> None:
        self._group = group
        self._producer = producer
        self._stock = stock_service
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def consume_claim(self, session: Any, messages: Iterable[Message]) -> None:
        """Handle every message of a claim; offsets are marked only once processed."""
        for message in messages:
            try:
                order = OrderCreated.from_json(message.value)
            except ValueError as exc:
                self._logger.warning("invalid payload", extra={"fields": {"error": str(exc)}})
                session.mark_message(message)
                continue
            try:
                self._producer.process(order, message, session, self._stock)
            except Exception as exc:
                self._logger.error(
                    "processing failed",
                    extra={"fields": {"error": str(exc), "orderID": order.order_id}},
                )

    def run(self, stop: threading.Event | None = None) -> None:
        """Join the group on the orders topic until ``stop`` is set."""
        if stop is None:
            stop = threading.Event()
        topics = [ORDERS_TOPIC]
        while True:
            try:
                self._group.consume(topics, self, stop)
            except Exception as exc:
                self._logger.error("consume error", extra={"fields": {"error": str(exc)}})
            if stop.is_set():
                return

    def close(self) -> None:
        self._group.close()