"""HTTP front end that accepts orders and publishes them."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify, request

from .logs import LOGGER_NAME, install_request_logging
from .models import OrderCreated


def create_app(producer: Any, logger: logging.Logger | None = None) -> Flask:
    """Build the order service application with ``POST /orders``.

    ``producer`` needs a ``publish(OrderCreated)`` method.
    """
    log = logger or logging.getLogger(LOGGER_NAME)
    app = Flask(__name__)
    install_request_logging(app, log)

    @app.post("/orders")
    def create_order():
        try:
            order = OrderCreated.from_json(request.get_data())
        except ValueError as exc:
            log.warning("Invalid JSON payload", extra={"fields": {"error": str(exc)}})
            return jsonify(error="invalid JSON payload"), 400

        if not order.user_id or not order.items or order.total <= 0:
            log.warning("Validation failed on payload", extra={"fields": {"payload": vars(order)}})
            return jsonify(error="user_id, items and total are required"), 400

        try:
            producer.publish(order)
        except Exception as exc:
            log.error(
                "Failed to publish event",
                extra={"fields": {"error": str(exc), "orderID": order.order_id}},
            )
            return jsonify(error="failed to publish event"), 500

        log.info(
            "Order received",
            extra={"fields": {"orderID": order.order_id, "userID": order.user_id}},
        )
        return jsonify(status="order received", order_id=order.order_id), 202

    return app