"""Counts created orders per minute and publishes the rate."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from .logs import LOGGER_NAME
from .messaging import Message

METRICS_TOPIC = "metrics.order.rate"
POLL_INTERVAL = 0.5

_STRING_FIELDS = ("orderid", "userid")


def truncate_to_minute(moment: datetime) -> datetime:
    """Return ``moment`` in UTC with seconds and microseconds dropped.

    A naive datetime is taken to be in UTC already.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.replace(second=0, microsecond=0)


def _format_time(moment: datetime, fractional: bool) -> str:
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if fractional and moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _check_order(payload: bytes | str) -> None:
    """Raise ValueError unless ``payload`` decodes as an order of either schema version."""
    try:
        document = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc
    if document is None:
        return
    if not isinstance(document, dict):
        raise ValueError(f"expected a JSON object, got {type(document).__name__}")
    for key, value in document.items():
        name = key.lower()
        if value is None:
            continue
        if name in _STRING_FIELDS or name == "promocode":
            if not isinstance(value, str):
                raise ValueError(f"field {key!r} must be a string")
        elif name == "items":
            if not isinstance(value, list) or not all(item is None or isinstance(item, str) for item in value):
                raise ValueError(f"field {key!r} must be an array of strings")
        elif name == "total":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"field {key!r} must be a number")


@dataclass(frozen=True)
class Metric:
    """Number of orders seen in the minute starting at ``window_start``."""

    window_start: datetime
    count: int

    def to_json(self) -> bytes:
        return json.dumps(
            {"window_start": _format_time(self.window_start, fractional=True), "count": self.count},
            separators=(",", ":"),
        ).encode("utf-8")


class OrderRateAggregator:
    """Counts valid order payloads and publishes one metric per flush.

    ``writer`` must offer ``write(message)``; ``clock`` returns the current time.
    """

    def __init__(
        self,
        writer: Any,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._writer = writer
        self._logger = logger or logging.getLogger(LOGGER_NAME)
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._window_start = truncate_to_minute(clock())

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def window_start(self) -> datetime:
        with self._lock:
            return self._window_start

    def record(self, payload: bytes | str) -> bool:
        """Count ``payload`` if it is a valid order; return whether it was counted."""
        try:
            _check_order(payload)
        except ValueError as exc:
            self._logger.warning("invalid order payload", extra={"fields": {"error": str(exc)}})
            return False
        with self._lock:
            self._count += 1
        return True

    def flush(self) -> Metric:
        """Publish the current window's count, then start a new window."""
        with self._lock:
            metric = Metric(window_start=self._window_start, count=self._count)
        message = Message(
            key=_format_time(metric.window_start, fractional=False).encode("utf-8"),
            value=metric.to_json(),
        )
        try:
            self._writer.write(message)
        except Exception as exc:
            self._logger.error("failed to write metric", extra={"fields": {"error": str(exc)}})
        else:
            self._logger.info(
                "published metric",
                extra={"fields": {"window_start": metric.window_start.isoformat(), "count": metric.count}},
            )
        with self._lock:
            self._window_start = truncate_to_minute(self._clock())
            self._count = 0
        return metric

    def consume(self, reader: Any, stop: threading.Event | None = None) -> None:
        """Record every message from ``reader`` until ``stop`` is set or the reader is closed."""
        if stop is None:
            stop = threading.Event()
        while not stop.is_set():
            try:
                message = reader.fetch(POLL_INTERVAL)
            except EOFError:
                return
            except Exception as exc:
                self._logger.warning("read order failed", extra={"fields": {"error": str(exc)}})
                continue
            if message is None:
                continue
            self.record(message.value)
            commit = getattr(reader, "commit", None)
            if commit is not None:
                commit(message)