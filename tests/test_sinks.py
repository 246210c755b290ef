import logging

import pytest

from orderflow.models import InventoryFailed, InventoryReserved
from orderflow.sinks import ConsoleSink, NotificationError, NotificationSink, RetryDedupeSink

LOGGER_NAME = "tests.sinks"


class FlakySink(NotificationSink):
    def __init__(self, failures=0):
        self.failures = failures
        self.calls = []

    def notify_reserved(self, event):
        self.calls.append(("reserved", event.order_id))
        self._maybe_fail()

    def notify_failed(self, event):
        self.calls.append(("failed", event.order_id))
        self._maybe_fail()

    def _maybe_fail(self):
        if self.failures:
            self.failures -= 1
            raise OSError("smtp down")


def make_sink(failures=0):
    inner = FlakySink(failures)
    sleeps = []
    sink = RetryDedupeSink(inner, logging.getLogger(LOGGER_NAME), sleep=sleeps.append)
    return sink, inner, sleeps


def test_console_sink_logs_reservation(caplog):
    sink = ConsoleSink(logging.getLogger(LOGGER_NAME))
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        sink.notify_reserved(InventoryReserved(order_id="o-1", items=["foo"]))
    record = caplog.records[-1]
    assert record.getMessage() == "✔️ Reservation notification"
    assert record.fields == {"orderID": "o-1", "items": ["foo"]}


def test_console_sink_logs_failure_reason(caplog):
    sink = ConsoleSink(logging.getLogger(LOGGER_NAME))
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        sink.notify_failed(InventoryFailed(order_id="o-2", items=["bar"], reason="out"))
    record = caplog.records[-1]
    assert record.getMessage() == "❌ Failure notification"
    assert record.fields["reason"] == "out"


def test_delivery_succeeds_first_time():
    sink, inner, sleeps = make_sink()
    assert sink.notify_reserved(InventoryReserved(order_id="o-1", items=["foo"])) is True
    assert inner.calls == [("reserved", "o-1")]
    assert sleeps == []


def test_retries_with_doubling_backoff():
    sink, inner, sleeps = make_sink(failures=2)
    assert sink.notify_failed(InventoryFailed(order_id="o-1", reason="x")) is True
    assert len(inner.calls) == 3
    assert sleeps[0] == 0.1
    assert sleeps[1] == sleeps[0] * 2


def test_gives_up_after_three_attempts():
    sink, inner, sleeps = make_sink(failures=5)
    with pytest.raises(NotificationError, match="notification failed after retries: o-9"):
        sink.notify_reserved(InventoryReserved(order_id="o-9"))
    assert len(inner.calls) == 3
    assert len(sleeps) == 3


def test_duplicates_are_skipped_across_event_kinds():
    sink, inner, _ = make_sink()
    assert sink.notify_reserved(InventoryReserved(order_id="o-1")) is True
    assert sink.notify_failed(InventoryFailed(order_id="o-1")) is False
    assert sink.notify_reserved(InventoryReserved(order_id="o-1")) is False
    assert inner.calls == [("reserved", "o-1")]


def test_failed_delivery_still_marks_order_seen():
    sink, inner, _ = make_sink(failures=3)
    with pytest.raises(NotificationError):
        sink.notify_reserved(InventoryReserved(order_id="o-1"))
    assert sink.notify_reserved(InventoryReserved(order_id="o-1")) is False
    assert len(inner.calls) == 3