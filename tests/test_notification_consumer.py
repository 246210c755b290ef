import logging
import threading

from orderflow.messaging import Message
from orderflow.models import InventoryFailed, InventoryReserved
from orderflow.notification_consumer import NotificationConsumer
from orderflow.sinks import NotificationSink

LOG = logging.getLogger("tests.notification_consumer")


class ListReader:
    def __init__(self, topic, values):
        self._pending = [Message(value=value, topic=topic, offset=i) for i, value in enumerate(values)]
        self.committed = []
        self.closed = False
        self.exhausted = threading.Event()

    def fetch(self, timeout=None):
        if not self._pending:
            self.exhausted.set()
            raise EOFError("closed")
        return self._pending.pop(0)

    def commit(self, message):
        self.committed.append(message.offset)

    def close(self):
        self.closed = True


class RecordingSink(NotificationSink):
    def __init__(self, fail=False):
        self.reserved = []
        self.failed = []
        self.fail = fail

    def notify_reserved(self, event):
        if self.fail:
            raise OSError("sink down")
        self.reserved.append(event)

    def notify_failed(self, event):
        if self.fail:
            raise OSError("sink down")
        self.failed.append(event)


def run_until_drained(reserved_values, failed_values, sink):
    reserved = ListReader("inventory.reserved", reserved_values)
    failed = ListReader("inventory.failed", failed_values)
    consumer = NotificationConsumer(reserved, failed, sink, LOG)
    stop = threading.Event()
    runner = threading.Thread(target=consumer.run, args=(stop,))
    runner.start()
    assert reserved.exhausted.wait(5)
    assert failed.exhausted.wait(5)
    stop.set()
    runner.join(5)
    assert not runner.is_alive()
    return consumer, reserved, failed


def test_events_reach_the_sink_and_are_committed():
    sink = RecordingSink()
    reserved_event = InventoryReserved(order_id="o-1", items=["foo"])
    failed_event = InventoryFailed(order_id="o-2", items=["bar"], reason="out")
    _, reserved, failed = run_until_drained([reserved_event.to_json()], [failed_event.to_json()], sink)
    assert sink.reserved == [reserved_event]
    assert sink.failed == [failed_event]
    assert reserved.committed == [0]
    assert failed.committed == [0]


def test_invalid_payload_is_committed_without_notifying():
    sink = RecordingSink()
    good = InventoryReserved(order_id="o-3", items=["foo"])
    _, reserved, failed = run_until_drained([b"{bad", good.to_json()], [], sink)
    assert sink.reserved == [good]
    assert reserved.committed == [0, 1]
    assert failed.committed == []


def test_sink_errors_still_commit():
    sink = RecordingSink(fail=True)
    event = InventoryFailed(order_id="o-4", reason="out")
    _, _, failed = run_until_drained([], [event.to_json(), event.to_json()], sink)
    assert sink.failed == []
    assert failed.committed == [0, 1]


def test_close_closes_both_readers():
    reserved = ListReader("inventory.reserved", [])
    failed = ListReader("inventory.failed", [])
    NotificationConsumer(reserved, failed, RecordingSink(), LOG).close()
    assert (reserved.closed, failed.closed) == (True, True)