import threading

import pytest

from orderflow.stock import StockError, StockService


@pytest.fixture
def service():
    return StockService({"foo": 10, "bar": 5})


def test_reserve_decrements_each_item(service):
    assert service.reserve(["foo", "bar"]) is True
    assert service.quantity("foo") == 9
    assert service.quantity("bar") == 4


def test_unknown_item_raises_and_leaves_stock(service):
    with pytest.raises(StockError, match="not recognized"):
        service.reserve(["foo", "missing"])
    assert service.quantity("foo") == 10


def test_out_of_stock_raises_and_leaves_stock():
    service = StockService({"foo": 1, "bar": 3})
    service.reserve(["foo"])
    with pytest.raises(StockError, match="out of stock"):
        service.reserve(["bar", "foo"])
    assert service.quantity("bar") == 3
    assert service.quantity("foo") == 0


def test_error_message_names_the_item(service):
    with pytest.raises(StockError) as info:
        service.reserve(["widget"])
    assert '"widget"' in str(info.value)


def test_empty_reservation_succeeds(service):
    assert service.reserve([]) is True
    assert service.quantity("bar") == 5


def test_quantity_of_unknown_item_raises(service):
    with pytest.raises(StockError, match="not recognized"):
        service.quantity("missing")


def test_initial_mapping_is_not_modified():
    initial = {"foo": 2}
    service = StockService(initial)
    service.reserve(["foo"])
    assert initial == {"foo": 2}
    assert service.quantity("foo") == 1


def test_concurrent_reservations_never_oversell():
    service = StockService({"foo": 10})
    results = []

    def worker():
        try:
            results.append(service.reserve(["foo"]))
        except StockError:
            results.append(False)

    threads = [threading.Thread(target=worker) for _ in range(25)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert results.count(True) == 10
    assert service.quantity("foo") == 0