import json

import pytest

from orderflow.messaging import InMemoryTopic
from orderflow.models import OrderCreated
from orderflow.order_api import create_app
from orderflow.order_producer import OrderProducer


class FailingWriter:
    def write(self, message):
        raise ConnectionError("broker down")

    def close(self):
        pass


@pytest.fixture
def topic():
    return InMemoryTopic("orders.created")


@pytest.fixture
def client(topic):
    app = create_app(OrderProducer(topic, sleep=lambda _: None))
    return app.test_client()


def post(client, payload):
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return client.post("/orders", data=body, content_type="application/json")


def test_valid_order_is_accepted_and_published(client, topic):
    payload = {"order_id": "o-1", "user_id": "u-1", "items": ["foo"], "total": 9.5}
    response = post(client, payload)
    assert response.status_code == 202
    assert response.get_json() == {"status": "order received", "order_id": "o-1"}
    (message,) = topic.messages
    assert OrderCreated.from_json(message.value) == OrderCreated("o-1", "u-1", ["foo"], 9.5)


def test_malformed_json_is_rejected(client, topic):
    response = post(client, "{not json")
    assert response.status_code == 400
    assert response.get_json() == {"error": "invalid JSON payload"}
    assert topic.messages == ()


@pytest.mark.parametrize(
    "payload",
    [
        {"order_id": "o-1", "items": ["foo"], "total": 3},
        {"order_id": "o-1", "user_id": "u-1", "items": [], "total": 3},
        {"order_id": "o-1", "user_id": "u-1", "items": ["foo"], "total": 0},
        {"order_id": "o-1", "user_id": "u-1", "items": ["foo"], "total": -2},
    ],
)
def test_incomplete_order_is_rejected(client, topic, payload):
    response = post(client, payload)
    assert response.status_code == 400
    assert response.get_json() == {"error": "user_id, items and total are required"}
    assert topic.messages == ()


def test_publish_failure_returns_server_error():
    app = create_app(OrderProducer(FailingWriter(), sleep=lambda _: None))
    payload = {"order_id": "o-1", "user_id": "u-1", "items": ["foo"], "total": 1}
    response = post(app.test_client(), payload)
    assert response.status_code == 500
    assert response.get_json() == {"error": "failed to publish event"}


def test_duplicate_order_is_accepted_but_published_once(client, topic):
    payload = {"order_id": "o-7", "user_id": "u-1", "items": ["foo"], "total": 1}
    assert post(client, payload).status_code == 202
    assert post(client, payload).status_code == 202
    assert [m.key for m in topic.messages] == [b"o-7"]