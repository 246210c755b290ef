# orderflow

Building blocks for an event-driven shop backend. An order moves through four
stages:

1. **Order intake**: a Flask endpoint, `POST /orders`, checks the order and
   publishes an `OrderCreated` event.
2. **Inventory**: a consumer reserves stock for every item in the order. It
   then emits either `InventoryReserved` or `InventoryFailed`.
3. **Notification**: a consumer reads both inventory topics and passes each
   event to a notification sink.
4. **Metrics**: an aggregator counts incoming orders and publishes a `Metric`
   each time it is flushed.

Publishers retry with exponential backoff. Publishers and sinks skip any order
ID they have already handled, so a redelivered message does no harm.

## Topics and messages

| Topic                | Written by                                      | Payload             |
|----------------------|-------------------------------------------------|---------------------|
| `orders.created`     | `OrderProducer`                                 | `OrderCreated`      |
| `inventory.reserved` | `InventoryProducer`, `TransactionalProducer`    | `InventoryReserved` |
| `inventory.failed`   | `InventoryProducer`, `TransactionalProducer`    | `InventoryFailed`   |
| `metrics.order.rate` | `OrderRateAggregator`                           | `Metric`            |

`orderflow.messaging` provides the following:

- `Message`: a frozen record with `key`, `value`, `topic` and `offset`.
- `InMemoryTopic(name)`: a single-partition topic held in memory.
  - `write(message)` appends the message and returns it with its topic and
    offset filled in.
  - `fetch(timeout)` returns the next unread message. It returns `None` on
    timeout and raises `EOFError` once the topic is closed.
  - `commit(message)` records progress.
  - `close()` closes the topic.
  - The properties `messages`, `committed` and `closed` expose its state.
- `publish_with_retry(writer, message, attempts=5, initial_delay=0.1, logger=None, sleep=time.sleep)`:
  writes through any object that has a `write(message)` method. The wait
  doubles after each failure. When every attempt fails it raises
  `PublishError`.

Readers and writers can be any objects with the same methods as
`InMemoryTopic`.

## Event models

`orderflow.models` defines three dataclasses: `OrderCreated`,
`InventoryReserved` and `InventoryFailed`. Each has `to_json()`, which returns
compact JSON bytes, and `from_json(data)`, a classmethod.

On decoding:

- Member names match case-insensitively.
- A `null` member counts as absent.
- A member of the wrong type raises `ValueError`.

## Configuration

`orderflow.config.load_config(environ=None, config_dir=None)` returns a
`Config` with these fields:

- `env`: taken from `APP_ENV`, `"dev"` by default.
- `kafka_brokers`: taken from `APP_KAFKA_BROKERS`, split on whitespace.
  Defaults to `["localhost:9092"]`.
- `log_level`: taken from `APP_LOG_LEVEL`, `"info"` by default.

`environ` defaults to `os.environ` and `config_dir` defaults to `./config`.

If that directory holds a profile file named `<env>.json`, `<env>.yaml` or
`<env>.yml`, its keys are read case-insensitively. Non-empty environment
variables take precedence over the file. A missing or unreadable profile file
is ignored.

## Logging

`orderflow.logs.new_logger(env, level)` configures and returns the
`orderflow` logger:

- With `"prod"` it writes JSON lines to standard error.
- With any other environment it writes tab-separated console lines.
- Level names are `debug`, `info`, `warn`, `error`, `dpanic`, `panic` and
  `fatal`, matched case-insensitively. Any other name raises `ValueError`.
- Structured fields are passed as `extra={"fields": {...}}`.

`install_request_logging(app, logger)` logs every request that a Flask app
handles. Each entry records the method, path, status, latency and client IP.

## Stock reservation

```python
from orderflow.stock import StockError, StockService

stock = StockService({"foo": 10, "bar": 5})
stock.reserve(["foo", "bar"])      # True; both quantities drop by one
stock.quantity("foo")              # 9

try:
    stock.reserve(["foo", "baz"])
except StockError as exc:
    print(exc)                     # item "baz" not recognized
```

A reservation is all or nothing. If any item is unknown or out of stock, it
raises `StockError` and no quantity changes.

## Taking orders over HTTP

```python
from orderflow.logs import new_logger
from orderflow.messaging import InMemoryTopic
from orderflow.order_api import create_app
from orderflow.order_producer import OrderProducer

logger = new_logger("dev", "info")
orders = InMemoryTopic("orders.created")
app = create_app(OrderProducer(orders, logger), logger)

response = app.test_client().post(
    "/orders",
    json={"order_id": "o-1", "user_id": "u-1", "items": ["foo"], "total": 9.5},
)
response.status_code               # 202
```

`POST /orders` takes JSON with `order_id`, `user_id`, `items` and `total`. It
answers as follows:

- `202` with `{"status": "order received", "order_id": ...}` when the order
  is accepted.
- `400` with `{"error": "invalid JSON payload"}` when the body is not a
  suitable JSON object.
- `400` with `{"error": "user_id, items and total are required"}` when
  `user_id` is empty, `items` is empty or `total` is not positive.
- `500` with `{"error": "failed to publish event"}` when the producer raises.

`OrderProducer.publish(event)` returns `False` and writes nothing for an order
ID it has already seen. The endpoint still answers `202` in that case.

## Inventory

`orderflow.inventory_producer.InventoryProducer(reserved_writer, failed_writer, logger=None, sleep=time.sleep)`
has two publishing methods:

- `emit_reserved(event)` publishes to the reserved writer.
- `emit_failed(event)` publishes to the failed writer.

An order ID is published at most once across both writers.

`orderflow.inventory_consumer.InventoryConsumer(reader, producer, stock_service, logger=None)`
runs with `run(stop)` until the `threading.Event` is set or the reader fails.
For each message it does the following:

1. Decodes the order.
2. Reserves stock.
3. Emits the outcome.
4. Commits the message.

An undecodable payload is committed and skipped. If emitting fails, the
message is left uncommitted.

`orderflow.transactional.TransactionalProducer(sender, logger=None)`
deduplicates by order ID and reserves stock. It then sends the outcome through
`sender.send(message)`, routed by `message.topic`.

`process(order, message, session, stock_service)` calls
`session.mark_message(message)` only once the outcome is sent, or when the
order is a duplicate. If the send fails it raises `PublishError`.

`orderflow.inventory_consumer.TxConsumer(group, producer, stock_service, logger=None)`
is a consumer-group handler. It uses two methods:

- `consume_claim(session, messages)` hands each order to the producer.
- `run(stop)` calls `group.consume(["orders.created"], handler, stop)`
  repeatedly until `stop` is set.

## Notifications

`orderflow.sinks` provides the following:

- `NotificationSink`: the abstract base, with `notify_reserved(event)` and
  `notify_failed(event)`.
- `ConsoleSink`: logs each reservation and each failure.
- `RetryDedupeSink(inner, logger=None, sleep=time.sleep)`: wraps another
  sink. It tries each delivery up to three times, waiting 0.1 s and then
  0.2 s between tries. It returns `False` for an order ID already handled.
  It raises `NotificationError` when every attempt fails.

`orderflow.notification_consumer.NotificationConsumer(reserved_reader, failed_reader, sink, logger=None)`
runs one worker thread per reader. `run(stop)` blocks until `stop` is set.
Every fetched message is committed, whether or not the notification
succeeded.

## Order-rate metrics

`orderflow.aggregator.OrderRateAggregator(writer, logger=None, clock=...)`
counts orders and publishes the count.

- `record(payload)` counts a payload that decodes as an order of either
  schema version. Other payloads are logged and not counted.
- `consume(reader, stop)` records every message a reader yields.
- `flush()` does the following:
  1. Writes a message keyed by the window start in RFC 3339 form, for
     example `2024-05-01T12:34:00Z`.
  2. Uses as its value `Metric.to_json()`, which is
     `{"window_start": ..., "count": ...}`.
  3. Starts a new window at the current minute, by
     `truncate_to_minute(clock())`.
  4. Returns the `Metric`.

The aggregator has no timer of its own. To get a per-minute rate, the caller
must call `flush()` once a minute.

## Avro order records

`orderflow.avro.OrderCreatedV1` and `OrderCreatedV2` encode and decode the
`ecommerce.OrderCreated` record in Avro binary form. Version 2 adds an
optional `promo_code`, which appears in the schema as `promoCode`.

- `serialize()` returns bytes.
- The classmethod `deserialize(data)` builds a record from bytes.
- Truncated or malformed input raises `AvroDecodeError`.
- Each class carries its schema JSON in `SCHEMA`, its name in `SCHEMA_NAME`
  and its CRC-64 fingerprint in `FINGERPRINT`.

## What this package does not do

- It has no client for a real message broker. Topics are `InMemoryTopic`
  objects, or objects you supply with the same methods.
- It has no schema-registry client.
- It installs no commands and has no service entry points. Wiring the parts
  together, running the Flask app under a server, handling shutdown signals
  and scheduling `flush()` are left to the application.

## Running the tests

Install the `test` extra, then run `pytest` from the project root.