"""Order intake over HTTP, stock reservation, notifications, order-rate metrics and Avro order records."""

__version__ = "0.1.0"