import json
import logging

import pytest
from flask import Flask

from orderflow.logs import install_request_logging, new_logger


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def _record(logger, message, fields):
    return logger.makeRecord(
        logger.name, logging.INFO, __file__, 1, message, None, None, extra={"fields": fields}
    )


def test_level_is_applied():
    logger = new_logger("prod", "debug")
    assert logger.level == logging.DEBUG
    assert logger.isEnabledFor(logging.DEBUG)


def test_info_level_filters_debug():
    logger = new_logger("dev", "info")
    assert not logger.isEnabledFor(logging.DEBUG)
    assert logger.isEnabledFor(logging.INFO)


def test_level_names_are_case_insensitive():
    assert new_logger("dev", "WARN").level == logging.WARNING


def test_empty_level_means_info():
    assert new_logger("dev", "").level == logging.INFO


def test_unknown_level_raises():
    with pytest.raises(ValueError, match="unrecognized level"):
        new_logger("dev", "loud")


def test_repeated_construction_keeps_one_handler():
    new_logger("dev", "info")
    logger = new_logger("prod", "info")
    assert len(logger.handlers) == 1


def test_prod_formats_json_with_fields():
    logger = new_logger("prod", "info")
    line = logger.handlers[0].formatter.format(_record(logger, "hello", {"orderID": "o-1"}))
    entry = json.loads(line)
    assert entry["msg"] == "hello"
    assert entry["orderID"] == "o-1"
    assert entry["level"] == "info"


def test_dev_formats_console_line():
    logger = new_logger("dev", "info")
    line = logger.handlers[0].formatter.format(_record(logger, "hello", {"orderID": "o-1"}))
    parts = line.split("\t")
    assert parts[1] == "INFO"
    assert parts[3] == "hello"
    assert json.loads(parts[4]) == {"orderID": "o-1"}


@pytest.fixture
def captured():
    logger = logging.getLogger("tests.requests")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    handler = _ListHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


def test_request_is_logged(captured):
    logger, handler = captured
    app = Flask("request-logging")

    @app.route("/ping")
    def ping():
        return "ok", 201

    install_request_logging(app, logger)
    response = app.test_client().get("/ping")
    assert response.status_code == 201
    assert len(handler.records) == 1
    record = handler.records[0]
    assert record.getMessage() == "HTTP request"
    assert record.fields["method"] == "GET"
    assert record.fields["path"] == "/ping"
    assert record.fields["status"] == 201
    assert record.fields["latency"] >= 0


def test_unknown_route_is_logged_with_its_status(captured):
    logger, handler = captured
    app = Flask("request-logging-404")
    install_request_logging(app, logger)
    response = app.test_client().post("/missing")
    assert response.status_code == 404
    assert [r.fields["status"] for r in handler.records] == [404]
    assert handler.records[0].fields["method"] == "POST"