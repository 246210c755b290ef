"""Structured logger construction and HTTP request logging."""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime

from flask import Flask, g, request

LOGGER_NAME = "orderflow"

_LEVELS = {
    "": logging.INFO,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}
_NAMES = {logging.DEBUG: "debug", logging.INFO: "info", logging.WARNING: "warn",
          logging.ERROR: "error", logging.CRITICAL: "fatal"}


class _Formatter(logging.Formatter):
    """JSON objects or tab-separated console lines, with fields from ``extra={"fields": ...}``."""

    def __init__(self, as_json: bool) -> None:
        super().__init__()
        self._as_json = as_json

    def format(self, record: logging.LogRecord) -> str:
        level = _NAMES.get(record.levelno, record.levelname.lower())
        caller = f"{record.filename}:{record.lineno}"
        fields = dict(getattr(record, "fields", None) or {})
        trace = self.formatException(record.exc_info) if record.exc_info else None
        if self._as_json:
            entry = {"level": level, "ts": record.created, "caller": caller,
                     "msg": record.getMessage(), **fields}
            if trace:
                entry["stacktrace"] = trace
            return json.dumps(entry, default=str)
        stamp = datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")
        parts = [stamp, level.upper(), caller, record.getMessage()]
        if fields:
            parts.append(json.dumps(fields, default=str))
        line = "\t".join(parts)
        return f"{line}\n{trace}" if trace else line


def new_logger(env: str, level: str) -> logging.Logger:
    """Return the service logger: JSON for ``prod``, console lines otherwise.

    Raises :class:`ValueError` for an unknown level name.
    """
    try:
        numeric = _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f'unrecognized level: "{level}"') from None
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_Formatter(as_json=env == "prod"))
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
    return logger


def install_request_logging(app: Flask, logger: logging.Logger) -> Flask:
    """Log method, path, status, latency and client IP of every request ``app`` handles."""

    @app.before_request
    def _start_timer() -> None:
        g._request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("_request_started")
        latency = time.perf_counter() - started if started is not None else 0.0
        logger.info("HTTP request", extra={"fields": {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "latency": latency,
            "clientIP": request.remote_addr,
        }})
        return response

    return app