"""JSON event payloads exchanged between the services."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def _encode(event: Any) -> bytes:
    payload = {
        key: int(value) if isinstance(value, float) and value.is_integer() and abs(value) < 1e21 else value
        for key, value in asdict(event).items()
    }
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    for char, escape in _ESCAPES.items():
        text = text.replace(char, escape)
    return text.encode("utf-8")


def _text(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a string")
    return value


def _texts(value: Any, name: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"field {name!r} must be an array of strings")
    return [_text("" if item is None else item, name) for item in value]


def _float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {name!r} must be a number")
    return float(value)


_FIELDS = {
    "order_id": (_text, ""),
    "user_id": (_text, ""),
    "items": (_texts, []),
    "total": (_float, 0.0),
    "reason": (_text, ""),
}


def _decode(data: bytes | str, names: tuple[str, ...]) -> dict[str, Any]:
    """Parse a JSON object; member names match case-insensitively and null means absent."""
    try:
        document = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError(f"expected a JSON object, got {type(document).__name__}")
    found = {key.lower(): value for key, value in document.items() if value is not None}
    return {name: _FIELDS[name][0](found.get(name, _FIELDS[name][1]), name) for name in names}


@dataclass
class OrderCreated:
    """Emitted by the order service when an order is accepted."""

    order_id: str = ""
    user_id: str = ""
    items: list[str] = field(default_factory=list)
    total: float = 0.0

    def to_json(self) -> bytes:
        return _encode(self)

    @classmethod
    def from_json(cls, data: bytes | str) -> OrderCreated:
        return cls(**_decode(data, ("order_id", "user_id", "items", "total")))


@dataclass
class InventoryReserved:
    """Emitted when stock for every item of an order was reserved."""

    order_id: str = ""
    items: list[str] = field(default_factory=list)

    def to_json(self) -> bytes:
        return _encode(self)

    @classmethod
    def from_json(cls, data: bytes | str) -> InventoryReserved:
        return cls(**_decode(data, ("order_id", "items")))


@dataclass
class InventoryFailed:
    """Emitted when any item of an order could not be reserved."""

    order_id: str = ""
    items: list[str] = field(default_factory=list)
    reason: str = ""

    def to_json(self) -> bytes:
        return _encode(self)

    @classmethod
    def from_json(cls, data: bytes | str) -> InventoryFailed:
        return cls(**_decode(data, ("order_id", "items", "reason")))