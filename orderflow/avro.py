"""Avro binary encoding of the two OrderCreated schema versions."""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field
from typing import ClassVar

_LONG_MIN = -(1 << 63)
_LONG_MAX = (1 << 63) - 1
_DOUBLE = struct.Struct("<d")

_BASE_FIELDS = [
    {"name": "orderID", "type": "string"},
    {"name": "userID", "type": "string"},
    {"name": "items", "type": {"items": "string", "type": "array"}},
    {"name": "total", "type": "double"},
]
_PROMO_FIELD = {"default": None, "name": "promoCode", "type": ["null", "string"]}
_SCHEMA_NAME = "ecommerce.OrderCreated"


def _schema(fields: list[dict]) -> str:
    return json.dumps(
        {"fields": fields, "name": _SCHEMA_NAME, "type": "record"},
        sort_keys=True,
        separators=(",", ":"),
    )


class AvroDecodeError(ValueError):
    """Raised when bytes do not hold a valid record for the schema."""


class _Writer:
    def __init__(self) -> None:
        self.buffer = bytearray()

    def long(self, value: int) -> None:
        if not _LONG_MIN <= value <= _LONG_MAX:
            raise OverflowError(f"{value} does not fit an Avro long")
        zigzag = (value << 1) ^ (value >> 63)
        while zigzag > 0x7F:
            self.buffer.append((zigzag & 0x7F) | 0x80)
            zigzag >>= 7
        self.buffer.append(zigzag)

    def string(self, value: str) -> None:
        encoded = value.encode("utf-8")
        self.long(len(encoded))
        self.buffer += encoded

    def double(self, value: float) -> None:
        self.buffer += _DOUBLE.pack(value)

    def string_array(self, values: list[str]) -> None:
        if values:
            self.long(len(values))
            for value in values:
                self.string(value)
        self.long(0)

    def optional_string(self, value: str | None) -> None:
        if value is None:
            self.long(0)
        else:
            self.long(1)
            self.string(value)


class _Reader:
    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise AvroDecodeError("unexpected end of data")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def long(self) -> int:
        result = 0
        shift = 0
        while True:
            if shift >= 64:
                raise AvroDecodeError("varint is too long")
            byte = self._take(1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                break
            shift += 7
        return (result >> 1) ^ -(result & 1)

    def string(self) -> str:
        size = self.long()
        if size < 0:
            raise AvroDecodeError(f"negative string length {size}")
        try:
            return self._take(size).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AvroDecodeError(f"invalid UTF-8 in string: {exc}") from exc

    def double(self) -> float:
        return _DOUBLE.unpack(self._take(_DOUBLE.size))[0]

    def string_array(self) -> list[str]:
        items: list[str] = []
        while True:
            count = self.long()
            if count == 0:
                return items
            if count < 0:
                count = -count
                self.long()  # block size in bytes, not needed to decode
            items.extend(self.string() for _ in range(count))

    def optional_string(self) -> str | None:
        index = self.long()
        if index == 0:
            return None
        if index == 1:
            return self.string()
        raise AvroDecodeError(f"union index {index} out of range")


@dataclass
class OrderCreatedV1:
    """OrderCreated record, schema version 1."""

    SCHEMA: ClassVar[str] = _schema(_BASE_FIELDS)
    SCHEMA_NAME: ClassVar[str] = _SCHEMA_NAME
    FINGERPRINT: ClassVar[bytes] = b"dN\x08\xe7\xabo\xe3\xaf"

    order_id: str = ""
    user_id: str = ""
    items: list[str] = field(default_factory=list)
    total: float = 0.0

    def serialize(self) -> bytes:
        writer = _Writer()
        writer.string(self.order_id)
        writer.string(self.user_id)
        writer.string_array(self.items)
        writer.double(self.total)
        return bytes(writer.buffer)

    @classmethod
    def deserialize(cls, data: bytes | bytearray | memoryview) -> OrderCreatedV1:
        reader = _Reader(data)
        return cls(
            order_id=reader.string(),
            user_id=reader.string(),
            items=reader.string_array(),
            total=reader.double(),
        )


@dataclass
class OrderCreatedV2:
    """OrderCreated record, schema version 2, with an optional promo code."""

    SCHEMA: ClassVar[str] = _schema([*_BASE_FIELDS, _PROMO_FIELD])
    SCHEMA_NAME: ClassVar[str] = _SCHEMA_NAME
    FINGERPRINT: ClassVar[bytes] = b"\xed\t_U\xbf\xc7\x03Q"

    order_id: str = ""
    user_id: str = ""
    items: list[str] = field(default_factory=list)
    total: float = 0.0
    promo_code: str | None = None

    def serialize(self) -> bytes:
        writer = _Writer()
        writer.string(self.order_id)
        writer.string(self.user_id)
        writer.string_array(self.items)
        writer.double(self.total)
        writer.optional_string(self.promo_code)
        return bytes(writer.buffer)

    @classmethod
    def deserialize(cls, data: bytes | bytearray | memoryview) -> OrderCreatedV2:
        reader = _Reader(data)
        return cls(
            order_id=reader.string(),
            user_id=reader.string(),
            items=reader.string_array(),
            total=reader.double(),
            promo_code=reader.optional_string(),
        )