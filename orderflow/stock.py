"""In-memory stock levels with all-or-nothing reservation."""

from __future__ import annotations

import json
import threading
from typing import Iterable, Mapping


class StockError(Exception):
    """Raised when an item is unknown or out of stock."""


def _unknown(item: str) -> StockError:
    return StockError(f"item {json.dumps(item, ensure_ascii=False)} not recognized")


class StockService:
    """Thread-safe available quantities per item."""

    def __init__(self, initial: Mapping[str, int]) -> None:
        self._lock = threading.Lock()
        self._stock = dict(initial)

    def reserve(self, items: Iterable[str]) -> bool:
        """Take one unit of every item and return ``True``, or raise :class:`StockError` and take none."""
        wanted = list(items)
        with self._lock:
            for item in wanted:
                if item not in self._stock:
                    raise _unknown(item)
                if self._stock[item] < 1:
                    raise StockError(f"item {json.dumps(item, ensure_ascii=False)} out of stock")
            for item in wanted:
                self._stock[item] -= 1
        return True

    def quantity(self, item: str) -> int:
        """Current quantity of ``item``; raises :class:`StockError` if it is unknown."""
        with self._lock:
            if item not in self._stock:
                raise _unknown(item)
            return self._stock[item]