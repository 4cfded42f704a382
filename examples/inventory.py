"""Inventory Example.

A small warehouse domain used to demonstrate substituting concrete behavior.
It has something for every interception path: ordinary methods and a
read/write property (reached by subclass synthesis), an ``async def`` method,
a ``@final`` method, a static method and a class method (reached by
redirection), and a module-level function.

Functions:
    unit_price: Look up the unit price of a SKU
    stock_value: Value of a SKU held by an inventory
"""

from __future__ import annotations

import asyncio
from typing import final

TAX_RATE = 0.2

_PRICES = {"apple": 0.5, "pear": 0.75, "plum": 1.25}


def unit_price(sku: str) -> float:
    """Look up the unit price for a SKU.

    Args:
        sku: Stock keeping unit

    Returns:
        The unit price, 1.0 for unknown SKUs
    """
    return _PRICES.get(sku, 1.0)


def stock_value(inventory: Inventory, sku: str) -> float:
    return inventory.stock_of(sku) * unit_price(sku)


class PriceService:
    """Pricing helpers without instance state."""

    @staticmethod
    def currency() -> str:
        return "EUR"

    @staticmethod
    def total(a: float, b: float) -> float:
        return a + b

    @classmethod
    def with_tax(cls, amount: float) -> float:
        return round(amount * (1 + TAX_RATE), 2)


class Inventory:
    """Stock levels of one warehouse."""

    def __init__(self, warehouse_id: int, label: str | None = None) -> None:
        self.warehouse_id = warehouse_id
        self._stock: dict[str, int] = {}
        self._label = label or f"warehouse-{warehouse_id}"

    @property
    def label(self) -> str:
        return self._label

    @label.setter
    def label(self, value: str) -> None:
        self._label = value

    def stock_of(self, sku: str) -> int:
        return self._stock.get(sku, 0)

    def restock(self, sku: str, quantity: int = 1) -> int:
        """Add ``quantity`` units of ``sku`` and return the new level."""
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        self._stock[sku] = self._stock.get(sku, 0) + quantity
        return self._stock[sku]

    def offset(self, amount: int) -> int:
        return self.warehouse_id + amount

    async def fetch_remote_stock(self, sku: str) -> int:
        await asyncio.sleep(0)
        return self._stock.get(sku, 0)

    @final
    def audit_id(self) -> str:
        return f"audit-{self.warehouse_id}"
