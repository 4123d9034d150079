"""InventoryLedger port and the in-process adapter.

Stock is tracked per product, or per product variant when the product sells
in variants. The only way to change a level is ``decrement``/``increment``,
each of which is atomic with respect to concurrent callers: a decrement
either takes the full quantity or fails with ``InsufficientStock`` and
leaves the level untouched. Available quantity never goes below zero.
"""

import threading
from abc import ABC, abstractmethod

from storefront.exceptions import InsufficientStock


def stock_key(product_id, variant_id=None) -> str:
    """Ledger key for a product, or for one of its variants."""
    if variant_id in (None, ""):
        return str(product_id)
    return f"{product_id}:{variant_id}"


class InventoryLedger(ABC):
    """Abstract stock ledger."""

    @abstractmethod
    def exists(self, product_id, variant_id=None) -> bool:
        """Whether a stock level is tracked for the product/variant."""
        ...

    @abstractmethod
    def available(self, product_id, variant_id=None) -> int | None:
        """Current available quantity, or None when untracked."""
        ...

    @abstractmethod
    def decrement(self, product_id, variant_id, quantity: int) -> int:
        """Atomically take ``quantity`` units; returns the new level.

        Raises:
            InsufficientStock: fewer than ``quantity`` units are available,
                or the product/variant is not tracked.
        """
        ...

    @abstractmethod
    def increment(self, product_id, variant_id, quantity: int) -> int:
        """Atomically return ``quantity`` units; returns the new level."""
        ...

    @abstractmethod
    def set_level(self, product_id, variant_id, quantity: int) -> None:
        """Create or overwrite a stock level (seeding and stock counts)."""
        ...


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise ValueError(f"Stock movements must be positive, got {quantity}")


class MemoryInventoryLedger(InventoryLedger):
    """Thread-safe in-memory ledger for development and tests."""

    def __init__(self, levels: dict[str, int] | None = None) -> None:
        self._lock = threading.Lock()
        self._levels: dict[str, int] = dict(levels or {})
        self.movements: list[tuple[str, str, int]] = []

    def exists(self, product_id, variant_id=None) -> bool:
        with self._lock:
            return stock_key(product_id, variant_id) in self._levels

    def available(self, product_id, variant_id=None) -> int | None:
        with self._lock:
            return self._levels.get(stock_key(product_id, variant_id))

    def decrement(self, product_id, variant_id, quantity: int) -> int:
        _check_quantity(quantity)
        key = stock_key(product_id, variant_id)
        with self._lock:
            current = self._levels.get(key)
            if current is None or current < quantity:
                raise InsufficientStock(
                    "Not enough stock available",
                    product_id=str(product_id),
                    variant_id=str(variant_id) if variant_id else None,
                    requested=quantity,
                    available=current or 0,
                )
            self._levels[key] = current - quantity
            self.movements.append(("decrement", key, quantity))
            return self._levels[key]

    def increment(self, product_id, variant_id, quantity: int) -> int:
        _check_quantity(quantity)
        key = stock_key(product_id, variant_id)
        with self._lock:
            self._levels[key] = self._levels.get(key, 0) + quantity
            self.movements.append(("increment", key, quantity))
            return self._levels[key]

    def set_level(self, product_id, variant_id, quantity: int) -> None:
        if quantity < 0:
            raise ValueError("Stock level cannot be negative")
        with self._lock:
            self._levels[stock_key(product_id, variant_id)] = quantity
