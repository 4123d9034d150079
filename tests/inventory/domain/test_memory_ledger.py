"""Tests for the in-memory InventoryLedger."""

import threading

import pytest
from storefront.exceptions import InsufficientStock
from storefront.inventory.ledger import MemoryInventoryLedger, stock_key


class TestStockKey:
    def test_product_only(self):
        assert stock_key("prod-1") == "prod-1"

    def test_product_and_variant(self):
        assert stock_key("prod-1", "var-red") == "prod-1:var-red"

    def test_empty_variant_is_product_level(self):
        assert stock_key("prod-1", "") == "prod-1"


class TestMemoryLedger:
    def test_decrement_reduces_level(self):
        ledger = MemoryInventoryLedger({"prod-1": 5})
        assert ledger.decrement("prod-1", None, 2) == 3
        assert ledger.available("prod-1") == 3

    def test_decrement_to_zero(self):
        ledger = MemoryInventoryLedger({"prod-1": 2})
        assert ledger.decrement("prod-1", None, 2) == 0

    def test_decrement_beyond_level_is_rejected_and_leaves_level(self):
        ledger = MemoryInventoryLedger({"prod-1": 1})
        with pytest.raises(InsufficientStock) as exc:
            ledger.decrement("prod-1", None, 2)
        assert exc.value.details["requested"] == 2
        assert exc.value.details["available"] == 1
        assert ledger.available("prod-1") == 1

    def test_untracked_product_has_no_stock(self):
        ledger = MemoryInventoryLedger()
        assert ledger.exists("prod-x") is False
        assert ledger.available("prod-x") is None
        with pytest.raises(InsufficientStock):
            ledger.decrement("prod-x", None, 1)

    def test_variant_levels_are_independent(self):
        ledger = MemoryInventoryLedger({"prod-3:var-red": 4, "prod-3:var-blue": 2})
        ledger.decrement("prod-3", "var-red", 3)
        assert ledger.available("prod-3", "var-red") == 1
        assert ledger.available("prod-3", "var-blue") == 2
        assert ledger.exists("prod-3") is False

    def test_increment_creates_missing_level(self):
        ledger = MemoryInventoryLedger()
        assert ledger.increment("prod-1", None, 3) == 3

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_movements_must_be_positive(self, quantity):
        ledger = MemoryInventoryLedger({"prod-1": 5})
        with pytest.raises(ValueError):
            ledger.decrement("prod-1", None, quantity)
        with pytest.raises(ValueError):
            ledger.increment("prod-1", None, quantity)

    def test_set_level_rejects_negative(self):
        with pytest.raises(ValueError):
            MemoryInventoryLedger().set_level("prod-1", None, -1)

    def test_movements_are_recorded(self):
        ledger = MemoryInventoryLedger({"prod-1": 5})
        ledger.decrement("prod-1", None, 2)
        ledger.increment("prod-1", None, 2)
        assert ledger.movements == [("decrement", "prod-1", 2), ("increment", "prod-1", 2)]


class TestConcurrentDecrements:
    def test_racing_decrements_never_oversell(self):
        ledger = MemoryInventoryLedger({"prod-1": 10})
        successes = []
        failures = []
        barrier = threading.Barrier(25)

        def take():
            barrier.wait()
            try:
                ledger.decrement("prod-1", None, 1)
                successes.append(1)
            except InsufficientStock:
                failures.append(1)

        threads = [threading.Thread(target=take) for _ in range(25)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 10
        assert len(failures) == 15
        assert ledger.available("prod-1") == 0
