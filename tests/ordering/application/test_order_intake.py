"""Application tests for OrderIntakeService: all-or-nothing order creation."""

import threading

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.exceptions import ConflictError, InsufficientStock, PersistenceError
from storefront.ordering.intake import CartSelection, OrderIntakeService
from storefront.ordering.order import OrderStatus


def _stored_orders(services):
    return services.orders.with_status(*[s.value for s in OrderStatus])


class TestCreateOrder:
    def test_creates_pending_order_and_takes_stock(self, services, ledger, place_order):
        order = place_order(
            CartSelection(product_id="prod-1", quantity=2, unit_price=10_000),
            CartSelection(product_id="prod-3", variant_id="var-red", quantity=1, unit_price=5_000, option_surcharge=1_000),
        )

        stored = services.orders.get(order.id)
        assert stored.status == OrderStatus.PENDING.value
        assert stored.total_amount == 26_000
        assert len(stored.lines) == 2
        assert stored.shipping.recipient_name == "Kim Minji"
        assert ledger.available("prod-1") == 3
        assert ledger.available("prod-3", "var-red") == 3

    def test_ignores_declared_total(self, services, shopper, shipping):
        order = services.intake.create_order(
            owner_id=shopper.subject,
            selections=[CartSelection(product_id="prod-1", quantity=1, unit_price=10_000)],
            shipping=shipping,
            declared_total=1,
        )
        assert order.total_amount == 10_000
        assert order.declared_total == 1

    def test_empty_cart_is_rejected(self, services, shopper, shipping, ledger):
        with pytest.raises(ValidationError) as exc:
            services.intake.create_order(owner_id=shopper.subject, selections=[], shipping=shipping)
        assert "items" in exc.value.messages
        assert ledger.movements == []

    def test_unknown_product_is_rejected_before_any_write(self, services, place_order, ledger):
        with pytest.raises(ValidationError) as exc:
            place_order(
                CartSelection(product_id="prod-1", quantity=1, unit_price=10_000),
                CartSelection(product_id="prod-404", quantity=1, unit_price=10_000),
            )
        assert any("prod-404" in message for message in exc.value.messages["items"])
        assert ledger.movements == []
        assert _stored_orders(services) == []

    def test_unknown_variant_is_rejected(self, place_order):
        with pytest.raises(ValidationError):
            place_order(CartSelection(product_id="prod-3", variant_id="var-green", quantity=1, unit_price=5_000))

    def test_incomplete_shipping_is_rejected(self, services, shopper, ledger):
        with pytest.raises(ValidationError):
            services.intake.create_order(
                owner_id=shopper.subject,
                selections=[CartSelection(product_id="prod-1", quantity=1, unit_price=10_000)],
                shipping={"recipient_name": "Kim Minji"},
            )
        assert ledger.movements == []
        assert _stored_orders(services) == []


class TestCreateOrderRollback:
    def test_insufficient_stock_on_a_later_line_undoes_earlier_lines(self, services, ledger, place_order):
        with pytest.raises(InsufficientStock) as exc:
            place_order(
                CartSelection(product_id="prod-1", quantity=2, unit_price=10_000),
                CartSelection(product_id="prod-3", variant_id="var-blue", quantity=3, unit_price=5_000),
            )

        assert ledger.available("prod-1") == 5
        assert ledger.available("prod-3", "var-blue") == 2
        assert _stored_orders(services) == []
        assert exc.value.details["rollback"]["failed"] == []
        assert "delete order" in exc.value.details["rollback"]["compensated"]

    def test_stock_is_never_oversold_across_orders(self, services, ledger, place_order):
        place_order(CartSelection(product_id="prod-1", quantity=3, unit_price=10_000))

        with pytest.raises(InsufficientStock):
            place_order(CartSelection(product_id="prod-1", quantity=3, unit_price=10_000))

        assert ledger.available("prod-1") == 2
        assert len(_stored_orders(services)) == 1

    def test_failed_insert_removes_partial_order(self, services, ledger, place_order, monkeypatch):
        real_add = services.orders.add
        created = []

        def add_then_fail(order):
            real_add(order)
            created.append(str(order.id))
            raise PersistenceError("connection lost after insert")

        monkeypatch.setattr(services.orders, "add", add_then_fail)

        with pytest.raises(PersistenceError) as exc:
            place_order()

        with pytest.raises(ObjectNotFoundError):
            services.orders.get(created[0])
        assert ledger.movements == []
        assert exc.value.details["rollback"]["compensated"] == ["delete order"]

    def test_failed_decrement_restocks_and_removes_order(self, services, ledger, place_order, monkeypatch):
        real_decrement = ledger.decrement
        calls = []

        def decrement_once(product_id, variant_id, quantity):
            calls.append(product_id)
            if len(calls) > 1:
                raise PersistenceError("ledger unavailable")
            return real_decrement(product_id, variant_id, quantity)

        monkeypatch.setattr(ledger, "decrement", decrement_once)

        with pytest.raises(PersistenceError):
            place_order(
                CartSelection(product_id="prod-1", quantity=2, unit_price=10_000),
                CartSelection(product_id="prod-2", quantity=1, unit_price=3_000),
            )

        assert ledger.available("prod-1") == 5
        assert ledger.available("prod-2") == 10
        assert _stored_orders(services) == []

    def test_incomplete_rollback_is_reported(self, services, ledger, place_order, monkeypatch):
        def broken_remove(order_id):
            raise PersistenceError("cannot delete")

        monkeypatch.setattr(services.orders, "remove", broken_remove)

        with pytest.raises(InsufficientStock) as exc:
            place_order(CartSelection(product_id="prod-1", quantity=6, unit_price=10_000))

        assert exc.value.details["rollback"]["failed"] == ["delete order"]


class LockedOrderStore:
    """Dict-backed order store that can be shared between threads."""

    def __init__(self):
        self.orders = {}
        self._lock = threading.Lock()

    def add(self, order):
        with self._lock:
            self.orders[str(order.id)] = order
        return order

    def remove(self, order_id):
        with self._lock:
            return self.orders.pop(str(order_id), None) is not None


class TestConcurrentCreateOrder:
    def test_racing_checkouts_never_oversell(self, shipping):
        from storefront.domain import storefront
        from storefront.inventory.ledger import MemoryInventoryLedger

        ledger = MemoryInventoryLedger({"prod-1": 10})
        orders = LockedOrderStore()
        intake = OrderIntakeService(orders, ledger)
        created = []
        conflicts = []
        barrier = threading.Barrier(25)

        def checkout(index):
            with storefront.domain_context():
                barrier.wait()
                try:
                    order = intake.create_order(
                        owner_id=f"shopper-{index}",
                        selections=[CartSelection(product_id="prod-1", quantity=1, unit_price=1_000)],
                        shipping=shipping,
                    )
                    created.append(order)
                except ConflictError:
                    conflicts.append(index)

        threads = [threading.Thread(target=checkout, args=(i,)) for i in range(25)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 10
        assert len(conflicts) == 15
        assert ledger.available("prod-1") == 0
        # Losing checkouts rolled their orders back
        assert set(orders.orders) == {str(o.id) for o in created}
