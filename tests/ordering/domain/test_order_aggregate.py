"""Tests for the Order aggregate: creation, totals and status transitions."""

import json
import re

import pytest
from protean.exceptions import ValidationError
from storefront.exceptions import IncompatibleOrderStatus
from storefront.ordering.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderRefunded,
    OrderShipmentReverted,
    OrderStatusSynced,
)
from storefront.ordering.order import Order, OrderLine, OrderStatus

SHIPPING = {"recipient_name": "Kim Minji", "phone": "010-1234-5678", "address": "Seoul"}


def _order(lines=None, **kwargs):
    lines = lines or [{"product_id": "prod-1", "quantity": 2, "unit_price": 10_000}]
    return Order.place(owner_id="shopper-1", lines_data=lines, shipping=SHIPPING, **kwargs)


def _order_in(status: OrderStatus):
    order = _order()
    order.status = status.value
    return order


class TestPlaceOrder:
    def test_total_is_sum_of_lines(self):
        order = _order(
            [
                {"product_id": "prod-1", "quantity": 2, "unit_price": 10_000},
                {"product_id": "prod-3", "variant_id": "var-red", "quantity": 1, "unit_price": 5_000, "option_surcharge": 1_500},
            ]
        )
        assert order.total_amount == 26_500
        assert order.status == OrderStatus.PENDING.value

    def test_line_total_includes_surcharge(self):
        line = OrderLine(product_id="prod-1", quantity=3, unit_price=1_000, option_surcharge=200)
        assert line.line_total == 3_600

    def test_declared_total_is_kept_but_not_used(self):
        order = _order(declared_total=1)
        assert order.declared_total == 1
        assert order.total_amount == 20_000

    def test_order_number_format(self):
        assert re.fullmatch(r"\d{8}-[0-9A-F]{8}", _order().order_number)

    def test_shipping_snapshot_is_copied(self):
        order = _order()
        assert order.shipping.recipient_name == "Kim Minji"
        assert order.shipping.detail_address is None

    def test_requires_lines(self):
        with pytest.raises(ValidationError) as exc:
            Order.place(owner_id="shopper-1", lines_data=[], shipping=SHIPPING)
        assert "lines" in exc.value.messages

    def test_requires_positive_quantity(self):
        with pytest.raises(ValidationError):
            _order([{"product_id": "prod-1", "quantity": 0, "unit_price": 10_000}])

    @pytest.mark.parametrize("missing", ["recipient_name", "phone", "address"])
    def test_requires_recipient_details(self, missing):
        shipping = {k: v for k, v in SHIPPING.items() if k != missing}
        with pytest.raises(ValidationError):
            Order.place(
                owner_id="shopper-1",
                lines_data=[{"product_id": "prod-1", "quantity": 1, "unit_price": 1}],
                shipping=shipping,
            )

    def test_raises_order_placed(self):
        order = _order()
        event = next(e for e in order._events if isinstance(e, OrderPlaced))
        assert event.total_amount == 20_000
        assert event.line_count == 1
        assert json.loads(event.lines)[0]["product_id"] == "prod-1"


class TestRecordPayment:
    def test_pending_to_paid(self):
        order = _order()
        order.record_payment("txn-1", "card")
        assert order.status == OrderStatus.PAID.value
        assert order.payment_key == "txn-1"
        assert order.payment_method == "card"
        assert order.paid_at is not None
        assert any(isinstance(e, OrderPaid) for e in order._events)

    @pytest.mark.parametrize("status", [OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.REFUNDED])
    def test_only_from_pending(self, status):
        with pytest.raises(IncompatibleOrderStatus):
            _order_in(status).record_payment("txn-1", "card")

    def test_paid_or_later(self):
        assert not _order().is_paid_or_later()
        for status in (OrderStatus.PAID, OrderStatus.PREPARING, OrderStatus.SHIPPING, OrderStatus.DELIVERED):
            assert _order_in(status).is_paid_or_later()
        assert not _order_in(OrderStatus.REFUNDED).is_paid_or_later()


class TestSyncWithCarrier:
    def test_paid_to_shipping(self):
        order = _order_in(OrderStatus.PAID)
        assert order.sync_with_carrier(OrderStatus.SHIPPING, "IN_TRANSIT") is True
        assert order.status == OrderStatus.SHIPPING.value
        event = next(e for e in order._events if isinstance(e, OrderStatusSynced))
        assert event.previous_status == "paid"
        assert event.carrier_status_code == "IN_TRANSIT"

    def test_same_status_is_a_no_op(self):
        order = _order_in(OrderStatus.SHIPPING)
        assert order.sync_with_carrier(OrderStatus.SHIPPING) is False

    def test_can_move_backwards(self):
        order = _order_in(OrderStatus.DELIVERED)
        assert order.sync_with_carrier(OrderStatus.SHIPPING) is True
        assert order.status == OrderStatus.SHIPPING.value

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CANCELLED, OrderStatus.REFUNDED])
    def test_not_for_unpaid_or_closed_orders(self, status):
        with pytest.raises(IncompatibleOrderStatus):
            _order_in(status).sync_with_carrier(OrderStatus.SHIPPING)

    def test_target_must_be_a_shipping_stage(self):
        with pytest.raises(ValidationError):
            _order_in(OrderStatus.PAID).sync_with_carrier(OrderStatus.REFUNDED)


class TestRevertToPaid:
    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_reverts_from_any_status(self, status):
        order = _order_in(status)
        order.revert_to_paid()
        assert order.status == OrderStatus.PAID.value
        event = next(e for e in order._events if isinstance(e, OrderShipmentReverted))
        assert event.previous_status == status.value


class TestSideBranches:
    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.PREPARING])
    def test_cancel_allowed(self, status):
        order = _order_in(status)
        order.cancel(cancelled_by="owner", reason="Changed my mind")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"
        assert any(isinstance(e, OrderCancelled) for e in order._events)

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.SHIPPING, OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED],
    )
    def test_cancel_rejected(self, status):
        with pytest.raises(IncompatibleOrderStatus):
            _order_in(status).cancel(cancelled_by="owner")

    @pytest.mark.parametrize("status", [s for s in OrderStatus if s != OrderStatus.REFUNDED])
    def test_refund_from_any_status(self, status):
        order = _order_in(status)
        assert order.mark_refunded() is True
        assert order.status == OrderStatus.REFUNDED.value
        assert any(isinstance(e, OrderRefunded) for e in order._events)

    def test_refund_twice_is_a_no_op(self):
        order = _order_in(OrderStatus.REFUNDED)
        assert order.mark_refunded() is False

    def test_terminal_statuses(self):
        assert _order_in(OrderStatus.DELIVERED).is_terminal()
        assert _order_in(OrderStatus.CANCELLED).is_terminal()
        assert not _order_in(OrderStatus.SHIPPING).is_terminal()
