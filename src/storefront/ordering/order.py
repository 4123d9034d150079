"""Order aggregate (CQRS) — the record a checkout produces.

The Order owns its lines and freezes prices at creation time: ``total_amount``
is computed once, from the lines, in ``place()`` and never recomputed. Later
stages only compare against it.

State Machine:
    PENDING → PAID → PREPARING → SHIPPING → DELIVERED
    {PENDING, PAID, PREPARING} → CANCELLED
    any → REFUNDED

Between PAID and DELIVERED the status follows the carrier's tracking status
(last write wins), so it can move in either direction along the main line.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from storefront.domain import storefront
from storefront.exceptions import IncompatibleOrderStatus
from storefront.ordering.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderRefunded,
    OrderShipmentReverted,
    OrderStatusSynced,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    PREPARING = "preparing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# Statuses reached only after the gateway confirmed payment
PAID_OR_LATER = frozenset(
    {
        OrderStatus.PAID,
        OrderStatus.PREPARING,
        OrderStatus.SHIPPING,
        OrderStatus.DELIVERED,
    }
)

_CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.PREPARING})

# Carrier tracking may only drive orders that are paid and not cancelled/refunded
_TRACKABLE_STATUSES = PAID_OR_LATER

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})


def generate_order_number(now: datetime | None = None) -> str:
    """Human-readable order number, e.g. ``20240301-9F2C41AB``."""
    now = now or datetime.now(UTC)
    return f"{now:%Y%m%d}-{uuid4().hex[:8].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingSnapshot:
    """Recipient details copied onto the order at checkout.

    Not linked to the shopper's address book: later address edits do not
    change where an order was sent.
    """

    recipient_name = String(required=True, max_length=100)
    phone = String(required=True, max_length=30)
    address = String(required=True, max_length=255)
    detail_address = String(max_length=255)
    memo = String(max_length=500)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderLine:
    """One purchased product (or product variant) at its purchase-time price."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    option_surcharge = Integer(default=0)
    product_name = String(max_length=255)
    product_image = String(max_length=500)
    option_name = String(max_length=100)
    option_value = String(max_length=100)

    @property
    def line_total(self) -> int:
        return (self.unit_price + (self.option_surcharge or 0)) * self.quantity

    def summary(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "variant_id": str(self.variant_id) if self.variant_id else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "option_surcharge": self.option_surcharge or 0,
        }


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    owner_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    lines = HasMany(OrderLine)
    total_amount = Integer(required=True, min_value=0)
    declared_total = Integer()
    shipping = ValueObject(ShippingSnapshot)
    payment_method = String(max_length=50)
    payment_key = String(max_length=255)
    paid_at = DateTime()
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        owner_id: str,
        lines_data: list[dict],
        shipping: dict,
        declared_total: int | None = None,
        payment_method: str | None = None,
    ):
        """Build a pending order from cart selections.

        ``lines_data`` entries carry the OrderLine fields. The total is
        computed from them; ``declared_total`` is only kept for reference.
        """
        if not lines_data:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        lines = [OrderLine(**data) for data in lines_data]
        now = datetime.now(UTC)
        order = cls(
            owner_id=owner_id,
            order_number=generate_order_number(now),
            status=OrderStatus.PENDING.value,
            total_amount=sum(line.line_total for line in lines),
            declared_total=declared_total,
            shipping=ShippingSnapshot(**shipping),
            payment_method=payment_method,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_lines(line)
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                owner_id=str(owner_id),
                total_amount=order.total_amount,
                line_count=len(lines),
                lines=json.dumps([line.summary() for line in lines]),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def is_paid_or_later(self) -> bool:
        return self.current_status in PAID_OR_LATER

    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    def _conflict(self, action: str) -> IncompatibleOrderStatus:
        return IncompatibleOrderStatus(
            f"Cannot {action} an order in status {self.status}",
            order_id=str(self.id),
            status=self.status,
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, transaction_key: str, payment_method: str | None, paid_at: datetime | None = None) -> None:
        """Mark the order paid after the gateway confirmed the transaction."""
        if self.current_status != OrderStatus.PENDING:
            raise self._conflict("record payment for")

        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.payment_key = transaction_key
        if payment_method:
            self.payment_method = payment_method
        self.paid_at = paid_at or now
        self.updated_at = now
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                transaction_key=transaction_key,
                payment_method=self.payment_method,
                amount=self.total_amount,
                paid_at=self.paid_at,
            )
        )

    # -------------------------------------------------------------------
    # Shipment tracking
    # -------------------------------------------------------------------
    def sync_with_carrier(self, target: OrderStatus, carrier_status_code: str | None = None) -> bool:
        """Move to the status the carrier's tracking maps to.

        Returns False when the order is already there.
        """
        if self.current_status not in _TRACKABLE_STATUSES:
            raise self._conflict("track")
        if target not in (OrderStatus.PREPARING, OrderStatus.SHIPPING, OrderStatus.DELIVERED):
            raise ValidationError({"status": [f"Carrier tracking cannot move an order to {target.value}"]})
        if self.current_status == target:
            return False

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusSynced(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                carrier_status_code=carrier_status_code,
                synced_at=now,
            )
        )
        return True

    def revert_to_paid(self) -> None:
        """Undo shipping progress after shipment info was removed.

        Applies from any status, terminal ones included.
        """
        previous = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.updated_at = now
        self.raise_(
            OrderShipmentReverted(
                order_id=str(self.id),
                previous_status=previous,
                reverted_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Side branches
    # -------------------------------------------------------------------
    def cancel(self, cancelled_by: str, reason: str | None = None) -> None:
        if self.current_status not in _CANCELLABLE_STATUSES:
            raise self._conflict("cancel")

        previous = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous,
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def mark_refunded(self) -> bool:
        """Move to REFUNDED; returns False if the order already is."""
        if self.current_status == OrderStatus.REFUNDED:
            return False

        previous = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.REFUNDED.value
        self.updated_at = now
        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                previous_status=previous,
                refunded_at=now,
            )
        )
        return True
