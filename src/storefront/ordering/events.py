"""Order domain events — facts about order state changes.

Events are past tense and versioned. Line and amount data are carried as
plain values so consumers never need to load the Order to act on them.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """An order was created from cart selections and its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    owner_id = Identifier(required=True)
    total_amount = Integer(required=True)
    line_count = Integer(required=True)
    lines = Text(required=True)  # JSON list of line dicts
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    """The payment gateway confirmed the order's payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    transaction_key = String(required=True)
    payment_method = String()
    amount = Integer(required=True)
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusSynced:
    """Order status was moved to match the carrier's tracking status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    carrier_status_code = String()
    synced_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderShipmentReverted:
    """Shipment info was removed and the order returned to ``paid``."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reverted_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled and its stock released."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderRefunded:
    """An operator marked the order as refunded."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    refunded_at = DateTime(required=True)
