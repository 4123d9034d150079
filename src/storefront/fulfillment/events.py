"""Shipment domain events."""

from protean.fields import Boolean, DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Shipment")
class ShipmentRegistered:
    """Carrier and tracking number were attached to an order (or corrected)."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier_id = String(required=True)
    tracking_number = String(required=True)
    corrected = Boolean(default=False)
    registered_at = DateTime(required=True)


@storefront.event(part_of="Shipment")
class ShipmentStatusRecorded:
    """A carrier status was stored on the shipment."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    status_code = String(required=True)
    status_name = String()
    source = String(required=True)  # query, webhook or poll
    recorded_at = DateTime(required=True)
