"""Shipment aggregate (CQRS) — carrier tracking attached to an order.

An order has at most one active shipment. Correcting the carrier or tracking
number updates that shipment in place; removing it deletes the row. The
carrier owns the tracking state, so the shipment only caches the latest raw
status it reported.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront
from storefront.fulfillment.carrier.names import carrier_display_name
from storefront.fulfillment.carrier.port import TrackingSnapshot
from storefront.fulfillment.events import ShipmentRegistered, ShipmentStatusRecorded


def _require(carrier_id: str, tracking_number: str) -> tuple[str, str]:
    errors = {}
    if not carrier_id or not carrier_id.strip():
        errors["carrier_id"] = ["Carrier is required"]
    if not tracking_number or not tracking_number.strip():
        errors["tracking_number"] = ["Tracking number is required"]
    if errors:
        raise ValidationError(errors)
    return carrier_id.strip(), tracking_number.strip()


@storefront.aggregate
class Shipment:
    order_id = Identifier(required=True)
    carrier_id = String(required=True, max_length=50)
    carrier_name = String(max_length=100)
    tracking_number = String(required=True, max_length=100)
    status_code = String(max_length=50)
    status_name = String(max_length=100)
    status_description = String(max_length=500)
    last_event_at = DateTime()
    webhook_expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, order_id: str, carrier_id: str, tracking_number: str):
        carrier_id, tracking_number = _require(carrier_id, tracking_number)
        now = datetime.now(UTC)
        shipment = cls(
            order_id=order_id,
            carrier_id=carrier_id,
            carrier_name=carrier_display_name(carrier_id),
            tracking_number=tracking_number,
            created_at=now,
            updated_at=now,
        )
        shipment.raise_(
            ShipmentRegistered(
                shipment_id=str(shipment.id),
                order_id=str(order_id),
                carrier_id=carrier_id,
                tracking_number=tracking_number,
                corrected=False,
                registered_at=now,
            )
        )
        return shipment

    def correct(self, carrier_id: str, tracking_number: str) -> None:
        """Replace carrier details; the cached status no longer applies."""
        carrier_id, tracking_number = _require(carrier_id, tracking_number)
        now = datetime.now(UTC)
        self.carrier_id = carrier_id
        self.carrier_name = carrier_display_name(carrier_id)
        self.tracking_number = tracking_number
        self.status_code = None
        self.status_name = None
        self.status_description = None
        self.last_event_at = None
        self.webhook_expires_at = None
        self.updated_at = now
        self.raise_(
            ShipmentRegistered(
                shipment_id=str(self.id),
                order_id=str(self.order_id),
                carrier_id=carrier_id,
                tracking_number=tracking_number,
                corrected=True,
                registered_at=now,
            )
        )

    def record_status(self, snapshot: TrackingSnapshot, source: str) -> None:
        now = datetime.now(UTC)
        self.status_code = snapshot.status_code
        self.status_name = snapshot.status_name
        self.status_description = snapshot.description
        self.last_event_at = snapshot.last_event_at
        self.updated_at = now
        self.raise_(
            ShipmentStatusRecorded(
                shipment_id=str(self.id),
                order_id=str(self.order_id),
                status_code=snapshot.status_code,
                status_name=snapshot.status_name,
                source=source,
                recorded_at=now,
            )
        )

    def note_webhook(self, expires_at: datetime) -> None:
        self.webhook_expires_at = expires_at
        self.updated_at = datetime.now(UTC)
