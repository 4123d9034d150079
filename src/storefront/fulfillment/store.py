"""ShipmentStore — access to shipments by order or by tracking number."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.fulfillment.shipment import Shipment
from storefront.utils.persistence import persistence_errors

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _latest(shipments: list[Shipment]) -> Shipment | None:
    if not shipments:
        return None
    return max(shipments, key=lambda s: s.created_at or _EPOCH)


class ShipmentStore:
    @property
    def _repo(self):
        return current_domain.repository_for(Shipment)

    def add(self, shipment: Shipment) -> Shipment:
        with persistence_errors("save shipment", shipment_id=str(shipment.id)):
            self._repo.add(shipment)
        return shipment

    def latest_for_order(self, order_id) -> Shipment | None:
        with persistence_errors("load shipment", order_id=str(order_id)):
            return _latest(self._repo._dao.query.filter(order_id=str(order_id)).all().items)

    def latest_for_tracking(self, carrier_id: str, tracking_number: str) -> Shipment | None:
        with persistence_errors("load shipment", tracking_number=tracking_number):
            return _latest(
                self._repo._dao.query.filter(carrier_id=carrier_id, tracking_number=tracking_number).all().items
            )

    def get_for_order(self, order_id, shipment_id) -> Shipment:
        """Load a shipment only if it belongs to ``order_id``."""
        with persistence_errors("load shipment", order_id=str(order_id), shipment_id=str(shipment_id)):
            shipment = self._repo._dao.query.filter(id=str(shipment_id), order_id=str(order_id)).all().first
        if shipment is None:
            raise ObjectNotFoundError(f"Shipment {shipment_id} does not exist for order {order_id}")
        return shipment

    def remove(self, shipment: Shipment) -> None:
        with persistence_errors("delete shipment", shipment_id=str(shipment.id)):
            self._repo._dao.delete(shipment)

    def all(self) -> list[Shipment]:
        with persistence_errors("load shipments"):
            return self._repo._dao.query.all().items
