"""Shipment tracking — keeps order status in step with the carrier.

Carrier status reaches the storefront three ways: the synchronous query right
after a shipment is registered, webhook deliveries pushed by the carrier, and
polling. All three go through ``_apply_snapshot`` and therefore the same
mapping table. The paths are not ordered with respect to each other; each
write is a full overwrite from the carrier's latest answer, so the last one to
land wins.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError

from storefront.exceptions import CarrierError, IncompatibleOrderStatus, PersistenceError
from storefront.fulfillment.carrier.port import CarrierPort, TrackingSnapshot
from storefront.fulfillment.shipment import Shipment
from storefront.fulfillment.status_mapping import NOT_FOUND, is_not_yet_trackable, map_carrier_status
from storefront.fulfillment.store import ShipmentStore
from storefront.ordering.order import Order, OrderStatus
from storefront.ordering.store import OrderStore

logger = structlog.get_logger(__name__)

_UNSHIPPABLE = frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED, OrderStatus.REFUNDED})


@dataclass(frozen=True)
class ShipmentInfo:
    shipment_id: str
    order_id: str
    carrier_id: str
    carrier_name: str | None
    tracking_number: str
    status_code: str | None
    status_name: str | None
    order_status: str
    tracking_available: bool = True
    webhook_registered: bool = False
    last_event_at: datetime | None = None

    @classmethod
    def build(cls, shipment: Shipment, order_status: str, tracking_available: bool, webhook_registered: bool):
        return cls(
            shipment_id=str(shipment.id),
            order_id=str(shipment.order_id),
            carrier_id=shipment.carrier_id,
            carrier_name=shipment.carrier_name,
            tracking_number=shipment.tracking_number,
            status_code=shipment.status_code,
            status_name=shipment.status_name,
            order_status=order_status,
            tracking_available=tracking_available,
            webhook_registered=webhook_registered,
            last_event_at=shipment.last_event_at,
        )


@dataclass
class PollSummary:
    checked: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0


class ShipmentTrackingService:
    def __init__(
        self,
        orders: OrderStore,
        shipments: ShipmentStore,
        carrier: CarrierPort,
        webhook_url: str,
        webhook_ttl: timedelta = timedelta(hours=48),
    ) -> None:
        self.orders = orders
        self.shipments = shipments
        self.carrier = carrier
        self.webhook_url = webhook_url
        self.webhook_ttl = webhook_ttl

    # -------------------------------------------------------------------
    # Carrier query
    # -------------------------------------------------------------------
    def _query(self, shipment: Shipment) -> TrackingSnapshot | None:
        """Current carrier status, or None when tracking is unavailable.

        A parcel the carrier does not know yet is a normal state for a fresh
        shipment and comes back as the NOT_FOUND status, not as a failure.
        """
        try:
            return self.carrier.query(shipment.carrier_id, shipment.tracking_number)
        except CarrierError as exc:
            if is_not_yet_trackable(exc):
                logger.info(
                    "Parcel not yet trackable",
                    order_id=str(shipment.order_id),
                    tracking_number=shipment.tracking_number,
                )
                return TrackingSnapshot(status_code=NOT_FOUND, status_name="Not registered yet")
            logger.warning(
                "Tracking unavailable",
                order_id=str(shipment.order_id),
                carrier_id=shipment.carrier_id,
                tracking_number=shipment.tracking_number,
                error=str(exc),
                error_code=exc.error_code,
                timed_out=exc.timed_out,
            )
            return None

    def _apply_snapshot(self, shipment: Shipment, snapshot: TrackingSnapshot, source: str) -> str | None:
        """Store the carrier status and move the order to match.

        Returns the order status afterwards, or None when the order could
        not be updated (logged, not raised).
        """
        shipment.record_status(snapshot, source=source)
        try:
            self.shipments.add(shipment)
        except PersistenceError as exc:
            logger.warning(
                "Shipment status not saved",
                shipment_id=str(shipment.id),
                carrier_status=snapshot.status_code,
                source=source,
                error=str(exc),
            )

        target = map_carrier_status(snapshot.status_code)
        try:
            order = self.orders.get(shipment.order_id)
            if order.sync_with_carrier(target, carrier_status_code=snapshot.status_code):
                self.orders.add(order)
                logger.info(
                    "Order status synced with carrier",
                    order_id=str(order.id),
                    status=order.status,
                    carrier_status=snapshot.status_code,
                    source=source,
                )
            return order.status
        except Exception as exc:
            logger.warning(
                "Order status not synced with carrier",
                order_id=str(shipment.order_id),
                target_status=target.value,
                carrier_status=snapshot.status_code,
                source=source,
                error=str(exc),
            )
            return None

    # -------------------------------------------------------------------
    # Register / remove
    # -------------------------------------------------------------------
    def register_shipment(self, order_id: str, carrier_id: str, tracking_number: str) -> ShipmentInfo:
        """Attach (or correct) carrier tracking for a paid order.

        Only the shipment write itself can fail the call. The carrier query,
        the order status update and the webhook registration degrade to
        log entries and flags on the returned ``ShipmentInfo``.

        Raises:
            ObjectNotFoundError: unknown order.
            ValidationError: missing carrier or tracking number.
            IncompatibleOrderStatus: the order is unpaid, cancelled or refunded.
        """
        order = self.orders.get(order_id)
        if order.current_status in _UNSHIPPABLE:
            raise IncompatibleOrderStatus(
                f"Cannot ship an order in status {order.status}",
                order_id=str(order_id),
                status=order.status,
            )

        shipment = self.shipments.latest_for_order(order_id)
        if shipment is None:
            shipment = Shipment.register(str(order.id), carrier_id, tracking_number)
        else:
            shipment.correct(carrier_id, tracking_number)
        self.shipments.add(shipment)
        logger.info(
            "Shipment registered",
            order_id=str(order_id),
            shipment_id=str(shipment.id),
            carrier_id=shipment.carrier_id,
            tracking_number=shipment.tracking_number,
        )

        order_status = order.status
        snapshot = self._query(shipment)
        if snapshot is not None:
            order_status = self._apply_snapshot(shipment, snapshot, source="query") or order_status

        webhook_registered = self._register_webhook(shipment)
        return ShipmentInfo.build(
            shipment,
            order_status=order_status,
            tracking_available=snapshot is not None,
            webhook_registered=webhook_registered,
        )

    def _register_webhook(self, shipment: Shipment) -> bool:
        expires_at = datetime.now(UTC) + self.webhook_ttl
        try:
            self.carrier.register_webhook(shipment.carrier_id, shipment.tracking_number, self.webhook_url, expires_at)
        except CarrierError as exc:
            logger.warning(
                "Tracking webhook not registered",
                order_id=str(shipment.order_id),
                tracking_number=shipment.tracking_number,
                error=str(exc),
            )
            return False

        shipment.note_webhook(expires_at)
        try:
            self.shipments.add(shipment)
        except Exception as exc:
            logger.warning("Webhook expiry not saved", shipment_id=str(shipment.id), error=str(exc))
        return True

    def remove_shipment(self, order_id: str, shipment_id: str) -> None:
        """Delete shipment info and put the order back to PAID.

        The order is reverted whatever its status, delivered included. If the
        revert fails it is logged; the shipment stays deleted.

        Raises:
            ObjectNotFoundError: no such shipment on this order.
        """
        shipment = self.shipments.get_for_order(order_id, shipment_id)
        self.shipments.remove(shipment)
        logger.info("Shipment removed", order_id=str(order_id), shipment_id=str(shipment_id))

        try:
            order = self.orders.get(order_id)
            order.revert_to_paid()
            self.orders.add(order)
        except Exception as exc:
            logger.error("Order not reverted after shipment removal", order_id=str(order_id), error=str(exc))

    # -------------------------------------------------------------------
    # Webhook and polling
    # -------------------------------------------------------------------
    def handle_tracking_webhook(self, carrier_id: str, tracking_number: str) -> ShipmentInfo:
        """React to a carrier push: re-query and apply the latest status.

        The push only names the parcel; the status itself is fetched from the
        carrier so that a forged or replayed push cannot set it. The pushed
        carrier id is the tracking service's own and is mapped back to ours
        when the two differ.

        Raises:
            ObjectNotFoundError: no shipment uses this carrier and tracking number.
        """
        shipment = self.shipments.latest_for_tracking(carrier_id, tracking_number)
        local_id = self.carrier.local_carrier_id(carrier_id)
        if shipment is None and local_id != carrier_id:
            shipment = self.shipments.latest_for_tracking(local_id, tracking_number)
        if shipment is None:
            raise ObjectNotFoundError(f"No shipment for {carrier_id} {tracking_number}")
        return self._refresh(shipment, source="webhook")

    def refresh_tracking(self, order_id: str) -> ShipmentInfo:
        order = self.orders.get(order_id)
        shipment = self.shipments.latest_for_order(order.id)
        if shipment is None:
            raise ObjectNotFoundError(f"Order {order_id} has no shipment")
        return self._refresh(shipment, source="poll")

    def _refresh(self, shipment: Shipment, source: str) -> ShipmentInfo:
        snapshot = self._query(shipment)
        order_status = None
        if snapshot is not None:
            order_status = self._apply_snapshot(shipment, snapshot, source=source)
        if order_status is None:
            order_status = self._order_status(shipment.order_id)
        return ShipmentInfo.build(
            shipment,
            order_status=order_status,
            tracking_available=snapshot is not None,
            webhook_registered=shipment.webhook_expires_at is not None,
        )

    def _order_status(self, order_id) -> str:
        try:
            return self.orders.get(order_id).status
        except Exception as exc:
            logger.warning("Order status unavailable", order_id=str(order_id), error=str(exc))
            return "unknown"

    def poll_active_shipments(self) -> PollSummary:
        """Refresh every shipment whose order is still on its way."""
        summary = PollSummary()
        for shipment in self.shipments.all():
            try:
                order: Order = self.orders.get(shipment.order_id)
            except ObjectNotFoundError:
                summary.skipped += 1
                continue
            if order.is_terminal() or order.current_status in _UNSHIPPABLE:
                summary.skipped += 1
                continue

            summary.checked += 1
            try:
                info = self._refresh(shipment, source="poll")
            except PersistenceError as exc:
                summary.failed += 1
                logger.warning("Shipment poll skipped", shipment_id=str(shipment.id), error=str(exc))
                continue
            if not info.tracking_available:
                summary.failed += 1
            elif info.order_status != order.status:
                summary.updated += 1

        logger.info("Shipment poll finished", **summary.__dict__)
        return summary
