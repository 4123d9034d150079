"""Order side branches: cancellation and refund marking."""

import structlog

from storefront.exceptions import PermissionDenied
from storefront.identity.port import Caller
from storefront.inventory.ledger import InventoryLedger
from storefront.ordering.order import Order
from storefront.ordering.store import OrderStore

logger = structlog.get_logger(__name__)


class OrderLifecycleService:
    def __init__(self, orders: OrderStore, ledger: InventoryLedger) -> None:
        self.orders = orders
        self.ledger = ledger

    def cancel_order(self, caller: Caller, order_id: str, reason: str | None = None) -> Order:
        """Cancel an order that has not shipped and release its stock.

        Only the owner or an admin may cancel. The status change is
        persisted first; stock is then returned line by line, and a line
        that cannot be restocked is logged rather than undoing the
        cancellation. No refund is requested from the gateway.
        """
        order = self.orders.get(order_id)
        if not caller.can_act_for(order.owner_id):
            raise PermissionDenied("Only the order owner or an admin may cancel it", order_id=str(order_id))

        order.cancel(cancelled_by="admin" if caller.is_admin else "owner", reason=reason)
        self.orders.add(order)

        restock_failures = []
        for line in order.lines or []:
            try:
                self.ledger.increment(line.product_id, line.variant_id, line.quantity)
            except Exception as exc:
                restock_failures.append(str(line.product_id))
                logger.error(
                    "Restock after cancellation failed",
                    order_id=str(order_id),
                    product_id=str(line.product_id),
                    variant_id=str(line.variant_id) if line.variant_id else None,
                    quantity=line.quantity,
                    error=str(exc),
                )

        logger.info(
            "Order cancelled",
            order_id=str(order_id),
            cancelled_by=caller.subject,
            restock_failures=restock_failures,
        )
        return order

    def mark_refunded(self, caller: Caller, order_id: str) -> Order:
        if not caller.is_admin:
            raise PermissionDenied("Refunds can only be recorded by an admin", order_id=str(order_id))

        order = self.orders.get(order_id)
        if order.mark_refunded():
            self.orders.add(order)
            logger.info("Order marked refunded", order_id=str(order_id), marked_by=caller.subject)
        return order
