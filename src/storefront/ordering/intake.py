"""Order intake — turns cart selections into a pending order.

The order insert and the per-line stock decrements are separate writes with
no shared transaction. Each write that succeeds records its undo action in a
``CompensationLog``; if a later write fails, the log is rolled back in
reverse so that no order, no line and no stock decrement survives a failed
intake.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from storefront.exceptions import StorefrontError
from storefront.inventory.ledger import InventoryLedger
from storefront.ordering.order import Order
from storefront.ordering.store import OrderStore
from storefront.utils.saga import CompensationLog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartSelection:
    """One line the shopper is checking out, priced at purchase time."""

    product_id: str
    quantity: int
    unit_price: int
    variant_id: str | None = None
    option_surcharge: int = 0
    product_name: str | None = None
    product_image: str | None = None
    option_name: str | None = None
    option_value: str | None = None

    def as_line_data(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "option_surcharge": self.option_surcharge,
            "product_name": self.product_name,
            "product_image": self.product_image,
            "option_name": self.option_name,
            "option_value": self.option_value,
        }


class OrderIntakeService:
    def __init__(self, orders: OrderStore, ledger: InventoryLedger) -> None:
        self.orders = orders
        self.ledger = ledger

    def _validate(self, selections: list[CartSelection]) -> None:
        if not selections:
            raise ValidationError({"items": ["Cart is empty"]})

        errors = []
        for index, selection in enumerate(selections):
            if selection.quantity is None or selection.quantity < 1:
                errors.append(f"Line {index + 1}: quantity must be at least 1")
            elif not self.ledger.exists(selection.product_id, selection.variant_id):
                label = selection.product_id
                if selection.variant_id:
                    label = f"{selection.product_id} (variant {selection.variant_id})"
                errors.append(f"Line {index + 1}: unknown product {label}")
        if errors:
            raise ValidationError({"items": errors})

    def create_order(
        self,
        owner_id: str,
        selections: list[CartSelection],
        shipping: dict,
        declared_total: int | None = None,
        payment_method: str | None = None,
    ) -> Order:
        """Create a pending order and reserve its stock, all or nothing.

        Raises:
            ValidationError: empty cart, bad line, unknown product or an
                incomplete shipping snapshot. Nothing has been written.
            InsufficientStock: a line could not be reserved. Everything
                written so far has been rolled back.
            PersistenceError: a write failed. Everything written so far has
                been rolled back.
        """
        self._validate(selections)
        order = Order.place(
            owner_id=owner_id,
            lines_data=[s.as_line_data() for s in selections],
            shipping=shipping,
            declared_total=declared_total,
            payment_method=payment_method,
        )
        if declared_total is not None and declared_total != order.total_amount:
            logger.warning(
                "Declared total differs from computed total",
                order_id=str(order.id),
                declared_total=declared_total,
                total_amount=order.total_amount,
            )

        order_id = str(order.id)
        saga = CompensationLog("create_order", order_id=order_id)
        try:
            # The insert may fail after writing part of the order, so the
            # delete is registered before it runs.
            saga.record("delete order", lambda: self.orders.remove(order_id))
            self.orders.add(order)

            for line in order.lines:
                self.ledger.decrement(line.product_id, line.variant_id, line.quantity)
                saga.record(
                    f"restock {line.product_id}",
                    lambda line=line: self.ledger.increment(line.product_id, line.variant_id, line.quantity),
                )
        except Exception as exc:
            report = saga.rollback()
            if isinstance(exc, StorefrontError):
                exc.details["rollback"] = report.as_dict()
            logger.warning(
                "Order intake failed",
                order_id=order_id,
                error=str(exc),
                rollback_complete=report.complete,
            )
            raise

        saga.discard()
        logger.info(
            "Order created",
            order_id=order_id,
            order_number=order.order_number,
            owner_id=str(owner_id),
            total_amount=order.total_amount,
            line_count=len(order.lines),
        )
        return order
