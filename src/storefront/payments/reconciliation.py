"""Payment reconciliation — confirms a payment and brings the order in line.

Failure handling is deliberately asymmetric around the gateway call:

    before capture   any failure rejects the request; nothing has changed
    after capture    money has moved, so the request succeeds; bookkeeping
                     problems are retried, logged or turned into a durable
                     ReconciliationAlert, never reported to the shopper

| Stage               | Failure               | Outcome                              |
|---------------------|-----------------------|--------------------------------------|
| Amount check        | claimed != total      | AmountMismatch, gateway not called   |
| Gateway confirm     | decline / timeout     | GatewayError, no state change        |
| Gateway amount      | captured != total     | alert, CAPTURED_WITH_ALERT           |
| Order status update | PersistenceError      | retried; exhausted => alert          |
| Order status update | cancelled meanwhile   | alert                                |
| Order status update | anything else         | alert                                |
| PaymentRecord       | any                   | logged                               |
| Cart cleanup        | any                   | logged                               |
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError

from storefront.cart.store import CartStore
from storefront.exceptions import AmountMismatch, IncompatibleOrderStatus, PermissionDenied, PersistenceError
from storefront.identity.port import Caller
from storefront.ordering.order import Order, OrderStatus
from storefront.ordering.store import OrderStore
from storefront.payments.gateway.port import GatewayConfirmation, PaymentGateway
from storefront.payments.record import AlertKind, PaymentRecord, ReconciliationAlert
from storefront.payments.store import AlertStore, PaymentRecordStore
from storefront.utils.retry import RetriesExhausted, RetryPolicy, run_with_retry

logger = structlog.get_logger(__name__)


class Outcome(Enum):
    CAPTURED = "captured"
    CAPTURED_WITH_ALERT = "captured_with_alert"
    ALREADY_CAPTURED = "already_captured"


@dataclass(frozen=True)
class Receipt:
    order_id: str
    order_number: str
    transaction_key: str | None
    amount: int
    outcome: Outcome
    method: str | None = None
    gateway_status: str | None = None
    approved_at: datetime | None = None
    alerts: tuple[str, ...] = ()

    @property
    def needs_attention(self) -> bool:
        return self.outcome is Outcome.CAPTURED_WITH_ALERT


class PaymentReconciliationService:
    def __init__(
        self,
        orders: OrderStore,
        gateway: PaymentGateway,
        payment_records: PaymentRecordStore,
        alerts: AlertStore,
        carts: CartStore,
        retry_policy: RetryPolicy | None = None,
        provider_name: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.orders = orders
        self.gateway = gateway
        self.payment_records = payment_records
        self.alerts = alerts
        self.carts = carts
        self.retry_policy = retry_policy or RetryPolicy()
        self.provider_name = provider_name
        self.sleep = sleep

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------
    def confirm_payment(self, caller: Caller, order_id: str, transaction_key: str, claimed_amount: int) -> Receipt:
        """Confirm the shopper's payment for ``order_id`` with the gateway.

        Safe to call again after a client-side timeout: once the order is
        paid, later calls return the existing payment without contacting
        the gateway.

        Raises:
            ObjectNotFoundError: unknown order.
            PermissionDenied: the caller does not own the order.
            IncompatibleOrderStatus: the order is cancelled or refunded.
            AmountMismatch: ``claimed_amount`` differs from the order total.
            GatewayError: the gateway did not confirm the transaction.
        """
        order = self.orders.get(order_id)
        if str(order.owner_id) != caller.subject:
            raise PermissionDenied("Order belongs to another customer", order_id=str(order_id))

        if order.is_paid_or_later():
            return self._existing_receipt(order)

        if order.current_status != OrderStatus.PENDING:
            raise IncompatibleOrderStatus(
                f"Cannot pay for an order in status {order.status}",
                order_id=str(order_id),
                status=order.status,
            )

        if claimed_amount != order.total_amount:
            logger.warning(
                "Payment amount mismatch",
                order_id=str(order_id),
                claimed_amount=claimed_amount,
                total_amount=order.total_amount,
            )
            raise AmountMismatch(
                "Claimed amount does not match the order total",
                order_id=str(order_id),
                claimed_amount=claimed_amount,
                total_amount=order.total_amount,
            )

        confirmation = self.gateway.confirm(transaction_key, str(order.id), order.total_amount)
        logger.info(
            "Payment captured",
            order_id=str(order_id),
            transaction_key=confirmation.transaction_key,
            gateway_status=confirmation.gateway_status,
        )

        alerts = []
        if confirmation.total_amount is not None and confirmation.total_amount != order.total_amount:
            alerts.append(
                self._alert(
                    order,
                    AlertKind.GATEWAY_AMOUNT_MISMATCH,
                    "Gateway captured an amount different from the order total",
                    confirmation.transaction_key,
                    captured_amount=confirmation.total_amount,
                    total_amount=order.total_amount,
                )
            )

        status_alert = self._mark_paid(order, confirmation)
        if status_alert:
            alerts.append(status_alert)

        self._record_payment(order, confirmation)
        self._clean_up_cart(order)

        return Receipt(
            order_id=str(order.id),
            order_number=order.order_number,
            transaction_key=confirmation.transaction_key,
            amount=order.total_amount,
            outcome=Outcome.CAPTURED_WITH_ALERT if alerts else Outcome.CAPTURED,
            method=confirmation.method,
            gateway_status=confirmation.gateway_status,
            approved_at=confirmation.approved_at,
            alerts=tuple(alerts),
        )

    # -------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------
    def _existing_receipt(self, order: Order) -> Receipt:
        record = None
        try:
            records = self.payment_records.for_order(order.id)
            record = next((r for r in records if r.transaction_key == order.payment_key), None)
            record = record or (records[0] if records else None)
        except PersistenceError as exc:
            logger.warning("Payment record lookup failed", order_id=str(order.id), error=str(exc))

        logger.info("Payment already confirmed", order_id=str(order.id), status=order.status)
        return Receipt(
            order_id=str(order.id),
            order_number=order.order_number,
            transaction_key=order.payment_key or (record.transaction_key if record else None),
            amount=order.total_amount,
            outcome=Outcome.ALREADY_CAPTURED,
            method=order.payment_method or (record.method if record else None),
            gateway_status=record.gateway_status if record else "DONE",
            approved_at=order.paid_at,
        )

    def _mark_paid(self, order: Order, confirmation: GatewayConfirmation) -> str | None:
        """Persist the PAID status, retrying persistence failures only.

        Nothing raised here reaches the shopper: a failure becomes an alert
        and its kind is returned. Returns None once the order is paid.
        """

        def attempt():
            current = self.orders.get(order.id)
            if current.is_paid_or_later():
                return current
            current.record_payment(confirmation.transaction_key, confirmation.method, confirmation.approved_at)
            return self.orders.add(current)

        try:
            paid = run_with_retry(
                attempt,
                self.retry_policy,
                retry_on=(PersistenceError,),
                sleep=self.sleep,
                order_id=str(order.id),
                stage="mark_paid",
            )
        except RetriesExhausted as exc:
            logger.error(
                "Order status update abandoned after capture",
                order_id=str(order.id),
                attempts=exc.attempts,
                error=str(exc.last_error),
            )
            return self._alert(
                order,
                AlertKind.STATUS_UPDATE_FAILED,
                "Payment captured but the order could not be marked paid",
                confirmation.transaction_key,
                attempts=exc.attempts,
            )
        except (IncompatibleOrderStatus, ObjectNotFoundError) as exc:
            logger.error("Order changed while the payment was captured", order_id=str(order.id), error=str(exc))
            return self._alert(
                order,
                AlertKind.ORDER_STATE_CHANGED,
                "Payment captured for an order that is no longer payable",
                confirmation.transaction_key,
                error=str(exc),
            )
        except Exception as exc:
            logger.exception("Order status update failed after capture", order_id=str(order.id))
            return self._alert(
                order,
                AlertKind.STATUS_UPDATE_FAILED,
                "Payment captured but the order could not be marked paid",
                confirmation.transaction_key,
                error=str(exc),
            )

        order.status = paid.status
        order.payment_key = paid.payment_key
        order.payment_method = paid.payment_method
        order.paid_at = paid.paid_at
        return None

    def _record_payment(self, order: Order, confirmation: GatewayConfirmation) -> None:
        try:
            record = PaymentRecord.from_confirmation(str(order.id), confirmation, provider=self.provider_name)
            self.payment_records.append(record)
        except Exception as exc:
            logger.error(
                "Payment record not saved",
                order_id=str(order.id),
                transaction_key=confirmation.transaction_key,
                error=str(exc),
            )

    def _clean_up_cart(self, order: Order) -> None:
        try:
            self.carts.purge_paid_lines(order.owner_id, order.id, order.lines or [])
        except Exception as exc:
            logger.warning("Cart cleanup failed", order_id=str(order.id), owner_id=str(order.owner_id), error=str(exc))

    def _alert(self, order: Order, kind: AlertKind, message: str, transaction_key: str, **context) -> str:
        alert = ReconciliationAlert.create(str(order.id), kind, message, transaction_key=transaction_key, **context)
        try:
            self.alerts.add(alert)
        except Exception as exc:
            logger.critical(
                "Reconciliation alert could not be persisted",
                order_id=str(order.id),
                kind=kind.value,
                alert_message=message,
                error=str(exc),
                **context,
            )
        else:
            logger.error("Reconciliation alert raised", order_id=str(order.id), kind=kind.value, **context)
        return kind.value
