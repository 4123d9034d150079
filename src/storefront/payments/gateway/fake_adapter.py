"""Configurable fake payment gateway for development and testing.

Simulates the confirm call without any external traffic. It can be told to
decline, to time out, or to report a captured amount different from the one
requested, and it records every call so tests can assert on them.
"""

from datetime import UTC, datetime

from storefront.exceptions import GatewayError
from storefront.payments.gateway.port import GatewayConfirmation, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.timeout: bool = False
        self.reported_amount: int | None = None
        self.method: str = "card"
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Card declined",
        timeout: bool = False,
        reported_amount: int | None = None,
        method: str = "card",
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.timeout = timeout
        self.reported_amount = reported_amount
        self.method = method

    def confirm(self, transaction_key: str, order_id: str, amount: int) -> GatewayConfirmation:
        self.calls.append(
            {
                "method": "confirm",
                "transaction_key": transaction_key,
                "order_id": order_id,
                "amount": amount,
            }
        )

        if self.timeout:
            raise GatewayError("Payment gateway timed out", timed_out=True, order_id=order_id)
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, order_id=order_id, gateway_code="REJECT_CARD_PAYMENT")

        captured = amount if self.reported_amount is None else self.reported_amount
        approved_at = datetime.now(UTC)
        return GatewayConfirmation(
            transaction_key=transaction_key,
            gateway_status="DONE",
            method=self.method,
            approved_at=approved_at,
            total_amount=captured,
            raw={
                "paymentKey": transaction_key,
                "orderId": order_id,
                "status": "DONE",
                "method": self.method,
                "totalAmount": captured,
                "approvedAt": approved_at.isoformat(),
            },
        )
