"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements, so the
reconciliation service can run against FakeGateway (dev/test) or the Toss
Payments adapter (production) unchanged.

The gateway is the authority on whether money moved: any non-success answer,
transport error or timeout is reported as ``GatewayError`` and never retried
by the caller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class GatewayConfirmation:
    """A transaction the gateway reports as approved."""

    transaction_key: str
    gateway_status: str
    method: str | None = None
    approved_at: datetime | None = None
    total_amount: int | None = None
    raw: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def confirm(self, transaction_key: str, order_id: str, amount: int) -> GatewayConfirmation:
        """Confirm (capture) a transaction the shopper authorised client-side.

        Raises:
            GatewayError: the gateway declined, errored or timed out.
        """
        ...
