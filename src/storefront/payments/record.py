"""Payment audit records and reconciliation alerts.

A ``PaymentRecord`` is written once per confirmed transaction and never
updated afterwards; the raw gateway payload is kept verbatim for audit and
replay. A ``ReconciliationAlert`` is the durable signal that money was
captured but the order's bookkeeping did not fully follow, and someone has
to look at it.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


class AlertKind(Enum):
    STATUS_UPDATE_FAILED = "status_update_failed"
    GATEWAY_AMOUNT_MISMATCH = "gateway_amount_mismatch"
    ORDER_STATE_CHANGED = "order_state_changed"


@storefront.aggregate
class PaymentRecord:
    order_id = Identifier(required=True)
    transaction_key = String(required=True, max_length=255)
    provider = String(max_length=50)
    method = String(max_length=50)
    amount = Integer()
    gateway_status = String(required=True, max_length=50)
    raw_payload = Text()
    approved_at = DateTime()
    created_at = DateTime()

    @classmethod
    def from_confirmation(cls, order_id: str, confirmation, provider: str | None = None):
        return cls(
            order_id=order_id,
            transaction_key=confirmation.transaction_key,
            provider=provider,
            method=confirmation.method,
            amount=confirmation.total_amount,
            gateway_status=confirmation.gateway_status,
            raw_payload=json.dumps(confirmation.raw, default=str),
            approved_at=confirmation.approved_at,
            created_at=datetime.now(UTC),
        )

    @property
    def payload(self) -> dict:
        return json.loads(self.raw_payload) if self.raw_payload else {}


@storefront.aggregate
class ReconciliationAlert:
    order_id = Identifier(required=True)
    kind = String(required=True, choices=AlertKind)
    transaction_key = String(max_length=255)
    message = String(required=True, max_length=500)
    context = Text()  # JSON dict
    resolved = Boolean(default=False)
    raised_at = DateTime()

    @classmethod
    def create(cls, order_id: str, kind: AlertKind, message: str, transaction_key: str | None = None, **context):
        return cls(
            order_id=order_id,
            kind=kind.value,
            transaction_key=transaction_key,
            message=message,
            context=json.dumps(context, default=str),
            resolved=False,
            raised_at=datetime.now(UTC),
        )

    def resolve(self) -> None:
        self.resolved = True
