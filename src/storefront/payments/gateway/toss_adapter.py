"""Toss Payments gateway adapter.

Confirms payments through ``POST /v1/payments/confirm``. Authentication is
HTTP Basic with the secret key as user name and an empty password. Each
confirmation is sent with an ``Idempotency-Key`` derived from the order and
transaction, so a repeated call for the same payment is answered from the
gateway's record instead of charging twice.
"""

import base64
from datetime import datetime

import httpx
import structlog

from storefront.exceptions import GatewayError
from storefront.payments.gateway.port import GatewayConfirmation, PaymentGateway

logger = structlog.get_logger(__name__)

TOSS_API_BASE = "https://api.tosspayments.com"
_CONFIRM_ENDPOINT = "/v1/payments/confirm"


def _basic_auth(secret_key: str) -> str:
    token = base64.b64encode(f"{secret_key}:".encode()).decode()
    return f"Basic {token}"


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Unparseable gateway timestamp", value=value)
        return None


class TossPaymentsGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str,
        api_base: str = TOSS_API_BASE,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not secret_key:
            raise ValueError("TossPaymentsGateway requires a secret key")
        self._client = httpx.Client(
            base_url=api_base.rstrip("/"),
            headers={
                "Authorization": _basic_auth(secret_key),
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def confirm(self, transaction_key: str, order_id: str, amount: int) -> GatewayConfirmation:
        try:
            response = self._client.post(
                _CONFIRM_ENDPOINT,
                json={"paymentKey": transaction_key, "orderId": order_id, "amount": amount},
                headers={"Idempotency-Key": f"{order_id}:{transaction_key}"},
            )
        except httpx.TimeoutException as exc:
            raise GatewayError("Payment gateway timed out", timed_out=True, order_id=order_id) from exc
        except httpx.HTTPError as exc:
            raise GatewayError(f"Payment gateway unreachable: {exc}", order_id=order_id) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.is_success:
            logger.warning(
                "Payment confirmation rejected",
                order_id=order_id,
                status_code=response.status_code,
                gateway_code=body.get("code"),
            )
            raise GatewayError(
                body.get("message") or "Payment confirmation failed",
                order_id=order_id,
                status_code=response.status_code,
                gateway_code=body.get("code"),
            )

        return GatewayConfirmation(
            transaction_key=body.get("paymentKey") or transaction_key,
            gateway_status=body.get("status") or "DONE",
            method=body.get("method"),
            approved_at=_parse_timestamp(body.get("approvedAt")),
            total_amount=body.get("totalAmount"),
            raw=body,
        )
