"""Fake carrier adapter — deterministic carrier for testing and development.

Tracking numbers answer with whatever status was set for them via
``set_status``; unknown numbers answer the way the real service does for a
parcel it has not registered yet. Both query and webhook registration can be
made to fail, and every call is recorded.
"""

from datetime import UTC, datetime

from storefront.exceptions import CarrierError
from storefront.fulfillment.carrier.port import CarrierPort, TrackingSnapshot


class FakeCarrier(CarrierPort):
    """Fake carrier that answers from an in-memory status table."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.timeout = False
        self.webhook_should_succeed = True
        self.statuses: dict[tuple[str, str], TrackingSnapshot] = {}
        self.calls: list[dict] = []
        self.webhooks: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        timeout: bool = False,
        webhook_should_succeed: bool = True,
    ):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.timeout = timeout
        self.webhook_should_succeed = webhook_should_succeed

    def set_status(
        self,
        carrier_id: str,
        tracking_number: str,
        status_code: str,
        status_name: str | None = None,
        description: str | None = None,
    ) -> TrackingSnapshot:
        snapshot = TrackingSnapshot(
            status_code=status_code,
            status_name=status_name or status_code.replace("_", " ").title(),
            last_event_at=datetime.now(UTC),
            description=description,
        )
        self.statuses[(carrier_id, tracking_number)] = snapshot
        return snapshot

    def query(self, carrier_id: str, tracking_number: str) -> TrackingSnapshot:
        self.calls.append({"method": "query", "carrier_id": carrier_id, "tracking_number": tracking_number})

        if self.timeout:
            raise CarrierError("Carrier tracking timed out", timed_out=True, carrier_id=carrier_id)
        if not self.should_succeed:
            raise CarrierError(self.failure_reason, error_code="INTERNAL", carrier_id=carrier_id)

        snapshot = self.statuses.get((carrier_id, tracking_number))
        if snapshot is None:
            raise CarrierError(
                "운송장 미등록",
                error_code="NOT_FOUND",
                carrier_id=carrier_id,
                tracking_number=tracking_number,
            )
        return snapshot

    def register_webhook(
        self,
        carrier_id: str,
        tracking_number: str,
        callback_url: str,
        expires_at: datetime,
    ) -> None:
        call = {
            "method": "register_webhook",
            "carrier_id": carrier_id,
            "tracking_number": tracking_number,
            "callback_url": callback_url,
            "expires_at": expires_at,
        }
        self.calls.append(call)

        if not self.webhook_should_succeed:
            raise CarrierError("Webhook registration rejected", carrier_id=carrier_id)
        self.webhooks.append(call)
