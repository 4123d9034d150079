"""Tests for PaymentRecord and ReconciliationAlert aggregates."""

import json

from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.record import AlertKind, PaymentRecord, ReconciliationAlert


class TestPaymentRecord:
    def test_built_from_confirmation(self):
        confirmation = FakeGateway().confirm("txn-1", "ord-1", 20_000)
        record = PaymentRecord.from_confirmation("ord-1", confirmation, provider="fake")

        assert record.transaction_key == "txn-1"
        assert record.gateway_status == "DONE"
        assert record.amount == 20_000
        assert record.provider == "fake"
        assert record.payload["paymentKey"] == "txn-1"

    def test_empty_payload(self):
        record = PaymentRecord(order_id="ord-1", transaction_key="txn-1", gateway_status="DONE")
        assert record.payload == {}


class TestReconciliationAlert:
    def test_create(self):
        alert = ReconciliationAlert.create(
            "ord-1",
            AlertKind.STATUS_UPDATE_FAILED,
            "Payment captured but the order could not be marked paid",
            transaction_key="txn-1",
            attempts=3,
        )
        assert alert.kind == "status_update_failed"
        assert alert.resolved is False
        assert json.loads(alert.context) == {"attempts": 3}
        assert alert.raised_at is not None

    def test_resolve(self):
        alert = ReconciliationAlert.create("ord-1", AlertKind.GATEWAY_AMOUNT_MISMATCH, "Amount differs")
        alert.resolve()
        assert alert.resolved is True
