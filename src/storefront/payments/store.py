"""Stores for payment records and reconciliation alerts."""

import structlog
from protean.utils.globals import current_domain

from storefront.payments.record import PaymentRecord, ReconciliationAlert
from storefront.utils.persistence import persistence_errors

logger = structlog.get_logger(__name__)


class PaymentRecordStore:
    @property
    def _repo(self):
        return current_domain.repository_for(PaymentRecord)

    def for_order(self, order_id) -> list[PaymentRecord]:
        with persistence_errors("load payment records", order_id=str(order_id)):
            return self._repo._dao.query.filter(order_id=str(order_id)).all().items

    def append(self, record: PaymentRecord) -> PaymentRecord:
        """Insert ``record`` unless the transaction is already recorded.

        Records are append-only: an existing record for the same
        transaction is returned as-is and never overwritten.
        """
        with persistence_errors("save payment record", order_id=str(record.order_id)):
            existing = (
                self._repo._dao.query.filter(
                    order_id=str(record.order_id),
                    transaction_key=record.transaction_key,
                )
                .all()
                .first
            )
            if existing is not None:
                logger.info(
                    "Payment record already present",
                    order_id=str(record.order_id),
                    transaction_key=record.transaction_key,
                )
                return existing
            self._repo.add(record)
        return record


class AlertStore:
    @property
    def _repo(self):
        return current_domain.repository_for(ReconciliationAlert)

    def add(self, alert: ReconciliationAlert) -> ReconciliationAlert:
        with persistence_errors("save reconciliation alert", order_id=str(alert.order_id)):
            self._repo.add(alert)
        return alert

    def for_order(self, order_id) -> list[ReconciliationAlert]:
        with persistence_errors("load reconciliation alerts", order_id=str(order_id)):
            return self._repo._dao.query.filter(order_id=str(order_id)).all().items

    def unresolved(self) -> list[ReconciliationAlert]:
        with persistence_errors("load reconciliation alerts"):
            return self._repo._dao.query.filter(resolved=False).all().items
