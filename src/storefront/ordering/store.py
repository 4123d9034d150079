"""OrderStore — durable access to orders and their lines."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.ordering.order import Order, OrderLine
from storefront.utils.persistence import persistence_errors

logger = structlog.get_logger(__name__)


class OrderStore:
    @property
    def _repo(self):
        return current_domain.repository_for(Order)

    def get(self, order_id) -> Order:
        with persistence_errors("load order", order_id=str(order_id)):
            return self._repo.get(str(order_id))

    def add(self, order: Order) -> Order:
        """Insert or update the order together with its lines."""
        with persistence_errors("save order", order_id=str(order.id)):
            self._repo.add(order)
        return order

    def remove(self, order_id) -> bool:
        """Delete the order and its lines; returns False if it was not stored."""
        with persistence_errors("delete order", order_id=str(order_id)):
            try:
                order = self._repo.get(str(order_id))
            except ObjectNotFoundError:
                return False

            line_dao = current_domain.repository_for(OrderLine)._dao
            for line in list(order.lines or []):
                line_dao.delete(line)
            self._repo._dao.delete(order)

        logger.info("Order deleted", order_id=str(order_id))
        return True

    def with_status(self, *statuses: str) -> list[Order]:
        with persistence_errors("query orders"):
            return self._repo._dao.query.filter(status__in=list(statuses)).all().items
