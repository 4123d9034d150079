"""Storefront bounded context — the cart-to-delivered-order workflow.

Holds the Order aggregate and the records that hang off it (payment records,
shipments, reconciliation alerts) together with the shopper's cart. Stock
levels live behind the InventoryLedger port, outside the protean repositories,
because they need an atomic decrement primitive.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
