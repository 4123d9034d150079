"""Carrier tracking status → order status.

One table, shared by every path that ingests carrier status (the synchronous
query after registration, webhook deliveries and polling), so the paths can
never disagree about what a carrier code means.
"""

from storefront.exceptions import CarrierError
from storefront.ordering.order import OrderStatus

NOT_FOUND = "NOT_FOUND"

CARRIER_STATUS_MAP = {
    "DELIVERED": OrderStatus.DELIVERED,
    "IN_TRANSIT": OrderStatus.SHIPPING,
    "OUT_FOR_DELIVERY": OrderStatus.SHIPPING,
    "ATTEMPT_FAIL": OrderStatus.SHIPPING,
    "AVAILABLE_FOR_PICKUP": OrderStatus.SHIPPING,
    "EXCEPTION": OrderStatus.SHIPPING,
    "AT_PICKUP": OrderStatus.PREPARING,
    "INFORMATION_RECEIVED": OrderStatus.PREPARING,
    "UNKNOWN": OrderStatus.PREPARING,
    NOT_FOUND: OrderStatus.PREPARING,
}

# Fragments of the carrier's error text for parcels it does not know about yet
# ("waybill not registered", "item being prepared").
_NOT_YET_TRACKABLE_MESSAGES = ("운송장 미등록", "상품을 준비중")


def map_carrier_status(status_code: str | None) -> OrderStatus:
    """Order status for a carrier status code; unrecognised codes mean PREPARING."""
    if not status_code:
        return OrderStatus.PREPARING
    return CARRIER_STATUS_MAP.get(status_code.strip().upper(), OrderStatus.PREPARING)


def is_not_yet_trackable(error: CarrierError) -> bool:
    """Whether a carrier error just means the parcel is not in its system yet."""
    if (error.error_code or "").upper() == NOT_FOUND:
        return True
    return any(fragment in error.message for fragment in _NOT_YET_TRACKABLE_MESSAGES)
