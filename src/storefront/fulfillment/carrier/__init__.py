"""Carrier adapter abstraction — pluggable carrier tracking integration."""

from storefront.config import Settings
from storefront.fulfillment.carrier.names import CARRIER_NAMES, carrier_display_name
from storefront.fulfillment.carrier.port import CarrierPort, TrackingSnapshot


def build_carrier(settings: Settings) -> CarrierPort:
    """Return the carrier adapter named by ``settings.carrier_adapter``."""
    if settings.carrier_adapter == "fake":
        from storefront.fulfillment.carrier.fake_adapter import FakeCarrier

        return FakeCarrier()
    if settings.carrier_adapter == "delivery_tracker":
        from storefront.fulfillment.carrier.delivery_tracker import DeliveryTrackerCarrier

        return DeliveryTrackerCarrier(
            client_id=settings.delivery_tracker_client_id,
            client_secret=settings.delivery_tracker_client_secret,
            timeout=settings.external_timeout_seconds,
        )
    raise ValueError(f"Unknown carrier adapter: {settings.carrier_adapter}")


__all__ = ["CARRIER_NAMES", "CarrierPort", "TrackingSnapshot", "build_carrier", "carrier_display_name"]
