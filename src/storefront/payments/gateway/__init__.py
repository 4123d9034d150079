"""Payment gateway adapters — selected by the PAYMENT_GATEWAY setting.

- FakeGateway for development and testing
- TossPaymentsGateway for production
"""

from storefront.config import Settings
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import GatewayConfirmation, PaymentGateway


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_gateway == "fake":
        return FakeGateway()
    if settings.payment_gateway == "toss":
        from storefront.payments.gateway.toss_adapter import TossPaymentsGateway

        return TossPaymentsGateway(
            secret_key=settings.toss_secret_key,
            api_base=settings.toss_api_base,
            timeout=settings.external_timeout_seconds,
        )
    raise ValueError(f"Unknown payment gateway: {settings.payment_gateway}")


__all__ = ["FakeGateway", "GatewayConfirmation", "PaymentGateway", "build_gateway"]
