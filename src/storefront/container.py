"""Composition root — builds adapters from settings and wires them into services.

Services receive every collaborator through their constructor. Tests (and
the CLI) pass their own fakes through the keyword overrides of
``build_services``.
"""

from dataclasses import dataclass
from datetime import timedelta

from storefront.cart.store import CartStore
from storefront.config import Settings
from storefront.fulfillment.carrier import CarrierPort, build_carrier
from storefront.fulfillment.store import ShipmentStore
from storefront.fulfillment.tracking import ShipmentTrackingService
from storefront.identity.fake_adapter import FakeIdentityProvider
from storefront.identity.port import IdentityProvider
from storefront.inventory import InventoryLedger, build_ledger
from storefront.ordering.intake import OrderIntakeService
from storefront.ordering.lifecycle import OrderLifecycleService
from storefront.ordering.store import OrderStore
from storefront.payments.gateway import PaymentGateway, build_gateway
from storefront.payments.reconciliation import PaymentReconciliationService
from storefront.payments.store import AlertStore, PaymentRecordStore
from storefront.utils.retry import RetryPolicy


@dataclass
class Services:
    settings: Settings
    ledger: InventoryLedger
    gateway: PaymentGateway
    carrier: CarrierPort
    identity: IdentityProvider
    orders: OrderStore
    carts: CartStore
    shipments: ShipmentStore
    payment_records: PaymentRecordStore
    alerts: AlertStore
    intake: OrderIntakeService
    payments: PaymentReconciliationService
    tracking: ShipmentTrackingService
    lifecycle: OrderLifecycleService


def build_services(
    settings: Settings | None = None,
    *,
    ledger: InventoryLedger | None = None,
    gateway: PaymentGateway | None = None,
    carrier: CarrierPort | None = None,
    identity: IdentityProvider | None = None,
    retry_policy: RetryPolicy | None = None,
) -> Services:
    settings = settings or Settings.from_env()
    ledger = ledger or build_ledger(settings)
    gateway = gateway or build_gateway(settings)
    carrier = carrier or build_carrier(settings)
    identity = identity or FakeIdentityProvider()
    retry_policy = retry_policy or RetryPolicy(
        attempts=settings.payment_status_retry_attempts,
        delay=settings.payment_status_retry_delay,
    )

    orders = OrderStore()
    carts = CartStore()
    shipments = ShipmentStore()
    payment_records = PaymentRecordStore()
    alerts = AlertStore()

    return Services(
        settings=settings,
        ledger=ledger,
        gateway=gateway,
        carrier=carrier,
        identity=identity,
        orders=orders,
        carts=carts,
        shipments=shipments,
        payment_records=payment_records,
        alerts=alerts,
        intake=OrderIntakeService(orders, ledger),
        payments=PaymentReconciliationService(
            orders=orders,
            gateway=gateway,
            payment_records=payment_records,
            alerts=alerts,
            carts=carts,
            retry_policy=retry_policy,
            provider_name=settings.payment_gateway,
        ),
        tracking=ShipmentTrackingService(
            orders=orders,
            shipments=shipments,
            carrier=carrier,
            webhook_url=settings.tracking_webhook_url,
            webhook_ttl=timedelta(hours=settings.tracking_webhook_ttl_hours),
        ),
        lifecycle=OrderLifecycleService(orders, ledger),
    )
