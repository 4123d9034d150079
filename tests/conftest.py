import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the protean config overlay before the domain is loaded."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Adapters and services
# ---------------------------------------------------------------------------
@pytest.fixture()
def ledger():
    from storefront.inventory.ledger import MemoryInventoryLedger

    return MemoryInventoryLedger(
        {
            "prod-1": 5,
            "prod-2": 10,
            "prod-3:var-red": 4,
            "prod-3:var-blue": 2,
        }
    )


@pytest.fixture()
def gateway():
    from storefront.payments.gateway.fake_adapter import FakeGateway

    return FakeGateway()


@pytest.fixture()
def carrier():
    from storefront.fulfillment.carrier.fake_adapter import FakeCarrier

    return FakeCarrier()


@pytest.fixture()
def identity():
    from storefront.identity.fake_adapter import FakeIdentityProvider

    provider = FakeIdentityProvider()
    provider.register("shopper-token", "shopper-1")
    provider.register("other-token", "shopper-2")
    provider.register("admin-token", "admin-1", role="admin")
    return provider


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def services(ledger, gateway, carrier, identity, sleeps):
    from storefront.config import Settings
    from storefront.container import build_services
    from storefront.utils.retry import RetryPolicy

    built = build_services(
        Settings(),
        ledger=ledger,
        gateway=gateway,
        carrier=carrier,
        identity=identity,
        retry_policy=RetryPolicy(attempts=3, delay=0.01),
    )
    built.payments.sleep = sleeps.append
    return built


@pytest.fixture()
def shopper():
    from storefront.identity.port import Caller

    return Caller(subject="shopper-1")


@pytest.fixture()
def other_shopper():
    from storefront.identity.port import Caller

    return Caller(subject="shopper-2")


@pytest.fixture()
def admin():
    from storefront.identity.port import Caller

    return Caller(subject="admin-1", role="admin")


SHIPPING = {
    "recipient_name": "Kim Minji",
    "phone": "010-1234-5678",
    "address": "12 Teheran-ro, Gangnam-gu, Seoul",
    "detail_address": "Apt 301",
}


@pytest.fixture()
def shipping():
    return dict(SHIPPING)


@pytest.fixture()
def place_order(services, shopper, shipping):
    """Factory: create a pending order through the intake service."""
    from storefront.ordering.intake import CartSelection

    def _place(*selections, owner=None):
        selections = selections or (CartSelection(product_id="prod-1", quantity=2, unit_price=10_000),)
        return services.intake.create_order(
            owner_id=(owner or shopper).subject,
            selections=list(selections),
            shipping=shipping,
        )

    return _place


@pytest.fixture()
def paid_order(services, shopper, place_order):
    """Factory: create an order and confirm its payment."""

    def _paid(*selections):
        order = place_order(*selections)
        services.payments.confirm_payment(shopper, str(order.id), "txn-paid-001", order.total_amount)
        return services.orders.get(order.id)

    return _paid
