"""Schema management for the storefront datastores.

Storefront data lives in two places: the protean providers behind the
aggregates, and the SQL stock ledger when ``INVENTORY_LEDGER=sql``. Both are
created and dropped together. Non-relational providers (the default memory
provider included) have no schema and are skipped.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

from storefront.config import Settings

RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    for provider in domain.providers.values():
        if provider.conn_info["provider"] in RELATIONAL_PROVIDERS:
            yield provider, create_engine(provider.conn_info["database_uri"])


def _load_models(domain: Domain, provider) -> None:
    # A repository's DAO builds the SQLAlchemy model on first access, which
    # is what puts the element's table into the provider metadata.
    records = [*domain.registry.aggregates.values(), *domain.registry.entities.values()]
    for record in records:
        if record.cls.meta_.provider == provider.name:
            domain.repository_for(record.cls)._dao  # noqa: B018


def _stock_ledger(settings: Settings):
    if settings.inventory_ledger != "sql":
        return None
    from storefront.inventory.sql_ledger import SqlInventoryLedger

    return SqlInventoryLedger.from_uri(settings.inventory_database_uri)


def create_schema(domain: Domain, settings: Settings) -> list[str]:
    """Create every storefront table. Returns the names of the stores touched."""
    created = []
    with domain.domain_context():
        for provider, engine in _relational_providers(domain):
            _load_models(domain, provider)
            provider._metadata.create_all(engine)
            created.append(provider.name)

    ledger = _stock_ledger(settings)
    if ledger is not None:
        ledger.create_schema()
        created.append("inventory")
    return created


def drop_schema(domain: Domain, settings: Settings) -> list[str]:
    """Drop every storefront table. Returns the names of the stores touched."""
    dropped = []
    with domain.domain_context():
        for provider, engine in _relational_providers(domain):
            provider._metadata.drop_all(engine)
            dropped.append(provider.name)

    ledger = _stock_ledger(settings)
    if ledger is not None:
        ledger.drop_schema()
        dropped.append("inventory")
    return dropped
