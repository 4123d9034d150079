"""Storefront management CLI.

Usage:
    python src/manage.py setup-db                      # Create all tables
    python src/manage.py drop-db                       # Drop all tables
    python src/manage.py seed-stock PRODUCT QTY [--variant V]
    python src/manage.py poll-tracking                 # Refresh active shipments
"""

import argparse
import sys


def _init_domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_databases():
    from storefront.config import Settings
    from storefront.utils.db import create_schema

    domain = _init_domain()
    print("Creating storefront database schema...")
    for store in create_schema(domain, Settings.from_env()):
        print(f"  {store} ready.")
    print("Done.")


def drop_databases():
    from storefront.config import Settings
    from storefront.utils.db import drop_schema

    domain = _init_domain()
    print("Dropping storefront database schema...")
    for store in drop_schema(domain, Settings.from_env()):
        print(f"  {store} dropped.")
    print("Done.")


def seed_stock(product_id: str, quantity: int, variant_id: str | None = None):
    from storefront.config import Settings
    from storefront.inventory import build_ledger

    settings = Settings.from_env()
    if settings.inventory_ledger == "memory":
        print("INVENTORY_LEDGER=memory keeps no stock between processes; nothing seeded.")
        return
    build_ledger(settings).set_level(product_id, variant_id, quantity)
    print(f"Stock for {product_id}{':' + variant_id if variant_id else ''} set to {quantity}.")


def poll_tracking():
    from storefront.container import build_services
    from storefront.utils.logging import configure_logging

    domain = _init_domain()
    services = build_services()
    configure_logging(production=services.settings.is_production)
    with domain.domain_context():
        summary = services.tracking.poll_active_shipments()
    print(
        f"Checked {summary.checked} shipment(s): {summary.updated} updated, "
        f"{summary.failed} without tracking, {summary.skipped} skipped."
    )


def main():
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    seed_parser = subparsers.add_parser("seed-stock", help="Set the available stock of a product")
    seed_parser.add_argument("product_id")
    seed_parser.add_argument("quantity", type=int)
    seed_parser.add_argument("--variant", dest="variant_id", default=None)

    subparsers.add_parser("poll-tracking", help="Refresh carrier status for every active shipment")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "seed-stock":
        seed_stock(args.product_id, args.quantity, args.variant_id)
    elif args.command == "poll-tracking":
        poll_tracking()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
