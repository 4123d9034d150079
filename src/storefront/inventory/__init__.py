"""Inventory ledger adapters — selected by the INVENTORY_LEDGER setting."""

from storefront.config import Settings
from storefront.inventory.ledger import InventoryLedger, MemoryInventoryLedger, stock_key


def build_ledger(settings: Settings) -> InventoryLedger:
    """Construct the ledger adapter named by ``settings.inventory_ledger``."""
    if settings.inventory_ledger == "memory":
        return MemoryInventoryLedger()
    if settings.inventory_ledger == "sql":
        from storefront.inventory.sql_ledger import SqlInventoryLedger

        return SqlInventoryLedger.from_uri(settings.inventory_database_uri)
    raise ValueError(f"Unknown inventory ledger: {settings.inventory_ledger}")


__all__ = ["InventoryLedger", "MemoryInventoryLedger", "build_ledger", "stock_key"]
