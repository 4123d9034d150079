"""SQL-backed InventoryLedger.

Each movement is a single conditional UPDATE, so the database serialises
concurrent decrements on the same row and the ``available >= :quantity``
guard rejects any that would oversell. Nothing is read and then written
back.
"""

import structlog
from sqlalchemy import (
    CheckConstraint,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from storefront.exceptions import InsufficientStock, PersistenceError
from storefront.inventory.ledger import InventoryLedger, stock_key

logger = structlog.get_logger(__name__)

metadata = MetaData()

inventory_levels = Table(
    "inventory_levels",
    metadata,
    Column("stock_key", String(255), primary_key=True),
    Column("product_id", String(255), nullable=False),
    Column("variant_id", String(255), nullable=True),
    Column("available", Integer, nullable=False, default=0),
    CheckConstraint("available >= 0", name="ck_inventory_levels_available_non_negative"),
)


class SqlInventoryLedger(InventoryLedger):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_uri(cls, database_uri: str) -> "SqlInventoryLedger":
        return cls(create_engine(database_uri))

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def drop_schema(self) -> None:
        metadata.drop_all(self.engine)

    def exists(self, product_id, variant_id=None) -> bool:
        return self.available(product_id, variant_id) is not None

    def available(self, product_id, variant_id=None) -> int | None:
        query = select(inventory_levels.c.available).where(
            inventory_levels.c.stock_key == stock_key(product_id, variant_id)
        )
        try:
            with self.engine.connect() as conn:
                return conn.execute(query).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to read stock level", product_id=str(product_id)) from exc

    def decrement(self, product_id, variant_id, quantity: int) -> int:
        if quantity <= 0:
            raise ValueError(f"Stock movements must be positive, got {quantity}")
        key = stock_key(product_id, variant_id)
        statement = (
            update(inventory_levels)
            .where(inventory_levels.c.stock_key == key)
            .where(inventory_levels.c.available >= quantity)
            .values(available=inventory_levels.c.available - quantity)
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement)
                if result.rowcount == 1:
                    return conn.execute(
                        select(inventory_levels.c.available).where(inventory_levels.c.stock_key == key)
                    ).scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to decrement stock", stock_key=key) from exc

        raise InsufficientStock(
            "Not enough stock available",
            product_id=str(product_id),
            variant_id=str(variant_id) if variant_id else None,
            requested=quantity,
            available=self.available(product_id, variant_id) or 0,
        )

    def increment(self, product_id, variant_id, quantity: int) -> int:
        if quantity <= 0:
            raise ValueError(f"Stock movements must be positive, got {quantity}")
        key = stock_key(product_id, variant_id)
        statement = (
            update(inventory_levels)
            .where(inventory_levels.c.stock_key == key)
            .values(available=inventory_levels.c.available + quantity)
        )
        try:
            with self.engine.begin() as conn:
                if conn.execute(statement).rowcount == 0:
                    conn.execute(
                        insert(inventory_levels).values(
                            stock_key=key,
                            product_id=str(product_id),
                            variant_id=str(variant_id) if variant_id else None,
                            available=quantity,
                        )
                    )
                return conn.execute(
                    select(inventory_levels.c.available).where(inventory_levels.c.stock_key == key)
                ).scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to increment stock", stock_key=key) from exc

    def set_level(self, product_id, variant_id, quantity: int) -> None:
        if quantity < 0:
            raise ValueError("Stock level cannot be negative")
        key = stock_key(product_id, variant_id)
        try:
            with self.engine.begin() as conn:
                updated = conn.execute(
                    update(inventory_levels).where(inventory_levels.c.stock_key == key).values(available=quantity)
                )
                if updated.rowcount == 0:
                    conn.execute(
                        insert(inventory_levels).values(
                            stock_key=key,
                            product_id=str(product_id),
                            variant_id=str(variant_id) if variant_id else None,
                            available=quantity,
                        )
                    )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to set stock level", stock_key=key) from exc
        logger.info("Stock level set", stock_key=key, available=quantity)
