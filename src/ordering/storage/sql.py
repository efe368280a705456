"""SQL storage — SQLAlchemy Core adapter for SQLite and PostgreSQL.

Stock reservation is a single conditional UPDATE whose row count tells
whether the decrement happened:

    UPDATE inventory
       SET available_quantity = available_quantity - :amount
     WHERE product_id = :product_id AND available_quantity >= :amount

Carts, orders and payments are stored as JSON documents next to the columns
the pipeline filters or updates on. An order's status lives in its own
column, so a status transition is a one-column write.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import structlog
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.pool import StaticPool

from ordering.errors import ProductNotFound, StorageUnavailable
from ordering.storage.port import InventoryRecord, Storage, StorageSession

logger = structlog.get_logger(__name__)

metadata = MetaData()

inventory_table = Table(
    "inventory",
    metadata,
    Column("product_id", String(64), primary_key=True),
    Column("available_quantity", Integer, nullable=False),
    Column("low_stock_threshold", Integer, nullable=False, default=10),
    Column("updated_at", DateTime(timezone=True)),
    CheckConstraint("available_quantity >= 0", name="ck_inventory_available_non_negative"),
)

carts_table = Table(
    "carts",
    metadata,
    Column("owner_key", String(300), primary_key=True),
    Column("cart_id", String(64), nullable=False),
    Column("document", JSON, nullable=False),
    Column("updated_at", DateTime(timezone=True)),
)

orders_table = Table(
    "orders",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_key", String(300), nullable=False, index=True),
    Column("status", String(20), nullable=False),
    Column("total_amount", Float, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("document", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

payments_table = Table(
    "payments",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("order_id", String(64), nullable=False, index=True),
    Column("status", String(20), nullable=False),
    Column("amount", Float, nullable=False),
    Column("gateway", String(20), nullable=False),
    Column("document", JSON, nullable=False),
)


def setup_db(engine: Engine) -> None:
    """Create the checkout tables."""
    metadata.create_all(engine)


def drop_db(engine: Engine) -> None:
    """Drop the checkout tables."""
    metadata.drop_all(engine)


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Surface connectivity problems as ``StorageUnavailable``."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.warning("sql_storage.unavailable", error=str(exc.orig or exc))
        raise StorageUnavailable(str(exc.orig or exc)) from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            raise StorageUnavailable(str(exc.orig or exc)) from exc
        raise


def _as_datetime(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class SQLStorage(Storage):
    supports_transactions = True

    def __init__(self, engine: Engine, default_low_stock_threshold: int = 10):
        self.engine = engine
        self.default_low_stock_threshold = default_low_stock_threshold

    @classmethod
    def from_url(cls, database_url: str, default_low_stock_threshold: int = 10, **engine_kwargs) -> "SQLStorage":
        if database_url.startswith("sqlite"):
            connect_args = engine_kwargs.pop("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
            connect_args.setdefault("timeout", 30)
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs.setdefault("poolclass", StaticPool)
            engine_kwargs["connect_args"] = connect_args
        engine = create_engine(database_url, **engine_kwargs)
        return cls(engine, default_low_stock_threshold=default_low_stock_threshold)

    def setup(self) -> None:
        setup_db(self.engine)

    def session(self) -> StorageSession:
        return _SQLSession(self)

    @contextmanager
    def transaction(self) -> Iterator[StorageSession]:
        with _translate_errors():
            with self.engine.begin() as connection:
                yield _SQLSession(self, connection)

    def close(self) -> None:
        self.engine.dispose()


class _SQLSession(StorageSession):
    def __init__(self, storage: SQLStorage, connection: Connection | None = None):
        self._storage = storage
        self._connection = connection

    def _run(self, operation):
        """Run ``operation(connection)`` in the bound transaction, or in one of its own."""
        with _translate_errors():
            if self._connection is not None:
                return operation(self._connection)
            with self._storage.engine.begin() as connection:
                return operation(connection)

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    @staticmethod
    def _to_inventory(row) -> InventoryRecord:
        return InventoryRecord(
            product_id=row.product_id,
            available_quantity=row.available_quantity,
            low_stock_threshold=row.low_stock_threshold,
            updated_at=row.updated_at,
        )

    def get_inventory(self, product_id):
        def _get(connection):
            row = connection.execute(
                select(inventory_table).where(inventory_table.c.product_id == str(product_id))
            ).first()
            return self._to_inventory(row) if row is not None else None

        return self._run(_get)

    def conditional_decrement(self, product_id, amount):
        statement = (
            update(inventory_table)
            .where(
                inventory_table.c.product_id == str(product_id),
                inventory_table.c.available_quantity >= amount,
            )
            .values(
                available_quantity=inventory_table.c.available_quantity - amount,
                updated_at=datetime.now(UTC),
            )
        )
        return self._run(lambda connection: connection.execute(statement).rowcount == 1)

    def increment_inventory(self, product_id, amount):
        statement = (
            update(inventory_table)
            .where(inventory_table.c.product_id == str(product_id))
            .values(
                available_quantity=inventory_table.c.available_quantity + amount,
                updated_at=datetime.now(UTC),
            )
        )
        if self._run(lambda connection: connection.execute(statement).rowcount) == 0:
            raise ProductNotFound(str(product_id))

    def set_inventory(self, product_id, available_quantity, low_stock_threshold=None):
        if available_quantity < 0:
            raise ValueError("available_quantity cannot be negative")

        def _set(connection):
            existing = connection.execute(
                select(inventory_table).where(inventory_table.c.product_id == str(product_id))
            ).first()
            threshold = low_stock_threshold
            if threshold is None:
                threshold = existing.low_stock_threshold if existing else self._storage.default_low_stock_threshold
            values = {
                "available_quantity": available_quantity,
                "low_stock_threshold": threshold,
                "updated_at": datetime.now(UTC),
            }
            if existing is None:
                connection.execute(insert(inventory_table).values(product_id=str(product_id), **values))
            else:
                connection.execute(
                    update(inventory_table).where(inventory_table.c.product_id == str(product_id)).values(**values)
                )
            return InventoryRecord(product_id=str(product_id), **values)

        return self._run(_set)

    def low_stock_items(self):
        statement = (
            select(inventory_table)
            .where(inventory_table.c.available_quantity <= inventory_table.c.low_stock_threshold)
            .order_by(inventory_table.c.available_quantity)
        )
        return self._run(lambda connection: [self._to_inventory(row) for row in connection.execute(statement)])

    # -------------------------------------------------------------------
    # Carts
    # -------------------------------------------------------------------
    def get_cart(self, owner_key):
        statement = select(carts_table.c.document).where(carts_table.c.owner_key == owner_key)
        return self._run(lambda connection: connection.execute(statement).scalar_one_or_none())

    def save_cart(self, record):
        def _save(connection):
            connection.execute(delete(carts_table).where(carts_table.c.owner_key == record["owner_key"]))
            connection.execute(
                insert(carts_table).values(
                    owner_key=record["owner_key"],
                    cart_id=record["id"],
                    document=record,
                    updated_at=_as_datetime(record.get("updated_at")),
                )
            )

        self._run(_save)

    def delete_cart(self, owner_key):
        statement = delete(carts_table).where(carts_table.c.owner_key == owner_key)
        return self._run(lambda connection: connection.execute(statement).rowcount > 0)

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    @staticmethod
    def _to_order(row) -> dict:
        document = dict(row.document)
        document["status"] = row.status
        document["updated_at"] = row.updated_at.isoformat() if row.updated_at else document.get("updated_at")
        return document

    def insert_order(self, record):
        statement = insert(orders_table).values(
            id=record["id"],
            owner_key=record["owner_key"],
            status=record["status"],
            total_amount=record["pricing"]["total_amount"],
            currency=record["pricing"]["currency"],
            document=record,
            created_at=_as_datetime(record.get("created_at")),
            updated_at=_as_datetime(record.get("updated_at")),
        )
        self._run(lambda connection: connection.execute(statement))

    def get_order(self, order_id):
        statement = select(orders_table).where(orders_table.c.id == str(order_id))

        def _get(connection):
            row = connection.execute(statement).first()
            return self._to_order(row) if row is not None else None

        return self._run(_get)

    def update_order_status(self, order_id, status, updated_at):
        statement = (
            update(orders_table).where(orders_table.c.id == str(order_id)).values(status=status, updated_at=updated_at)
        )
        return self._run(lambda connection: connection.execute(statement).rowcount == 1)

    def delete_order(self, order_id):
        statement = delete(orders_table).where(orders_table.c.id == str(order_id))
        return self._run(lambda connection: connection.execute(statement).rowcount > 0)

    def list_orders(self, owner_key=None):
        statement = select(orders_table).order_by(orders_table.c.created_at)
        if owner_key is not None:
            statement = statement.where(orders_table.c.owner_key == owner_key)
        return self._run(lambda connection: [self._to_order(row) for row in connection.execute(statement)])

    # -------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------
    def insert_payment(self, record):
        statement = insert(payments_table).values(
            id=record["id"],
            order_id=record["order_id"],
            status=record["status"],
            amount=record["amount"],
            gateway=record["gateway"],
            document=record,
        )
        self._run(lambda connection: connection.execute(statement))

    def get_payment_for_order(self, order_id):
        statement = select(payments_table.c.document).where(payments_table.c.order_id == str(order_id))
        return self._run(lambda connection: connection.execute(statement).scalars().first())

    def delete_payment(self, payment_id):
        statement = delete(payments_table).where(payments_table.c.id == str(payment_id))
        return self._run(lambda connection: connection.execute(statement).rowcount > 0)
