"""Lock-guarded in-memory store for development and tests.

Every operation runs under one re-entrant lock, which makes
``conditional_decrement`` indivisible. ``transaction()`` holds the lock for
the whole block and restores a snapshot of all collections if the block
raises, so concurrent checkouts in transactional mode are serialized.
"""

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime

import structlog

from ordering.errors import ProductNotFound
from ordering.storage.port import InventoryRecord, Storage, StorageSession

logger = structlog.get_logger(__name__)


class MemoryStorage(Storage):
    supports_transactions = True

    def __init__(self, default_low_stock_threshold: int = 10):
        self.default_low_stock_threshold = default_low_stock_threshold
        self._lock = threading.RLock()
        self._inventory: dict[str, InventoryRecord] = {}
        self._carts: dict[str, dict] = {}
        self._orders: dict[str, dict] = {}
        self._payments: dict[str, dict] = {}

    def session(self) -> StorageSession:
        return _MemorySession(self)

    @contextmanager
    def transaction(self) -> Iterator[StorageSession]:
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield _MemorySession(self)
            except BaseException:
                self._restore(snapshot)
                logger.debug("memory_storage.transaction_rolled_back")
                raise

    def reset(self) -> None:
        """Drop all data."""
        with self._lock:
            self._inventory.clear()
            self._carts.clear()
            self._orders.clear()
            self._payments.clear()

    def _snapshot(self) -> tuple:
        return (
            dict(self._inventory),
            copy.deepcopy(self._carts),
            copy.deepcopy(self._orders),
            copy.deepcopy(self._payments),
        )

    def _restore(self, snapshot: tuple) -> None:
        inventory, carts, orders, payments = snapshot
        self._inventory = inventory
        self._carts = carts
        self._orders = orders
        self._payments = payments


class _MemorySession(StorageSession):
    def __init__(self, storage: MemoryStorage):
        self._storage = storage

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    def get_inventory(self, product_id):
        with self._storage._lock:
            return self._storage._inventory.get(str(product_id))

    def conditional_decrement(self, product_id, amount):
        with self._storage._lock:
            record = self._storage._inventory.get(str(product_id))
            if record is None or record.available_quantity < amount:
                return False
            self._storage._inventory[record.product_id] = replace(
                record,
                available_quantity=record.available_quantity - amount,
                updated_at=datetime.now(UTC),
            )
            return True

    def increment_inventory(self, product_id, amount):
        with self._storage._lock:
            record = self._storage._inventory.get(str(product_id))
            if record is None:
                raise ProductNotFound(str(product_id))
            self._storage._inventory[record.product_id] = replace(
                record,
                available_quantity=record.available_quantity + amount,
                updated_at=datetime.now(UTC),
            )

    def set_inventory(self, product_id, available_quantity, low_stock_threshold=None):
        if available_quantity < 0:
            raise ValueError("available_quantity cannot be negative")
        with self._storage._lock:
            existing = self._storage._inventory.get(str(product_id))
            if low_stock_threshold is None:
                low_stock_threshold = (
                    existing.low_stock_threshold if existing else self._storage.default_low_stock_threshold
                )
            record = InventoryRecord(
                product_id=str(product_id),
                available_quantity=available_quantity,
                low_stock_threshold=low_stock_threshold,
                updated_at=datetime.now(UTC),
            )
            self._storage._inventory[record.product_id] = record
            return record

    def low_stock_items(self):
        with self._storage._lock:
            records = [r for r in self._storage._inventory.values() if r.is_low_stock]
        return sorted(records, key=lambda r: r.available_quantity)

    # -------------------------------------------------------------------
    # Carts
    # -------------------------------------------------------------------
    def get_cart(self, owner_key):
        with self._storage._lock:
            record = self._storage._carts.get(owner_key)
            return copy.deepcopy(record) if record is not None else None

    def save_cart(self, record):
        with self._storage._lock:
            self._storage._carts[record["owner_key"]] = copy.deepcopy(record)

    def delete_cart(self, owner_key):
        with self._storage._lock:
            return self._storage._carts.pop(owner_key, None) is not None

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def insert_order(self, record):
        with self._storage._lock:
            if record["id"] in self._storage._orders:
                raise ValueError(f"Order {record['id']} already exists")
            self._storage._orders[record["id"]] = copy.deepcopy(record)

    def get_order(self, order_id):
        with self._storage._lock:
            record = self._storage._orders.get(str(order_id))
            return copy.deepcopy(record) if record is not None else None

    def update_order_status(self, order_id, status, updated_at):
        with self._storage._lock:
            record = self._storage._orders.get(str(order_id))
            if record is None:
                return False
            record["status"] = status
            record["updated_at"] = updated_at.isoformat()
            return True

    def delete_order(self, order_id):
        with self._storage._lock:
            return self._storage._orders.pop(str(order_id), None) is not None

    def list_orders(self, owner_key=None):
        with self._storage._lock:
            return [
                copy.deepcopy(record)
                for record in self._storage._orders.values()
                if owner_key is None or record["owner_key"] == owner_key
            ]

    # -------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------
    def insert_payment(self, record):
        with self._storage._lock:
            if record["id"] in self._storage._payments:
                raise ValueError(f"Payment {record['id']} already exists")
            self._storage._payments[record["id"]] = copy.deepcopy(record)

    def get_payment_for_order(self, order_id):
        with self._storage._lock:
            record = next(
                (p for p in self._storage._payments.values() if p["order_id"] == str(order_id)),
                None,
            )
            return copy.deepcopy(record) if record is not None else None

    def delete_payment(self, payment_id):
        with self._storage._lock:
            return self._storage._payments.pop(str(payment_id), None) is not None
