"""Storage port — the persistence contract of the checkout pipeline.

Four logical collections are kept: ``inventory``, ``carts``, ``orders`` and
``payments``. Carts, orders and payments travel as plain records (dicts built
by the aggregates' ``to_record``); inventory travels as ``InventoryRecord``.

A ``StorageSession`` obtained from ``Storage.session()`` commits every call on
its own. A session yielded by ``Storage.transaction()`` groups every call into
one atomic unit that is rolled back if the block raises. Backends that cannot
offer that guarantee report ``supports_transactions = False``.

``conditional_decrement`` is the only way stock leaves the system. It must be
a single indivisible operation: "decrement by N if at least N is available".
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class InventoryRecord:
    """Sellable stock for one product."""

    product_id: str
    available_quantity: int
    low_stock_threshold: int = 10
    updated_at: datetime | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.available_quantity <= self.low_stock_threshold


class StorageSession(ABC):
    """Operations available to the pipeline against one storage backend."""

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    @abstractmethod
    def get_inventory(self, product_id: str) -> InventoryRecord | None: ...

    @abstractmethod
    def conditional_decrement(self, product_id: str, amount: int) -> bool:
        """Decrement stock by ``amount`` only if at least ``amount`` is available.

        Returns False, leaving stock untouched, when the product has no record
        or too little stock.
        """
        ...

    @abstractmethod
    def increment_inventory(self, product_id: str, amount: int) -> None:
        """Return ``amount`` units to stock. Raises ProductNotFound for unknown products."""
        ...

    @abstractmethod
    def set_inventory(
        self, product_id: str, available_quantity: int, low_stock_threshold: int | None = None
    ) -> InventoryRecord:
        """Create or overwrite a product's stock level (administrative seeding)."""
        ...

    @abstractmethod
    def low_stock_items(self) -> list[InventoryRecord]: ...

    # -------------------------------------------------------------------
    # Carts (keyed by owner key, e.g. "account:42")
    # -------------------------------------------------------------------
    @abstractmethod
    def get_cart(self, owner_key: str) -> dict | None: ...

    @abstractmethod
    def save_cart(self, record: dict) -> None: ...

    @abstractmethod
    def delete_cart(self, owner_key: str) -> bool: ...

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    @abstractmethod
    def insert_order(self, record: dict) -> None: ...

    @abstractmethod
    def get_order(self, order_id: str) -> dict | None: ...

    @abstractmethod
    def update_order_status(self, order_id: str, status: str, updated_at: datetime) -> bool:
        """Single-field write of an order's status. Returns False if the order does not exist."""
        ...

    @abstractmethod
    def delete_order(self, order_id: str) -> bool: ...

    @abstractmethod
    def list_orders(self, owner_key: str | None = None) -> list[dict]: ...

    # -------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------
    @abstractmethod
    def insert_payment(self, record: dict) -> None: ...

    @abstractmethod
    def get_payment_for_order(self, order_id: str) -> dict | None: ...

    @abstractmethod
    def delete_payment(self, payment_id: str) -> bool: ...


class Storage(ABC):
    """A storage backend."""

    supports_transactions: bool = False

    @abstractmethod
    def session(self) -> StorageSession:
        """Return a session whose every call commits independently."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager[StorageSession]:
        """Return a context manager yielding a session whose calls commit together."""
        ...

    def close(self) -> None:
        """Release backend resources."""
