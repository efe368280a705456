"""Administrative reads and writes of sellable stock.

Checkout never goes through here; it only touches stock via the reservation
engine. These operations seed stock and report products that need a reorder.
"""

import structlog

from ordering.storage import get_storage
from ordering.storage.port import InventoryRecord, Storage

logger = structlog.get_logger(__name__)


class StockLevels:
    def __init__(self, storage: Storage | None = None):
        self.storage = storage or get_storage()

    def get(self, product_id: str) -> InventoryRecord | None:
        return self.storage.session().get_inventory(product_id)

    def set(self, product_id: str, available_quantity: int, low_stock_threshold: int | None = None) -> InventoryRecord:
        record = self.storage.session().set_inventory(product_id, available_quantity, low_stock_threshold)
        logger.info(
            "inventory.stock_set",
            product_id=record.product_id,
            available_quantity=record.available_quantity,
            low_stock_threshold=record.low_stock_threshold,
        )
        return record

    def low_stock(self) -> list[InventoryRecord]:
        """Products at or below their low-stock threshold, scarcest first."""
        return self.storage.session().low_stock_items()
