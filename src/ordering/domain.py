"""Ordering bounded context: carts, order creation and inventory reservation.

Handles cart management, the checkout pipeline that converts a cart into an
order while reserving stock, and the order status lifecycle after creation.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
