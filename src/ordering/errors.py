"""Errors raised by the checkout pipeline.

Everything that can go wrong before an order is durably recorded propagates
to the caller as a ``CheckoutError``. Failures after that point (invoice,
notifications, shipment, loyalty) are recorded as ``AsyncStepFailure`` and
never raised.
"""

from dataclasses import dataclass, field


class CheckoutError(Exception):
    """Base class for failures surfaced to a checkout caller."""


@dataclass(frozen=True)
class LineIssue:
    """A single cart line that cannot be fulfilled."""

    product_id: str
    reason: str  # "product_not_found" | "insufficient_stock" | "empty_cart"
    available_quantity: int | None = None
    requested_quantity: int | None = None


class CartValidationError(CheckoutError):
    """The cart contains lines that cannot be fulfilled right now."""

    def __init__(self, issues: list[LineIssue]):
        self.issues = list(issues)
        summary = ", ".join(f"{issue.product_id}: {issue.reason}" for issue in self.issues)
        super().__init__(f"Cart validation failed ({summary})")


@dataclass(frozen=True)
class CompensationFailure:
    """A reversal of a successful decrement that could not be applied.

    Stock for ``product_id`` is now ``quantity`` units lower than it should
    be and needs manual reconciliation.
    """

    product_id: str
    quantity: int
    error: str


class ReservationError(CheckoutError):
    """Base class for failures reserving a specific product."""

    def __init__(self, product_id: str, message: str):
        self.product_id = product_id
        self.compensation_failures: list[CompensationFailure] = []
        super().__init__(message)


class ProductNotFound(ReservationError):
    def __init__(self, product_id: str):
        super().__init__(product_id, f"Product {product_id} has no inventory record")


class InsufficientInventory(ReservationError):
    def __init__(self, product_id: str, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            product_id,
            f"Insufficient inventory for product {product_id}: requested {requested}, available {available}",
        )


class StorageUnavailable(CheckoutError):
    """The storage backend could not be reached. Safe to retry."""

    def __init__(self, message: str = "Storage backend unavailable"):
        self.compensation_failures: list[CompensationFailure] = []
        super().__init__(message)


class OrderNotFound(CheckoutError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class CartNotFound(CheckoutError):
    def __init__(self, owner_key: str):
        self.owner_key = owner_key
        super().__init__(f"No cart found for {owner_key}")


@dataclass
class AsyncStepFailure:
    """A post-order step that failed. Logged and reported, never raised."""

    order_id: str
    step: str
    error: str
    details: dict = field(default_factory=dict)


def attach_compensation_failures(error: BaseException, failures: list[CompensationFailure]) -> None:
    """Record reversal failures on the error that is about to be surfaced."""
    if failures:
        error.compensation_failures = [*getattr(error, "compensation_failures", []), *failures]
