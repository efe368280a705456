"""Shopping Cart aggregate — an owner's pending selection of products.

A cart is created lazily on the first add, mutated by add/update/remove,
and destroyed once the order it was checked out into is committed. Lines are
kept in the order they were first added; that order is also the order in
which stock is reserved at checkout.

Carts are persisted as plain records. Lines whose quantity is not a positive
integer are treated as corrupted data: they are dropped when the record is
loaded and therefore never reach validation, pricing or reservation.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from ordering.domain import ordering
from ordering.shared.owner import OwnerKey

logger = structlog.get_logger(__name__)


def coerce_quantity(raw) -> int | None:
    """Return ``raw`` as a positive integer, or None if it is not one.

    Booleans, strings, non-integral numbers and values below one are all
    rejected.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, float) and raw.is_integer() and raw > 0:
        return int(raw)
    return None


def _parse_timestamp(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)  # Snapshot taken when added
    display_name = String(max_length=255)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@ordering.aggregate
class ShoppingCart:
    owner = ValueObject(OwnerKey, required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner: OwnerKey):
        now = datetime.now(UTC)
        return cls(owner=owner, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def find_item(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def add_item(self, product_id, quantity, unit_price, display_name=None):
        """Add a product to the cart, or increase its quantity if already present."""
        quantity_value = coerce_quantity(quantity)
        if quantity_value is None:
            raise ValidationError({"quantity": ["Quantity must be a positive whole number"]})

        existing = self.find_item(product_id)
        if existing:
            existing.quantity += quantity_value
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    quantity=quantity_value,
                    unit_price=unit_price,
                    display_name=display_name,
                )
            )

        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                owner_key=self.owner.key,
                product_id=str(product_id),
                quantity=quantity_value,
            )
        )

    def update_item(self, product_id, quantity):
        """Set the quantity of a line. A quantity of zero or less removes the line."""
        if isinstance(quantity, (int, float)) and not isinstance(quantity, bool) and quantity <= 0:
            self.remove_item(product_id)
            return

        quantity_value = coerce_quantity(quantity)
        if quantity_value is None:
            raise ValidationError({"quantity": ["Quantity must be a whole number"]})

        item = self.find_item(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})

        previous_quantity = item.quantity
        item.quantity = quantity_value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity_value,
            )
        )

    def remove_item(self, product_id):
        """Remove a line from the cart."""
        item = self.find_item(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self):
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def to_record(self) -> dict:
        return {
            "id": str(self.id),
            "owner_key": self.owner.key,
            "items": [
                {
                    "product_id": str(item.product_id),
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "display_name": item.display_name,
                }
                for item in self.items
            ],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_record(cls, record: dict):
        """Rebuild a cart from its stored record, dropping corrupted lines."""
        items = []
        for line in record.get("items") or []:
            if not isinstance(line, dict):
                line = {}
            quantity = coerce_quantity(line.get("quantity"))
            unit_price = line.get("unit_price")
            if (
                quantity is None
                or not line.get("product_id")
                or isinstance(unit_price, bool)
                or not isinstance(unit_price, (int, float))
                or unit_price < 0
            ):
                logger.warning(
                    "cart.corrupted_line_dropped",
                    cart_id=record.get("id"),
                    owner_key=record.get("owner_key"),
                    product_id=line.get("product_id"),
                    quantity=line.get("quantity"),
                )
                continue
            items.append(
                CartItem(
                    product_id=line["product_id"],
                    quantity=quantity,
                    unit_price=float(unit_price),
                    display_name=line.get("display_name"),
                )
            )

        return cls(
            id=record["id"],
            owner=OwnerKey.parse(record["owner_key"]),
            items=items,
            created_at=_parse_timestamp(record.get("created_at")),
            updated_at=_parse_timestamp(record.get("updated_at")),
        )
