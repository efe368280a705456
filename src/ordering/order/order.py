"""Order aggregate — the durable record of a checkout.

Items, addresses and pricing are snapshots taken at checkout and never change
afterwards. The only field mutated after creation is ``status``, and only
through ``transition_to``.

Status lifecycle:
    PENDING → PAID → PROCESSING → SHIPPED → DELIVERED
    CANCELLED / REFUNDED from any non-terminal state
    DELIVERED, CANCELLED and REFUNDED are terminal

The lifecycle above is the expected path, not an enforced one: any known
status may follow any other. Irregular moves are logged.
"""

import json
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import OrderPlaced, OrderStatusChanged
from ordering.shared.address import Address
from ordering.shared.owner import OwnerKey

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

# Expected lifecycle. Used to flag irregular transitions, not to block them.
_EXPECTED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PAID: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}


def is_expected_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _EXPECTED_TRANSITIONS[current]


def _parse_timestamp(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order, locked at checkout.

    ``total_amount = max(0, subtotal + shipping_cost - discount) + tax_amount``
    """

    subtotal = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    tax_rate = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")

    @invariant.post
    def total_must_match_components(self):
        components = (self.subtotal, self.discount, self.shipping_cost, self.tax_amount, self.total_amount)
        if any(value is None for value in components):
            return

        taxable = max(0.0, self.subtotal + self.shipping_cost - self.discount)
        if abs(self.total_amount - (taxable + self.tax_amount)) > 0.005:
            raise ValidationError(
                {"total_amount": ["Total must equal max(0, subtotal + shipping - discount) + tax"]}
            )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line of the order: a product, a quantity and the unit price charged."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    display_name = String(max_length=255)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    owner = ValueObject(OwnerKey, required=True)
    contact_email = String(max_length=254)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    shipping_address = ValueObject(Address, required=True)
    billing_address = ValueObject(Address, required=True)
    payment_method = String(required=True, max_length=50)
    coupon_code = String(max_length=100)
    loyalty_points_redeemed = Integer(default=0, min_value=0)
    gift_wrap = Boolean(default=False)
    shipping_method = String(max_length=50)
    placed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        owner,
        lines,
        pricing,
        shipping_address,
        billing_address,
        payment_method,
        contact_email=None,
        coupon_code=None,
        loyalty_points_redeemed=0,
        gift_wrap=False,
        shipping_method=None,
    ):
        """Create a pending order from checkout data.

        Args:
            owner: OwnerKey of the buyer (account or guest e-mail).
            lines: List of dicts with product_id, quantity, unit_price, display_name.
            pricing: OrderPricing computed for these lines.
            shipping_address: Address value object.
            billing_address: Address value object.
        """
        now = datetime.now(UTC)

        order = cls(
            owner=owner,
            contact_email=contact_email,
            items=[
                OrderItem(
                    product_id=line["product_id"],
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    display_name=line.get("display_name"),
                )
                for line in lines
            ],
            pricing=pricing,
            status=OrderStatus.PENDING.value,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=payment_method,
            coupon_code=coupon_code,
            loyalty_points_redeemed=loyalty_points_redeemed or 0,
            gift_wrap=bool(gift_wrap),
            shipping_method=shipping_method,
            placed_at=now,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                owner_key=owner.key,
                items=json.dumps(
                    [
                        {"product_id": str(i.product_id), "quantity": i.quantity, "unit_price": i.unit_price}
                        for i in order.items
                    ]
                ),
                item_count=sum(i.quantity for i in order.items),
                subtotal=pricing.subtotal,
                discount=pricing.discount,
                shipping_cost=pricing.shipping_cost,
                tax_amount=pricing.tax_amount,
                total_amount=pricing.total_amount,
                currency=pricing.currency,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Status lifecycle
    # -------------------------------------------------------------------
    def transition_to(self, new_status) -> str:
        """Move the order to ``new_status`` and return the previous status.

        Unknown statuses are rejected. Known statuses are always accepted,
        including moves that skip steps or leave a terminal state.
        """
        value = new_status.value if isinstance(new_status, OrderStatus) else str(new_status).lower()
        try:
            target = OrderStatus(value)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {new_status}"]}) from None

        current = OrderStatus(self.status)
        if not is_expected_transition(current, target):
            logger.warning(
                "order.irregular_transition",
                order_id=str(self.id),
                from_status=current.value,
                to_status=target.value,
                from_terminal=current in TERMINAL_STATUSES,
            )

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )
        return current.value

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def to_record(self) -> dict:
        return {
            "id": str(self.id),
            "owner_key": self.owner.key,
            "contact_email": self.contact_email,
            "items": [
                {
                    "product_id": str(item.product_id),
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "display_name": item.display_name,
                }
                for item in self.items
            ],
            "pricing": self.pricing.to_dict(),
            "status": self.status,
            "shipping_address": self.shipping_address.to_dict(),
            "billing_address": self.billing_address.to_dict(),
            "payment_method": self.payment_method,
            "coupon_code": self.coupon_code,
            "loyalty_points_redeemed": self.loyalty_points_redeemed,
            "gift_wrap": self.gift_wrap,
            "shipping_method": self.shipping_method,
            "placed_at": self.placed_at.isoformat() if self.placed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_record(cls, record: dict):
        return cls(
            id=record["id"],
            owner=OwnerKey.parse(record["owner_key"]),
            contact_email=record.get("contact_email"),
            items=[
                OrderItem(
                    product_id=line["product_id"],
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    display_name=line.get("display_name"),
                )
                for line in record["items"]
            ],
            pricing=OrderPricing(**record["pricing"]),
            status=record["status"],
            shipping_address=Address(**record["shipping_address"]),
            billing_address=Address(**record["billing_address"]),
            payment_method=record["payment_method"],
            coupon_code=record.get("coupon_code"),
            loyalty_points_redeemed=record.get("loyalty_points_redeemed") or 0,
            gift_wrap=bool(record.get("gift_wrap")),
            shipping_method=record.get("shipping_method"),
            placed_at=_parse_timestamp(record.get("placed_at")),
            created_at=_parse_timestamp(record.get("created_at")),
            updated_at=_parse_timestamp(record.get("updated_at")),
        )
