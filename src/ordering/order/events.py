"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was created from a shopping cart at checkout."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    owner_key = String(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, unit_price}
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount = Float()
    shipping_cost = Float()
    tax_amount = Float()
    total_amount = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """An order moved from one status to another."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
