"""Cart validation — can every line of the cart be fulfilled right now?

Validation is read-only. It reports every offending line, not just the first,
so the buyer can fix the whole cart at once. It is advisory: stock may change
between validation and reservation, and the reservation engine has the final
word.
"""

from dataclasses import dataclass, field

import structlog

from ordering.cart.cart import ShoppingCart
from ordering.errors import LineIssue
from ordering.storage.port import Storage, StorageSession

logger = structlog.get_logger(__name__)

PRODUCT_NOT_FOUND = "product_not_found"
INSUFFICIENT_STOCK = "insufficient_stock"
EMPTY_CART = "empty_cart"


@dataclass(frozen=True)
class CartValidation:
    valid: bool
    issues: list[LineIssue] = field(default_factory=list)


class CartValidator:
    def __init__(self, storage: Storage):
        self.storage = storage

    def validate(self, cart: ShoppingCart, session: StorageSession | None = None) -> CartValidation:
        session = session or self.storage.session()

        if cart.is_empty:
            return CartValidation(valid=False, issues=[LineIssue(product_id="", reason=EMPTY_CART)])

        issues = []
        for item in cart.items:
            record = session.get_inventory(str(item.product_id))
            if record is None:
                issues.append(
                    LineIssue(
                        product_id=str(item.product_id),
                        reason=PRODUCT_NOT_FOUND,
                        requested_quantity=item.quantity,
                    )
                )
            elif record.available_quantity < item.quantity:
                issues.append(
                    LineIssue(
                        product_id=str(item.product_id),
                        reason=INSUFFICIENT_STOCK,
                        available_quantity=record.available_quantity,
                        requested_quantity=item.quantity,
                    )
                )

        if issues:
            logger.info(
                "checkout.cart_invalid",
                owner_key=cart.owner.key,
                issues=[(issue.product_id, issue.reason) for issue in issues],
            )

        return CartValidation(valid=not issues, issues=issues)
