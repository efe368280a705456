"""Load, mutate and persist an owner's cart."""

import structlog

from ordering.cart.cart import ShoppingCart
from ordering.errors import CartNotFound
from ordering.shared.owner import OwnerKey
from ordering.storage import get_storage
from ordering.storage.port import Storage

logger = structlog.get_logger(__name__)


class CartManager:
    def __init__(self, storage: Storage | None = None):
        self.storage = storage or get_storage()

    def find_cart(self, owner: OwnerKey) -> ShoppingCart | None:
        record = self.storage.session().get_cart(owner.key)
        return ShoppingCart.from_record(record) if record is not None else None

    def get_cart(self, owner: OwnerKey) -> ShoppingCart:
        cart = self.find_cart(owner)
        if cart is None:
            raise CartNotFound(owner.key)
        return cart

    def add_item(self, owner: OwnerKey, product_id, quantity, unit_price, display_name=None) -> ShoppingCart:
        """Add a product to the owner's cart, creating the cart on first use."""
        cart = self.find_cart(owner)
        if cart is None:
            cart = ShoppingCart.create(owner)
            logger.info("cart.created", owner_key=owner.key, cart_id=str(cart.id))

        cart.add_item(product_id, quantity, unit_price, display_name=display_name)
        self._save(cart)
        return cart

    def update_item(self, owner: OwnerKey, product_id, quantity) -> ShoppingCart:
        cart = self.get_cart(owner)
        cart.update_item(product_id, quantity)
        self._save(cart)
        return cart

    def remove_item(self, owner: OwnerKey, product_id) -> ShoppingCart:
        cart = self.get_cart(owner)
        cart.remove_item(product_id)
        self._save(cart)
        return cart

    def clear_cart(self, owner: OwnerKey) -> ShoppingCart:
        cart = self.get_cart(owner)
        cart.clear()
        self._save(cart)
        return cart

    def _save(self, cart: ShoppingCart) -> None:
        self.storage.session().save_cart(cart.to_record())
        logger.debug("cart.saved", owner_key=cart.owner.key, lines=len(cart.items))
