"""Turn a shopping cart into an order without overselling.

    validate cart → price → reserve stock → insert order → insert payment
    → delete cart → (detached) post-order processing

Everything up to and including the cart deletion is one unit of work (see
``ordering.checkout.unit_of_work``). Errors in that unit propagate to the
caller. Post-order processing starts only after the unit has committed, and
its outcome is never reported back to the caller.

Checkout is not idempotent: calling ``create_order`` twice with the same cart
snapshot creates two orders and reserves stock twice.
"""

import threading
from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from identity.accounts import get_account_directory
from identity.accounts.port import AccountDirectory
from inventory.stock.reservation import ReservationLine, ReservationReceipt
from ordering.cart.cart import ShoppingCart
from ordering.cart.management import CartManager
from ordering.checkout.post_order import PostOrderProcessor
from ordering.checkout.pricing import PricingInputs, calculate_pricing
from ordering.checkout.unit_of_work import CheckoutPlan, UnitOfWork, build_unit_of_work
from ordering.checkout.validation import CartValidation, CartValidator
from ordering.config import CheckoutSettings
from ordering.errors import CartValidationError
from ordering.order.order import Order
from ordering.order.payment import Payment
from ordering.shared.address import Address
from ordering.shared.owner import OwnerKey, OwnerKind
from ordering.storage import get_storage
from ordering.storage.port import Storage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlacedOrder:
    order: Order
    payment: Payment
    receipts: list[ReservationReceipt]
    post_order: threading.Thread | None = None


def _as_address(value) -> Address:
    if isinstance(value, Address):
        return value
    return Address(**value)


class CheckoutService:
    def __init__(
        self,
        settings: CheckoutSettings,
        storage: Storage,
        unit_of_work: UnitOfWork | None = None,
        post_order: PostOrderProcessor | None = None,
        accounts: AccountDirectory | None = None,
    ):
        self.settings = settings
        self.storage = storage
        self.unit_of_work = unit_of_work or build_unit_of_work(settings, storage)
        self.post_order = post_order or PostOrderProcessor(settings)
        self.accounts = accounts or get_account_directory()
        self.validator = CartValidator(storage)

    def validate_cart(self, cart: ShoppingCart) -> CartValidation:
        """Check every line against current stock. Read-only."""
        return self.validator.validate(cart)

    def create_order(
        self,
        owner: OwnerKey,
        cart: ShoppingCart,
        shipping_address,
        payment_method: str,
        billing_address=None,
        pricing_inputs: PricingInputs | None = None,
        contact_email: str | None = None,
    ) -> PlacedOrder:
        """Create an order from ``cart`` and consume the cart.

        Raises:
            CartValidationError: some lines are unknown or out of stock.
            ProductNotFound, InsufficientInventory: stock changed after validation.
            StorageUnavailable: the backend could not be reached; safe to retry.
            ValidationError: malformed checkout data.
        """
        if owner.key != cart.owner.key:
            raise ValidationError({"owner": ["Cart does not belong to this owner"]})

        order_owner = self._order_owner(owner, contact_email)
        if order_owner.kind == OwnerKind.GUEST.value:
            contact_email = contact_email or order_owner.value
        else:
            contact_email = contact_email or self.accounts.email_for(order_owner.value)
        pricing_inputs = pricing_inputs or PricingInputs()

        validation = self.validate_cart(cart)
        if not validation.valid:
            raise CartValidationError(validation.issues)

        breakdown = calculate_pricing(cart.items, pricing_inputs, currency=self.settings.currency)
        shipping = _as_address(shipping_address)

        order = Order.place(
            owner=order_owner,
            contact_email=contact_email,
            lines=[
                {
                    "product_id": str(item.product_id),
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "display_name": item.display_name,
                }
                for item in cart.items
            ],
            pricing=breakdown.to_order_pricing(),
            shipping_address=shipping,
            billing_address=_as_address(billing_address) if billing_address else shipping,
            payment_method=payment_method,
            coupon_code=pricing_inputs.coupon_code,
            loyalty_points_redeemed=pricing_inputs.loyalty_points_redeemed,
            gift_wrap=pricing_inputs.gift_wrap,
            shipping_method=pricing_inputs.shipping_method,
        )
        payment = Payment.for_order(order)

        plan = CheckoutPlan(
            lines=[ReservationLine(product_id=str(item.product_id), quantity=item.quantity) for item in cart.items],
            order=order,
            payment=payment,
            cart_owner_key=cart.owner.key,
        )
        receipts = self.unit_of_work.commit(plan)

        logger.info(
            "checkout.order_created",
            order_id=str(order.id),
            owner_key=order_owner.key,
            total_amount=order.pricing.total_amount,
            currency=order.pricing.currency,
            lines=len(receipts),
        )

        return PlacedOrder(order=order, payment=payment, receipts=receipts, post_order=self._dispatch(order))

    def checkout(self, owner: OwnerKey, shipping_address, payment_method: str, **kwargs) -> PlacedOrder:
        """Create an order from the owner's stored cart."""
        cart = CartManager(self.storage).get_cart(owner)
        return self.create_order(owner, cart, shipping_address, payment_method, **kwargs)

    @staticmethod
    def _order_owner(owner: OwnerKey, contact_email: str | None) -> OwnerKey:
        if owner.kind in (OwnerKind.ACCOUNT.value, OwnerKind.GUEST.value):
            return owner
        if not contact_email:
            raise ValidationError({"contact_email": ["An e-mail address is required for guest checkout"]})
        return OwnerKey.guest(contact_email)

    def _dispatch(self, order: Order) -> threading.Thread | None:
        try:
            return self.post_order.dispatch(order.to_record())
        except Exception as exc:
            logger.error("checkout.post_order_dispatch_failed", order_id=str(order.id), error=str(exc), exc_info=True)
            return None


def create_checkout_service(settings: CheckoutSettings | None = None, storage: Storage | None = None) -> CheckoutService:
    """Wire a checkout service from configuration and the registered adapters."""
    settings = settings or CheckoutSettings.from_env()
    storage = storage or get_storage()
    service = CheckoutService(settings, storage)
    logger.info(
        "checkout.configured",
        storage=type(storage).__name__,
        mode="transactional" if settings.transactional else "sequential",
        shipping_integration=settings.shipping_integration_enabled,
        loyalty=settings.loyalty_enabled,
    )
    return service
