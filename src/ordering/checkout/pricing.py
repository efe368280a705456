"""Deterministic money arithmetic for checkout.

    subtotal = sum(unit_price * quantity)
    discount = coupon_discount + loyalty_discount
    taxable  = max(0, subtotal + shipping_cost - discount)
    tax      = taxable * tax_rate / 100
    total    = taxable + tax

All amounts are computed with Decimal and rounded half-up to two places.
Eligibility (which coupon applies, how many points may be redeemed, which
shipping rate or tax rate is due) is decided by the caller; this module only
does the arithmetic.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError

from ordering.order.order import OrderPricing

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingInputs:
    """Caller-supplied adjustments to the cart's subtotal."""

    coupon_code: str | None = None
    coupon_discount: float = 0.0
    loyalty_points_redeemed: int = 0
    loyalty_discount: float = 0.0
    shipping_method: str | None = None
    shipping_cost: float = 0.0
    tax_rate: float = 0.0  # Percent, e.g. 18 for 18%
    gift_wrap: bool = False

    @property
    def discount(self) -> float:
        return self.coupon_discount + self.loyalty_discount

    def check(self) -> None:
        errors = {}
        for name in ("coupon_discount", "loyalty_discount", "shipping_cost", "tax_rate", "loyalty_points_redeemed"):
            if getattr(self, name) < 0:
                errors[name] = [f"{name} cannot be negative"]
        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: float
    discount: float
    shipping_cost: float
    tax_rate: float
    taxable_amount: float
    tax_amount: float
    total_amount: float
    currency: str

    def to_order_pricing(self) -> OrderPricing:
        return OrderPricing(
            subtotal=self.subtotal,
            discount=self.discount,
            shipping_cost=self.shipping_cost,
            tax_rate=self.tax_rate,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            currency=self.currency,
        )


def compute_totals(subtotal, discount, shipping_cost, tax_rate) -> tuple[float, float, float]:
    """Return ``(taxable_amount, tax_amount, total_amount)``.

    >>> compute_totals(1000, 100, 50, 18)
    (950.0, 171.0, 1121.0)
    """
    subtotal, discount, shipping_cost = _money(subtotal), _money(discount), _money(shipping_cost)
    rate = Decimal(str(tax_rate))

    taxable = max(ZERO, subtotal + shipping_cost - discount)
    tax = (taxable * rate / Decimal("100")).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    total = taxable + tax

    return float(taxable), float(tax), float(total)


def calculate_pricing(lines: Iterable, inputs: PricingInputs | None = None, currency: str = "INR") -> PricingBreakdown:
    """Price cart lines (anything with ``unit_price`` and ``quantity``)."""
    inputs = inputs or PricingInputs()
    inputs.check()

    subtotal = sum((_money(line.unit_price) * line.quantity for line in lines), ZERO)
    discount = _money(inputs.coupon_discount) + _money(inputs.loyalty_discount)
    taxable, tax, total = compute_totals(subtotal, discount, inputs.shipping_cost, inputs.tax_rate)

    return PricingBreakdown(
        subtotal=float(subtotal),
        discount=float(discount),
        shipping_cost=float(_money(inputs.shipping_cost)),
        tax_rate=float(inputs.tax_rate),
        taxable_amount=taxable,
        tax_amount=tax,
        total_amount=total,
        currency=currency,
    )
