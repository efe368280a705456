"""Payment record — the ledger entry created alongside every order.

At checkout the record is created ``pending`` with the gateway derived from
the buyer's payment method. Gateway confirmation is handled elsewhere; this
module only creates and serializes the record.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentGateway(Enum):
    RAZORPAY = "razorpay"
    CASH_ON_DELIVERY = "cod"
    OTHER = "other"


def gateway_for(payment_method: str) -> PaymentGateway:
    """Map a checkout payment method onto the gateway that settles it."""
    method = (payment_method or "").strip().lower()
    if method == PaymentGateway.RAZORPAY.value:
        return PaymentGateway.RAZORPAY
    if method == PaymentGateway.CASH_ON_DELIVERY.value:
        return PaymentGateway.CASH_ON_DELIVERY
    return PaymentGateway.OTHER


@ordering.aggregate
class Payment:
    order_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    gateway = String(choices=PaymentGateway, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    meta = Text()  # JSON object
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def for_order(cls, order):
        """Create the pending payment record for a freshly placed order."""
        now = datetime.now(UTC)
        return cls(
            order_id=str(order.id),
            amount=order.pricing.total_amount,
            currency=order.pricing.currency,
            gateway=gateway_for(order.payment_method).value,
            status=PaymentStatus.PENDING.value,
            meta=json.dumps({"payment_method": order.payment_method}),
            created_at=now,
            updated_at=now,
        )

    def to_record(self) -> dict:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "amount": self.amount,
            "currency": self.currency,
            "gateway": self.gateway,
            "status": self.status,
            "gateway_order_id": self.gateway_order_id,
            "gateway_payment_id": self.gateway_payment_id,
            "meta": json.loads(self.meta) if self.meta else {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_record(cls, record: dict):
        return cls(
            id=record["id"],
            order_id=record["order_id"],
            amount=record["amount"],
            currency=record.get("currency") or "INR",
            gateway=record["gateway"],
            status=record["status"],
            gateway_order_id=record.get("gateway_order_id"),
            gateway_payment_id=record.get("gateway_payment_id"),
            meta=json.dumps(record.get("meta") or {}),
            created_at=datetime.fromisoformat(record["created_at"]) if record.get("created_at") else None,
            updated_at=datetime.fromisoformat(record["updated_at"]) if record.get("updated_at") else None,
        )
