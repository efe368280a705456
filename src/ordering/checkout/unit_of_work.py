"""Checkout unit of work — reserve stock, record the order, consume the cart.

Two strategies share one interface and are chosen once, from configuration:

``TransactionalUnitOfWork``
    Decrements, the order insert, the payment insert and the cart deletion
    run in one storage transaction. Any failure rolls all of it back; no
    compensation code runs.

``SequentialUnitOfWork``
    Every write commits on its own. A failed decrement reverses the earlier
    decrements. A failed order or payment insert removes whatever was already
    inserted and reverses every decrement before the error propagates. Once
    the order and payment exist the checkout has succeeded; failing to delete
    the cart afterwards is logged, not raised.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog

from inventory.stock.reservation import ReservationEngine, ReservationLine, ReservationReceipt
from ordering.config import CheckoutSettings
from ordering.errors import attach_compensation_failures
from ordering.order.order import Order
from ordering.order.payment import Payment
from ordering.storage.port import Storage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutPlan:
    """Everything that must become durable for one checkout."""

    lines: list[ReservationLine]
    order: Order
    payment: Payment
    cart_owner_key: str


class UnitOfWork(ABC):
    def __init__(self, storage: Storage, engine: ReservationEngine | None = None):
        self.storage = storage
        self.engine = engine or ReservationEngine()

    @abstractmethod
    def commit(self, plan: CheckoutPlan) -> list[ReservationReceipt]:
        """Make the plan durable, or leave storage as it was and raise."""
        ...


class TransactionalUnitOfWork(UnitOfWork):
    def commit(self, plan):
        with self.storage.transaction() as session:
            receipts = self.engine.reserve(session, plan.lines, compensate=False)
            session.insert_order(plan.order.to_record())
            session.insert_payment(plan.payment.to_record())
            session.delete_cart(plan.cart_owner_key)

        logger.info("checkout.committed", order_id=str(plan.order.id), mode="transactional")
        return receipts


class SequentialUnitOfWork(UnitOfWork):
    def commit(self, plan):
        session = self.storage.session()
        order_id = str(plan.order.id)

        # Compensates its own partial decrements before raising.
        receipts = self.engine.reserve(session, plan.lines, compensate=True)

        order_inserted = False
        try:
            session.insert_order(plan.order.to_record())
            order_inserted = True
            session.insert_payment(plan.payment.to_record())
        except Exception as exc:
            logger.error("checkout.record_failed", order_id=order_id, order_inserted=order_inserted, error=str(exc))
            if order_inserted:
                try:
                    session.delete_order(order_id)
                except Exception as cleanup_exc:
                    logger.critical(
                        "checkout.orphan_order",
                        order_id=order_id,
                        error=str(cleanup_exc),
                        action="manual removal of order record required",
                    )
            attach_compensation_failures(exc, self.engine.release(session, receipts))
            raise

        try:
            session.delete_cart(plan.cart_owner_key)
        except Exception as exc:
            logger.error(
                "checkout.cart_not_consumed",
                order_id=order_id,
                owner_key=plan.cart_owner_key,
                error=str(exc),
            )

        logger.info("checkout.committed", order_id=order_id, mode="sequential")
        return receipts


def build_unit_of_work(settings: CheckoutSettings, storage: Storage) -> UnitOfWork:
    """Pick the strategy named by configuration. Refuses impossible combinations."""
    if settings.transactional:
        if not storage.supports_transactions:
            raise ValueError(
                f"Transactional checkout requested but {type(storage).__name__} does not support transactions"
            )
        return TransactionalUnitOfWork(storage)
    return SequentialUnitOfWork(storage)
