"""Inventory reservation — conditional decrements with optional compensation.

Stock is reserved one cart line at a time, in the cart's stored order, with
the storage backend's indivisible ``conditional_decrement``. Stock is never
read and then written back.

When the caller runs inside a storage transaction, a failure is undone by the
transaction's rollback and ``compensate`` is False. When every call commits on
its own, a failure on line *k* reverses the decrements already applied for
lines 1..k-1 before the error propagates. Every reversal is attempted; those
that fail are logged at critical level and attached to the surfaced error as
``compensation_failures``.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from ordering.errors import (
    CompensationFailure,
    InsufficientInventory,
    ProductNotFound,
    ReservationError,
    attach_compensation_failures,
)
from ordering.storage.port import StorageSession

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReservationLine:
    """A quantity of one product to take out of stock."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class ReservationReceipt:
    """Proof that ``quantity`` units of ``product_id`` were decremented."""

    product_id: str
    quantity: int


class ReservationEngine:
    def reserve(
        self,
        session: StorageSession,
        lines: Iterable[ReservationLine],
        compensate: bool = True,
    ) -> list[ReservationReceipt]:
        """Reserve every line or none of them.

        Raises ProductNotFound or InsufficientInventory for the first line that
        cannot be reserved, or whatever the storage backend raised.
        """
        receipts: list[ReservationReceipt] = []

        for line in lines:
            try:
                if not session.conditional_decrement(line.product_id, line.quantity):
                    raise self._explain_failure(session, line)
            except Exception as exc:
                logger.info(
                    "inventory.reservation_failed",
                    product_id=line.product_id,
                    quantity=line.quantity,
                    reserved_before_failure=len(receipts),
                    error=str(exc),
                )
                if compensate and receipts:
                    attach_compensation_failures(exc, self.release(session, receipts))
                raise

            receipts.append(ReservationReceipt(product_id=line.product_id, quantity=line.quantity))

        logger.debug("inventory.reserved", lines=len(receipts))
        return receipts

    def release(self, session: StorageSession, receipts: Iterable[ReservationReceipt]) -> list[CompensationFailure]:
        """Return reserved stock. Returns the reversals that could not be applied."""
        failures: list[CompensationFailure] = []

        for receipt in receipts:
            try:
                session.increment_inventory(receipt.product_id, receipt.quantity)
            except Exception as exc:
                failure = CompensationFailure(
                    product_id=receipt.product_id,
                    quantity=receipt.quantity,
                    error=str(exc),
                )
                failures.append(failure)
                logger.critical(
                    "inventory.compensation_failed",
                    product_id=receipt.product_id,
                    quantity=receipt.quantity,
                    error=str(exc),
                    action="manual stock reconciliation required",
                )
            else:
                logger.info(
                    "inventory.reservation_released",
                    product_id=receipt.product_id,
                    quantity=receipt.quantity,
                )

        return failures

    @staticmethod
    def _explain_failure(session: StorageSession, line: ReservationLine) -> ReservationError:
        record = session.get_inventory(line.product_id)
        if record is None:
            return ProductNotFound(line.product_id)
        return InsufficientInventory(line.product_id, requested=line.quantity, available=record.available_quantity)
