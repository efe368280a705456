"""Where loyalty points earned on orders are recorded."""

import math
from abc import ABC, abstractmethod


def points_for_amount(amount: float, points_per_unit: float) -> int:
    """Whole points earned for spending ``amount``; fractions are dropped."""
    if amount <= 0 or points_per_unit <= 0:
        return 0
    return math.floor(amount * points_per_unit)


class LoyaltyLedger(ABC):
    """Abstract interface for loyalty point ledgers."""

    @abstractmethod
    def earn_points(self, account_id: str, order_id: str, amount: float) -> dict:
        """Credit points for an order's total.

        Returns:
            dict with keys: points, balance, skipped (bool), error (optional)
        """
        ...

    @abstractmethod
    def balance(self, account_id: str) -> int: ...

    @abstractmethod
    def redeem_points(self, account_id: str, order_id: str, points: int) -> dict:
        """Debit points spent as a discount on an order.

        Returns:
            dict with keys: points, balance, error (optional)
        """
        ...
