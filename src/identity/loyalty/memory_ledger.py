"""In-memory loyalty ledger with point expiry."""

import threading
from datetime import UTC, datetime, timedelta

import structlog

from identity.loyalty.port import LoyaltyLedger, points_for_amount

logger = structlog.get_logger(__name__)


class MemoryLoyaltyLedger(LoyaltyLedger):
    """Keeps one entry per earning or redemption; expired earnings no longer count towards the balance."""

    def __init__(self, points_per_unit: float = 0.1, expiry_days: int = 365):
        self.points_per_unit = points_per_unit
        self.expiry_days = expiry_days
        self._lock = threading.Lock()
        self.entries: list[dict] = []

    def earn_points(self, account_id, order_id, amount):
        points = points_for_amount(amount, self.points_per_unit)
        if points == 0:
            logger.debug("loyalty.nothing_to_earn", account_id=account_id, order_id=order_id, amount=amount)
            return {"points": 0, "balance": self.balance(account_id), "skipped": True}

        now = datetime.now(UTC)
        with self._lock:
            self.entries.append(
                {
                    "account_id": str(account_id),
                    "order_id": str(order_id),
                    "points": points,
                    "earned_at": now,
                    "expires_at": now + timedelta(days=self.expiry_days),
                }
            )

        balance = self.balance(account_id)
        logger.info("loyalty.points_earned", account_id=account_id, order_id=order_id, points=points, balance=balance)
        return {"points": points, "balance": balance, "skipped": False}

    def redeem_points(self, account_id, order_id, points):
        if points <= 0:
            return {"points": 0, "balance": self.balance(account_id)}

        now = datetime.now(UTC)
        with self._lock:
            available = self._balance(account_id, now)
            if available < points:
                logger.warning(
                    "loyalty.insufficient_points",
                    account_id=account_id,
                    order_id=order_id,
                    requested=points,
                    available=available,
                )
                return {"points": 0, "balance": available, "error": "Insufficient loyalty points"}

            self.entries.append(
                {
                    "account_id": str(account_id),
                    "order_id": str(order_id),
                    "points": -points,
                    "earned_at": now,
                    "expires_at": datetime.max.replace(tzinfo=UTC),
                }
            )
            balance = self._balance(account_id, now)

        logger.info("loyalty.points_redeemed", account_id=account_id, order_id=order_id, points=points, balance=balance)
        return {"points": points, "balance": balance}

    def balance(self, account_id, at: datetime | None = None):
        at = at or datetime.now(UTC)
        with self._lock:
            return self._balance(account_id, at)

    def _balance(self, account_id, at):
        # Redemptions may outlive the earnings they spent.
        total = sum(
            entry["points"]
            for entry in self.entries
            if entry["account_id"] == str(account_id) and entry["expires_at"] > at
        )
        return max(0, total)
