from datetime import UTC, datetime, timedelta

import pytest
from identity.loyalty import get_loyalty_ledger, reset_loyalty_ledger, set_loyalty_ledger
from identity.loyalty.memory_ledger import MemoryLoyaltyLedger
from identity.loyalty.port import points_for_amount


class TestPointsForAmount:
    @pytest.mark.parametrize(
        "amount, points",
        [(1121.0, 112), (1099.0, 109), (9.99, 0), (10.0, 1), (0.0, 0), (-50.0, 0)],
    )
    def test_fractions_are_dropped(self, amount, points):
        assert points_for_amount(amount, 0.1) == points

    def test_zero_rate_earns_nothing(self):
        assert points_for_amount(1000.0, 0) == 0


class TestMemoryLoyaltyLedger:
    def test_earn_points(self):
        ledger = MemoryLoyaltyLedger()

        first = ledger.earn_points("alice", "ord-1", 1121.0)
        second = ledger.earn_points("alice", "ord-2", 250.0)

        assert first == {"points": 112, "balance": 112, "skipped": False}
        assert second == {"points": 25, "balance": 137, "skipped": False}

    def test_small_orders_are_skipped(self):
        ledger = MemoryLoyaltyLedger()

        result = ledger.earn_points("alice", "ord-1", 5.0)

        assert result == {"points": 0, "balance": 0, "skipped": True}
        assert ledger.entries == []

    def test_balances_are_per_account(self):
        ledger = MemoryLoyaltyLedger()
        ledger.earn_points("alice", "ord-1", 100.0)
        ledger.earn_points("bob", "ord-2", 300.0)

        assert ledger.balance("alice") == 10
        assert ledger.balance("bob") == 30

    def test_expired_points_do_not_count(self):
        ledger = MemoryLoyaltyLedger(expiry_days=30)
        ledger.earn_points("alice", "ord-1", 100.0)

        later = datetime.now(UTC) + timedelta(days=31)

        assert ledger.balance("alice", at=later) == 0
        assert ledger.balance("alice") == 10


class TestRedeemPoints:
    def test_redemption_debits_balance(self):
        ledger = MemoryLoyaltyLedger()
        ledger.earn_points("alice", "ord-1", 1000.0)

        result = ledger.redeem_points("alice", "ord-2", 60)

        assert result == {"points": 60, "balance": 40}
        assert ledger.balance("alice") == 40
        assert ledger.entries[-1]["points"] == -60

    def test_insufficient_balance_is_refused(self):
        ledger = MemoryLoyaltyLedger()
        ledger.earn_points("alice", "ord-1", 500.0)

        result = ledger.redeem_points("alice", "ord-2", 100)

        assert result == {"points": 0, "balance": 50, "error": "Insufficient loyalty points"}
        assert ledger.balance("alice") == 50
        assert len(ledger.entries) == 1

    def test_nothing_to_redeem(self):
        ledger = MemoryLoyaltyLedger()

        assert ledger.redeem_points("alice", "ord-1", 0) == {"points": 0, "balance": 0}
        assert ledger.entries == []

    def test_balance_never_goes_negative_after_expiry(self):
        ledger = MemoryLoyaltyLedger(expiry_days=30)
        ledger.earn_points("alice", "ord-1", 1000.0)
        ledger.redeem_points("alice", "ord-2", 80)

        later = datetime.now(UTC) + timedelta(days=31)

        assert ledger.balance("alice") == 20
        assert ledger.balance("alice", at=later) == 0


class TestRegistry:
    def test_default_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LOYALTY_POINTS_PER_UNIT", "0.5")
        monkeypatch.setenv("LOYALTY_EXPIRY_DAYS", "90")
        reset_loyalty_ledger()

        ledger = get_loyalty_ledger()

        assert isinstance(ledger, MemoryLoyaltyLedger)
        assert ledger.points_per_unit == 0.5
        assert ledger.expiry_days == 90

    def test_override(self):
        ledger = MemoryLoyaltyLedger()
        set_loyalty_ledger(ledger)

        assert get_loyalty_ledger() is ledger
