"""Loyalty ledger registry."""

import os

from identity.loyalty.port import LoyaltyLedger

_ledger_instance: LoyaltyLedger | None = None


def get_loyalty_ledger() -> LoyaltyLedger:
    """Return the configured loyalty ledger (singleton)."""
    global _ledger_instance
    if _ledger_instance is None:
        from identity.loyalty.memory_ledger import MemoryLoyaltyLedger

        _ledger_instance = MemoryLoyaltyLedger(
            points_per_unit=float(os.environ.get("LOYALTY_POINTS_PER_UNIT", "0.1")),
            expiry_days=int(os.environ.get("LOYALTY_EXPIRY_DAYS", "365")),
        )
    return _ledger_instance


def set_loyalty_ledger(ledger: LoyaltyLedger) -> None:
    """Override the active ledger (useful for tests)."""
    global _ledger_instance
    _ledger_instance = ledger


def reset_loyalty_ledger() -> None:
    """Reset the ledger singleton (useful for testing)."""
    global _ledger_instance
    _ledger_instance = None
