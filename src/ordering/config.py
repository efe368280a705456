"""Checkout configuration, read once from the environment at startup."""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class CheckoutSettings:
    """Deployment-level switches for the checkout pipeline.

    ``transactional`` selects the durability strategy for order creation:
    a single storage transaction, or sequential writes with compensation.
    It is decided once, here, and never re-checked at runtime.
    """

    storage_backend: str = "memory"
    database_url: str = "sqlite:///shopstream.db"
    transactional: bool = False
    currency: str = "INR"
    shipping_integration_enabled: bool = False
    loyalty_enabled: bool = True
    default_low_stock_threshold: int = 10

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        defaults = cls()
        return cls(
            storage_backend=os.getenv("CHECKOUT_STORAGE_BACKEND", defaults.storage_backend).lower(),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            transactional=_flag("CHECKOUT_TRANSACTIONAL", defaults.transactional),
            currency=os.getenv("CHECKOUT_CURRENCY", defaults.currency).upper(),
            shipping_integration_enabled=_flag("SHIPPING_INTEGRATION_ENABLED", defaults.shipping_integration_enabled),
            loyalty_enabled=_flag("LOYALTY_ENABLED", defaults.loyalty_enabled),
            default_low_stock_threshold=int(
                os.getenv("LOW_STOCK_THRESHOLD", defaults.default_low_stock_threshold)
            ),
        )
