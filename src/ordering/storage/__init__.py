"""Storage backend registry.

Provides get_storage() / set_storage() to swap implementations:
- MemoryStorage for development and testing (default)
- SQLStorage for SQLite / PostgreSQL deployments
"""

from ordering.config import CheckoutSettings
from ordering.storage.port import Storage

_current_storage: Storage | None = None


def build_storage(settings: CheckoutSettings) -> Storage:
    """Create the backend named by ``settings.storage_backend``."""
    if settings.storage_backend == "memory":
        from ordering.storage.memory import MemoryStorage

        return MemoryStorage(default_low_stock_threshold=settings.default_low_stock_threshold)
    if settings.storage_backend == "sql":
        from ordering.storage.sql import SQLStorage

        storage = SQLStorage.from_url(
            settings.database_url,
            default_low_stock_threshold=settings.default_low_stock_threshold,
        )
        storage.setup()
        return storage
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


def get_storage() -> Storage:
    """Return the configured storage backend (singleton)."""
    global _current_storage
    if _current_storage is None:
        _current_storage = build_storage(CheckoutSettings.from_env())
    return _current_storage


def set_storage(storage: Storage) -> None:
    """Override the active storage backend (useful for tests)."""
    global _current_storage
    _current_storage = storage


def reset_storage() -> None:
    """Reset to the configured backend on next access."""
    global _current_storage
    if _current_storage is not None:
        _current_storage.close()
    _current_storage = None
