"""Account directory registry."""

from identity.accounts.port import AccountDirectory

_directory_instance: AccountDirectory | None = None


def get_account_directory() -> AccountDirectory:
    """Return the configured account directory (singleton)."""
    global _directory_instance
    if _directory_instance is None:
        from identity.accounts.memory_directory import MemoryAccountDirectory

        _directory_instance = MemoryAccountDirectory()
    return _directory_instance


def set_account_directory(directory: AccountDirectory) -> None:
    """Override the active directory (useful for tests)."""
    global _directory_instance
    _directory_instance = directory


def reset_account_directory() -> None:
    """Reset the directory singleton (useful for testing)."""
    global _directory_instance
    _directory_instance = None
