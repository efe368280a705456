"""Where signed-in accounts' contact addresses are looked up."""

from abc import ABC, abstractmethod


class AccountDirectory(ABC):
    """Abstract interface for account contact lookups."""

    @abstractmethod
    def email_for(self, account_id: str) -> str | None:
        """Return the account's e-mail address, or None when it is unknown."""
        ...
