"""In-memory account directory."""

import threading

import structlog

from identity.accounts.port import AccountDirectory

logger = structlog.get_logger(__name__)


class MemoryAccountDirectory(AccountDirectory):
    def __init__(self, emails: dict[str, str] | None = None):
        self._lock = threading.Lock()
        self._emails = {str(account_id): email for account_id, email in (emails or {}).items()}

    def register(self, account_id, email: str) -> None:
        with self._lock:
            self._emails[str(account_id)] = email
        logger.debug("accounts.registered", account_id=account_id)

    def email_for(self, account_id):
        with self._lock:
            return self._emails.get(str(account_id))
