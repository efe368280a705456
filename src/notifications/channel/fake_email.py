"""In-memory mail transport for development and tests."""

import threading
from uuid import uuid4

from notifications.channel.port import EmailPort


class FakeEmailAdapter(EmailPort):
    """Keeps every accepted message in ``sent_emails``.

    Confirmations are sent from post-order worker threads, so the outbox is
    guarded by a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        """Make subsequent sends succeed or fail with ``failure_reason``."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, to, subject, body, sender=None):
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message = {
            "message_id": f"email-{uuid4().hex[:12]}",
            "to": to,
            "subject": subject,
            "body": body,
            "sender": sender,
        }
        with self._lock:
            self.sent_emails.append(message)
        return {"message_id": message["message_id"], "status": "sent"}

    def messages_to(self, recipient: str) -> list[dict]:
        with self._lock:
            return [message for message in self.sent_emails if message["to"] == recipient]

    def reset(self):
        """Empty the outbox and go back to succeeding."""
        with self._lock:
            self.sent_emails.clear()
        self.configure()
