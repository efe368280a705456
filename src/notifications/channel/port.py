"""Order notification ports.

``NotificationPort`` is how the checkout pipeline tells a buyer about their
order. ``EmailPort`` is the mail transport the email notifier renders onto.
"""

from abc import ABC, abstractmethod

ORDER_CONFIRMATION = "order_confirmation"


def status_event_kind(status: str) -> str:
    """Event kind for an order entering ``status``, e.g. ``order_shipped``."""
    return f"order_{status}"


class NotificationPort(ABC):
    """Abstract interface for order notification adapters."""

    @abstractmethod
    def notify_order_event(self, event_kind: str, recipient: str, data: dict) -> dict:
        """Notify ``recipient`` that ``event_kind`` happened to an order.

        Returns:
            dict with keys: status ("sent", "skipped" or "failed"), message_id, error (optional)
        """
        ...


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str, sender: str | None = None) -> dict:
        """Hand one plain-text message to the mail transport.

        Returns the same result shape as ``NotificationPort.notify_order_event``,
        without the "skipped" status.
        """
        ...
