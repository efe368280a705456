"""Renders order events and sends them by email."""

import structlog

from notifications.channel.port import EmailPort, NotificationPort
from notifications.settings import NotificationSettings
from notifications.templates import get_template

logger = structlog.get_logger(__name__)


class EmailOrderNotifier(NotificationPort):
    def __init__(self, email: EmailPort, settings: NotificationSettings | None = None):
        self.email = email
        self.settings = settings or NotificationSettings()

    def notify_order_event(self, event_kind, recipient, data):
        if not self.settings.is_enabled(event_kind):
            logger.debug("notification.skipped", event_kind=event_kind, order_id=data.get("order_id"))
            return {"message_id": None, "status": "skipped"}

        if not recipient:
            logger.info("notification.no_recipient", event_kind=event_kind, order_id=data.get("order_id"))
            return {"message_id": None, "status": "skipped"}

        content = get_template(event_kind).render(data)
        result = self.email.send(
            to=recipient,
            subject=content["subject"],
            body=content["body"],
            sender=self.settings.sender,
        )

        if result.get("status") == "sent":
            logger.info(
                "notification.sent",
                event_kind=event_kind,
                order_id=data.get("order_id"),
                message_id=result.get("message_id"),
            )
        return result
