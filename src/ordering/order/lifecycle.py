"""Order reads and status transitions after checkout.

A status transition is one write of the status column followed by a
best-effort notification to the buyer. The notification runs after the
write has committed and its failure never fails the transition.
"""

import structlog

from identity.accounts import get_account_directory
from identity.accounts.port import AccountDirectory
from notifications.channel import get_notifier
from notifications.channel.port import NotificationPort, status_event_kind
from ordering.errors import OrderNotFound
from ordering.order.order import Order
from ordering.order.payment import Payment
from ordering.shared.owner import OwnerKey, OwnerKind
from ordering.storage import get_storage
from ordering.storage.port import Storage

logger = structlog.get_logger(__name__)


class OrderLifecycle:
    def __init__(
        self,
        storage: Storage | None = None,
        notifier: NotificationPort | None = None,
        accounts: AccountDirectory | None = None,
    ):
        self.storage = storage or get_storage()
        self.notifier = notifier or get_notifier()
        self.accounts = accounts or get_account_directory()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_order(self, order_id) -> Order:
        record = self.storage.session().get_order(str(order_id))
        if record is None:
            raise OrderNotFound(str(order_id))
        return Order.from_record(record)

    def get_payment_for_order(self, order_id) -> Payment | None:
        record = self.storage.session().get_payment_for_order(str(order_id))
        return Payment.from_record(record) if record is not None else None

    def list_orders(self, owner: OwnerKey | None = None) -> list[Order]:
        records = self.storage.session().list_orders(owner.key if owner is not None else None)
        return [Order.from_record(record) for record in records]

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def transition_order_status(self, order_id, new_status) -> Order:
        """Move an order to ``new_status``.

        Raises OrderNotFound for unknown orders and ValidationError for
        unknown statuses.
        """
        session = self.storage.session()
        order = self.get_order(order_id)
        previous_status = order.transition_to(new_status)

        if not session.update_order_status(str(order.id), order.status, order.updated_at):
            raise OrderNotFound(str(order_id))

        logger.info(
            "order.status_changed",
            order_id=str(order.id),
            previous_status=previous_status,
            new_status=order.status,
        )

        self._notify(order, previous_status)
        return order

    def _recipient(self, order: Order) -> str | None:
        if order.contact_email:
            return order.contact_email
        if order.owner.kind == OwnerKind.ACCOUNT.value:
            return self.accounts.email_for(order.owner.value)
        return None

    def _notify(self, order: Order, previous_status: str) -> None:
        recipient = self._recipient(order)
        if not recipient:
            logger.warning(
                "order.status_notification_failed",
                order_id=str(order.id),
                error=f"No e-mail address for {order.owner.key}",
            )
            return

        event_kind = status_event_kind(order.status)
        data = {
            "order_id": str(order.id),
            "owner_key": order.owner.key,
            "previous_status": previous_status,
            "status": order.status,
            "total_amount": order.pricing.total_amount,
            "currency": order.pricing.currency,
        }
        try:
            result = self.notifier.notify_order_event(event_kind, recipient, data)
        except Exception as exc:
            logger.warning("order.status_notification_failed", order_id=str(order.id), error=str(exc), exc_info=True)
            return

        if result.get("error"):
            logger.warning("order.status_notification_failed", order_id=str(order.id), error=result["error"])
