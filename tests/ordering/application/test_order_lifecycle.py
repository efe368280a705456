"""Application tests for order reads and status transitions."""

import pytest
from notifications.channel.email_notifier import EmailOrderNotifier
from notifications.settings import NotificationSettings
from ordering.config import CheckoutSettings
from ordering.errors import OrderNotFound
from ordering.order.lifecycle import OrderLifecycle
from protean.exceptions import ValidationError
from structlog.testing import capture_logs


@pytest.fixture
def settings():
    return CheckoutSettings(shipping_integration_enabled=False, loyalty_enabled=False)


@pytest.fixture
def placed(checkout, seed_stock, fill_cart, alice, address):
    seed_stock(**{"prod-001": 10})
    cart = fill_cart(alice, ("prod-001", 1, 250.0))
    result = checkout.create_order(alice, cart, address, "razorpay", contact_email="alice@example.com")
    result.post_order.join(timeout=5)
    return result


@pytest.fixture
def lifecycle(storage, email, accounts):
    from notifications.channel import get_notifier

    return OrderLifecycle(storage, get_notifier(), accounts)


class TestReads:
    def test_get_order(self, lifecycle, placed):
        order = lifecycle.get_order(placed.order.id)

        assert order.id == placed.order.id
        assert order.pricing.total_amount == 250.0

    def test_get_missing_order(self, lifecycle):
        with pytest.raises(OrderNotFound) as exc:
            lifecycle.get_order("no-such-order")
        assert exc.value.order_id == "no-such-order"

    def test_payment_for_order(self, lifecycle, placed):
        payment = lifecycle.get_payment_for_order(placed.order.id)

        assert payment.id == placed.payment.id
        assert payment.gateway == "razorpay"
        assert payment.status == "pending"

    def test_payment_for_unknown_order(self, lifecycle):
        assert lifecycle.get_payment_for_order("no-such-order") is None


class TestTransitions:
    def test_transition_persists_status(self, lifecycle, placed):
        order = lifecycle.transition_order_status(placed.order.id, "paid")

        assert order.status == "paid"
        assert lifecycle.get_order(placed.order.id).status == "paid"

    def test_transition_notifies_buyer(self, lifecycle, placed, email):
        email.reset()

        lifecycle.transition_order_status(placed.order.id, "shipped")

        assert len(email.sent_emails) == 1
        assert email.sent_emails[0]["to"] == "alice@example.com"
        assert "has shipped" in email.sent_emails[0]["subject"]

    def test_transition_logs_the_change(self, lifecycle, placed):
        with capture_logs() as logs:
            lifecycle.transition_order_status(placed.order.id, "paid")

        changed = [entry for entry in logs if entry["event"] == "order.status_changed"]
        assert changed[0]["previous_status"] == "pending"
        assert changed[0]["new_status"] == "paid"

    def test_skipping_steps_is_allowed(self, lifecycle, placed):
        with capture_logs() as logs:
            order = lifecycle.transition_order_status(placed.order.id, "delivered")

        assert order.status == "delivered"
        assert lifecycle.get_order(placed.order.id).status == "delivered"
        assert any(entry["event"] == "order.irregular_transition" for entry in logs)

    def test_unknown_status_is_rejected_without_a_write(self, lifecycle, placed, email):
        email.reset()

        with pytest.raises(ValidationError) as exc:
            lifecycle.transition_order_status(placed.order.id, "teleported")

        assert "Unknown order status" in str(exc.value)
        assert lifecycle.get_order(placed.order.id).status == "pending"
        assert email.sent_emails == []

    def test_unknown_order(self, lifecycle):
        with pytest.raises(OrderNotFound):
            lifecycle.transition_order_status("no-such-order", "paid")

    def test_notification_failure_does_not_fail_transition(self, lifecycle, placed, email):
        email.configure(should_succeed=False, failure_reason="SMTP down")

        with capture_logs() as logs:
            order = lifecycle.transition_order_status(placed.order.id, "paid")

        assert order.status == "paid"
        assert lifecycle.get_order(placed.order.id).status == "paid"
        warning = [entry for entry in logs if entry["event"] == "order.status_notification_failed"]
        assert warning[0]["error"] == "SMTP down"

    def test_raising_notifier_does_not_fail_transition(self, storage, placed):
        class BrokenNotifier:
            def notify_order_event(self, event_kind, recipient, data):
                raise RuntimeError("queue full")

        lifecycle = OrderLifecycle(storage, BrokenNotifier())

        order = lifecycle.transition_order_status(placed.order.id, "processing")

        assert order.status == "processing"

    def test_disabled_event_kind_is_not_sent(self, storage, placed, email):
        email.reset()
        notifier = EmailOrderNotifier(email, NotificationSettings(disabled_kinds=frozenset({"order_paid"})))
        lifecycle = OrderLifecycle(storage, notifier)

        lifecycle.transition_order_status(placed.order.id, "paid")
        lifecycle.transition_order_status(placed.order.id, "shipped")

        assert [sent["subject"] for sent in email.sent_emails] == [
            f"Order #{placed.order.id} has shipped",
        ]

    def test_transitions_do_not_touch_stock(self, lifecycle, placed, stock_of):
        lifecycle.transition_order_status(placed.order.id, "cancelled")

        assert stock_of("prod-001") == 9


class TestStatusRecipients:
    @pytest.fixture
    def placed_without_email(self, checkout, seed_stock, fill_cart, alice, address):
        seed_stock(**{"prod-001": 10})
        cart = fill_cart(alice, ("prod-001", 1, 250.0))
        result = checkout.create_order(alice, cart, address, "razorpay")
        result.post_order.join(timeout=5)
        return result

    def test_account_email_is_looked_up_for_status_notices(self, lifecycle, placed_without_email, accounts, email):
        email.reset()
        accounts.register("alice", "alice.rao@example.com")

        lifecycle.transition_order_status(placed_without_email.order.id, "shipped")

        assert placed_without_email.order.contact_email is None
        assert [sent["to"] for sent in email.sent_emails] == ["alice.rao@example.com"]

    def test_unknown_recipient_is_logged(self, lifecycle, placed_without_email, email):
        email.reset()

        with capture_logs() as logs:
            order = lifecycle.transition_order_status(placed_without_email.order.id, "paid")

        assert order.status == "paid"
        assert email.sent_emails == []
        warning = [entry for entry in logs if entry["event"] == "order.status_notification_failed"]
        assert warning[0]["log_level"] == "warning"
        assert warning[0]["error"] == "No e-mail address for account:alice"
