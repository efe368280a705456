"""Notifier registry — pluggable order notification dispatch.

Uses the email notifier over the fake email adapter by default. A real email
adapter can be installed with set_notifier() at startup.
"""

import os

from notifications.channel.port import NotificationPort

_notifier_instance: NotificationPort | None = None


def get_notifier() -> NotificationPort:
    """Return the configured notifier (singleton).

    Configure via the NOTIFICATION_ADAPTER environment variable.
    """
    global _notifier_instance
    if _notifier_instance is None:
        adapter = os.environ.get("NOTIFICATION_ADAPTER", "fake")
        if adapter == "fake":
            from notifications.channel.email_notifier import EmailOrderNotifier
            from notifications.channel.fake_email import FakeEmailAdapter
            from notifications.settings import NotificationSettings

            _notifier_instance = EmailOrderNotifier(FakeEmailAdapter(), NotificationSettings.from_env())
        else:
            raise ValueError(f"Unknown notification adapter: {adapter}")
    return _notifier_instance


def set_notifier(notifier: NotificationPort) -> None:
    """Override the active notifier (useful for tests)."""
    global _notifier_instance
    _notifier_instance = notifier


def reset_notifier() -> None:
    """Reset the notifier singleton (useful for testing)."""
    global _notifier_instance
    _notifier_instance = None
