"""Notification feature flags, captured once as a read-only snapshot."""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class NotificationSettings:
    """Which order events produce a buyer notification.

    ``disabled_kinds`` holds event kinds such as ``"order_paid"``; every kind
    not listed is sent.
    """

    enabled: bool = True
    disabled_kinds: frozenset[str] = field(default_factory=frozenset)
    sender: str = "orders@shopstream.example"

    def is_enabled(self, event_kind: str) -> bool:
        return self.enabled and event_kind not in self.disabled_kinds

    @classmethod
    def from_env(cls) -> "NotificationSettings":
        disabled = os.getenv("NOTIFICATIONS_DISABLED_KINDS", "")
        return cls(
            enabled=os.getenv("NOTIFICATIONS_ENABLED", "true").strip().lower() in {"1", "true", "yes", "on"},
            disabled_kinds=frozenset(kind.strip() for kind in disabled.split(",") if kind.strip()),
            sender=os.getenv("NOTIFICATIONS_SENDER", cls.sender),
        )
