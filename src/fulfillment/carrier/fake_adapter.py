"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock shipment ids and tracking numbers. Configurable success/failure
behavior for integration testing.
"""

import threading
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from fulfillment.carrier.port import CarrierPort


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self._lock = threading.Lock()
        self.shipments: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_shipment(self, order_id: str, shipment: dict) -> dict:
        if not self.should_succeed:
            return {
                "shipment_id": None,
                "tracking_number": None,
                "estimated_delivery": None,
                "error": self.failure_reason,
            }

        # Estimate delivery based on shipping method
        days = {"standard": 5, "express": 2, "overnight": 1}.get((shipment.get("shipping_method") or "").lower(), 5)

        result = {
            "shipment_id": f"ship-{uuid4().hex[:8]}",
            "tracking_number": f"FAKE-{uuid4().hex[:12].upper()}",
            "estimated_delivery": (datetime.now(UTC) + timedelta(days=days)).date().isoformat(),
        }
        with self._lock:
            self.shipments.append({"order_id": order_id, **shipment, **result})
        return result
