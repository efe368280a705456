from datetime import UTC, date, datetime, timedelta

import pytest
from fulfillment.carrier import get_carrier, reset_carrier, set_carrier
from fulfillment.carrier.fake_adapter import FakeCarrier

SHIPMENT = {
    "consignee": {"name": "Alice Rao", "pin": "560001"},
    "payment_mode": "COD",
    "total_amount": 1099.0,
    "cod_amount": 1099.0,
    "quantity": 2,
    "shipping_method": "express",
}


class TestFakeCarrier:
    def test_creates_shipment(self):
        carrier = FakeCarrier()

        result = carrier.create_shipment("ord-1", SHIPMENT)

        assert result["shipment_id"].startswith("ship-")
        assert result["tracking_number"].startswith("FAKE-")
        assert carrier.shipments[0]["order_id"] == "ord-1"
        assert carrier.shipments[0]["payment_mode"] == "COD"

    @pytest.mark.parametrize("method, days", [("express", 2), ("overnight", 1), ("standard", 5), (None, 5)])
    def test_delivery_estimate_follows_shipping_method(self, method, days):
        result = FakeCarrier().create_shipment("ord-1", {**SHIPMENT, "shipping_method": method})

        expected = (datetime.now(UTC) + timedelta(days=days)).date()
        assert abs(date.fromisoformat(result["estimated_delivery"]) - expected) <= timedelta(days=1)

    def test_configured_failure(self):
        carrier = FakeCarrier()
        carrier.configure(should_succeed=False, failure_reason="Pincode not serviceable")

        result = carrier.create_shipment("ord-1", SHIPMENT)

        assert result["error"] == "Pincode not serviceable"
        assert result["tracking_number"] is None
        assert carrier.shipments == []


class TestRegistry:
    def test_default_is_fake(self, monkeypatch):
        monkeypatch.delenv("CARRIER_ADAPTER", raising=False)
        reset_carrier()

        assert isinstance(get_carrier(), FakeCarrier)

    def test_override(self):
        carrier = FakeCarrier()
        set_carrier(carrier)

        assert get_carrier() is carrier

    def test_unknown_adapter(self, monkeypatch):
        monkeypatch.setenv("CARRIER_ADAPTER", "teleport")
        reset_carrier()

        with pytest.raises(ValueError):
            get_carrier()
