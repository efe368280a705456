"""Carrier port — abstract interface for shipping carrier integrations.

All carrier adapters must implement this interface. The checkout pipeline
programs against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def create_shipment(self, order_id: str, shipment: dict) -> dict:
        """Book a shipment with the carrier.

        Args:
            order_id: Order the shipment belongs to.
            shipment: dict with consignee (name, address, city, state, pin,
                phone), payment_mode ("COD" or "Prepaid"), total_amount,
                quantity and shipping_method.

        Returns:
            dict with keys: shipment_id, tracking_number, estimated_delivery, error (optional)
        """
        ...
