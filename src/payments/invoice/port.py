"""Invoice port — abstract interface for invoice document generation."""

import random
import time
from abc import ABC, abstractmethod


def make_invoice_number(prefix: str = "INV") -> str:
    """``<prefix>-<epoch millis>-<3 random digits>``, e.g. ``INV-1718000000000-042``."""
    return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 999):03d}"


class InvoicePort(ABC):
    """Abstract interface for invoice generators."""

    @abstractmethod
    def generate(self, order: dict) -> dict:
        """Produce the invoice document for an order snapshot.

        Args:
            order: The order record, as built by ``Order.to_record()``.

        Returns:
            dict with keys: invoice_number, location, error (optional)
        """
        ...
