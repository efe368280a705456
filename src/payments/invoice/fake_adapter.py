"""Records invoices in memory for testing."""

import threading

from payments.invoice.port import InvoicePort, make_invoice_number


class FakeInvoiceGenerator(InvoicePort):
    def __init__(self, prefix: str = "INV"):
        self.prefix = prefix
        self._lock = threading.Lock()
        self.invoices: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Invoice generation failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Invoice generation failed"):
        """Configure the fake generator behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def generate(self, order: dict) -> dict:
        if not self.should_succeed:
            return {"invoice_number": None, "location": None, "error": self.failure_reason}

        invoice_number = make_invoice_number(self.prefix)
        with self._lock:
            self.invoices.append({"invoice_number": invoice_number, "order_id": order["id"]})
        return {"invoice_number": invoice_number, "location": f"memory://invoices/{invoice_number}"}
