"""Invoice generator factory.

Provides get_invoice_generator() / set_invoice_generator() to swap implementations:
- FakeInvoiceGenerator for development and testing (default)
- FileInvoiceGenerator writing text invoices under INVOICE_DIR
"""

import os

from payments.invoice.port import InvoicePort

_current_generator: InvoicePort | None = None


def get_invoice_generator() -> InvoicePort:
    """Return the configured invoice generator (singleton)."""
    global _current_generator
    if _current_generator is None:
        adapter = os.environ.get("INVOICE_ADAPTER", "fake")
        prefix = os.environ.get("INVOICE_PREFIX", "INV")
        if adapter == "fake":
            from payments.invoice.fake_adapter import FakeInvoiceGenerator

            _current_generator = FakeInvoiceGenerator(prefix=prefix)
        elif adapter == "file":
            from payments.invoice.file_adapter import FileInvoiceGenerator

            _current_generator = FileInvoiceGenerator(os.environ.get("INVOICE_DIR", "invoices"), prefix=prefix)
        else:
            raise ValueError(f"Unknown invoice adapter: {adapter}")
    return _current_generator


def set_invoice_generator(generator: InvoicePort) -> None:
    """Override the active invoice generator (useful for tests)."""
    global _current_generator
    _current_generator = generator


def reset_invoice_generator() -> None:
    """Reset to default generator."""
    global _current_generator
    _current_generator = None
