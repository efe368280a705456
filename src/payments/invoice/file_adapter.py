"""Writes one plain-text invoice per order to a directory."""

from datetime import UTC, datetime
from pathlib import Path

import structlog

from payments.invoice.port import InvoicePort, make_invoice_number

logger = structlog.get_logger(__name__)


def render_invoice(invoice_number: str, order: dict) -> str:
    pricing = order["pricing"]
    currency = pricing["currency"]
    address = order["shipping_address"]

    lines = [
        f"INVOICE {invoice_number}",
        f"Order: {order['id']}",
        f"Date: {datetime.now(UTC).date().isoformat()}",
        "",
        "Bill to:",
        f"  {address['name']}",
        f"  {address['street']}",
        f"  {address['city']}, {address['state']} {address['postal_code']}",
        f"  {address.get('country') or ''}",
        "",
    ]
    for item in order["items"]:
        description = item.get("display_name") or item["product_id"]
        amount = item["unit_price"] * item["quantity"]
        lines.append(f"{description:<40} {item['quantity']:>4} x {item['unit_price']:>10.2f} = {amount:>12.2f}")

    lines += [
        "",
        f"{'Subtotal':<40} {currency} {pricing['subtotal']:>12.2f}",
        f"{'Shipping':<40} {currency} {pricing['shipping_cost']:>12.2f}",
        f"{'Discount':<40} {currency} {-pricing['discount']:>12.2f}",
        f"{'Tax (' + format(pricing['tax_rate'], 'g') + '%)':<40} {currency} {pricing['tax_amount']:>12.2f}",
        f"{'Total':<40} {currency} {pricing['total_amount']:>12.2f}",
        "",
        f"Payment method: {order['payment_method']}",
    ]
    return "\n".join(lines) + "\n"


class FileInvoiceGenerator(InvoicePort):
    def __init__(self, directory: Path | str, prefix: str = "INV"):
        self.directory = Path(directory)
        self.prefix = prefix

    def generate(self, order: dict) -> dict:
        self.directory.mkdir(parents=True, exist_ok=True)
        invoice_number = make_invoice_number(self.prefix)
        path = self.directory / f"{invoice_number}.txt"
        path.write_text(render_invoice(invoice_number, order), encoding="utf-8")

        logger.info("invoice.written", order_id=order["id"], invoice_number=invoice_number, path=str(path))
        return {"invoice_number": invoice_number, "location": str(path)}
