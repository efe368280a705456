"""Order confirmation template — sent once an order has been placed."""

from notifications.channel.port import ORDER_CONFIRMATION


class OrderConfirmationTemplate:
    event_kind = ORDER_CONFIRMATION

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        total_amount = context.get("total_amount", 0.0)
        currency = context.get("currency", "INR")
        item_count = context.get("item_count", 0)
        invoice_number = context.get("invoice_number")

        lines = [
            f"Your order #{order_id} has been placed.",
            "",
            f"Items: {item_count}",
            f"Order Total: {currency} {total_amount:.2f}",
        ]
        if invoice_number:
            lines.append(f"Invoice: {invoice_number}")
        lines += ["", "We'll notify you once your order ships.", "", "Thank you for shopping with ShopStream!"]

        return {"subject": f"Order #{order_id} Confirmed", "body": "\n".join(lines)}
