"""Sent whenever an order moves to a new status."""

_HEADLINES = {
    "pending": "is awaiting payment",
    "paid": "has been paid",
    "processing": "is being prepared",
    "shipped": "has shipped",
    "delivered": "has been delivered",
    "cancelled": "has been cancelled",
    "refunded": "has been refunded",
}


class OrderStatusTemplate:
    def __init__(self, status: str):
        self.status = status

    def render(self, context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        headline = _HEADLINES.get(self.status, f"is now {self.status}")
        return {
            "subject": f"Order #{order_id} {headline}",
            "body": (
                f"Your order #{order_id} {headline}.\n\n"
                f"Previous status: {context.get('previous_status', 'N/A')}\n"
                f"Current status: {self.status}\n\n"
                "Thank you for shopping with ShopStream!"
            ),
        }
