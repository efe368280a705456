"""Template registry — maps order event kinds to templates.

Status events (``order_<status>``) share one template parameterized by the
status; the confirmation has its own.
"""

from notifications.channel.port import ORDER_CONFIRMATION
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.order_status import OrderStatusTemplate

TEMPLATE_REGISTRY: dict[str, object] = {
    ORDER_CONFIRMATION: OrderConfirmationTemplate,
}


def get_template(event_kind: str):
    """Look up a template by event kind."""
    template = TEMPLATE_REGISTRY.get(event_kind)
    if template is not None:
        return template
    if event_kind.startswith("order_"):
        return OrderStatusTemplate(event_kind.removeprefix("order_"))
    raise ValueError(f"No template registered for event kind: {event_kind}")
