"""Post-order processing — the side effects of a committed order.

Runs detached, one worker thread per order, from a snapshot of the order
record taken by the caller. Steps:

1. generate the invoice document
2. send the order confirmation (with the invoice number when step 1 worked)
3. book a carrier shipment, when shipping integration is enabled
4. debit loyalty points spent as a discount, when the buyer is a signed-in account
5. credit loyalty points, when the buyer is a signed-in account

Each step succeeds or fails on its own. A failure is logged and recorded in
the ``PostOrderReport`` as an ``AsyncStepFailure``; it never stops the other
steps and never touches the order itself.
"""

import copy
import threading
from dataclasses import dataclass, field

import structlog

from fulfillment.carrier import get_carrier
from fulfillment.carrier.port import CarrierPort
from identity.accounts import get_account_directory
from identity.accounts.port import AccountDirectory
from identity.loyalty import get_loyalty_ledger
from identity.loyalty.port import LoyaltyLedger
from notifications.channel import get_notifier
from notifications.channel.port import ORDER_CONFIRMATION, NotificationPort
from ordering.config import CheckoutSettings
from ordering.errors import AsyncStepFailure
from ordering.order.payment import PaymentGateway, gateway_for
from ordering.shared.owner import OwnerKind
from payments.invoice import get_invoice_generator
from payments.invoice.port import InvoicePort

logger = structlog.get_logger(__name__)


class PostOrderStepError(Exception):
    """A collaborator reported failure in its result instead of raising."""


def _ensure_ok(result: dict) -> dict:
    if result.get("error"):
        raise PostOrderStepError(result["error"])
    return result


@dataclass
class PostOrderReport:
    order_id: str
    invoice: dict | None = None
    notification: dict | None = None
    shipment: dict | None = None
    loyalty_redemption: dict | None = None
    loyalty: dict | None = None
    failures: list[AsyncStepFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def failed_steps(self) -> list[str]:
        return [failure.step for failure in self.failures]


class PostOrderProcessor:
    def __init__(
        self,
        settings: CheckoutSettings,
        invoices: InvoicePort | None = None,
        notifier: NotificationPort | None = None,
        carrier: CarrierPort | None = None,
        loyalty: LoyaltyLedger | None = None,
        accounts: AccountDirectory | None = None,
    ):
        self.settings = settings
        self.invoices = invoices or get_invoice_generator()
        self.notifier = notifier or get_notifier()
        self.carrier = carrier or get_carrier()
        self.loyalty = loyalty or get_loyalty_ledger()
        self.accounts = accounts or get_account_directory()

    def dispatch(self, order: dict) -> threading.Thread:
        """Start processing ``order`` on its own daemon thread and return the thread."""
        snapshot = copy.deepcopy(order)
        thread = threading.Thread(
            target=self.run,
            args=(snapshot,),
            name=f"post-order-{snapshot['id'][:8]}",
            daemon=True,
        )
        thread.start()
        logger.debug("post_order.dispatched", order_id=snapshot["id"], thread=thread.name)
        return thread

    def run(self, order: dict) -> PostOrderReport:
        report = PostOrderReport(order_id=order["id"])

        invoice = self._step(report, "invoice", self._generate_invoice, order)
        self._step(report, "notification", self._send_confirmation, order, invoice)

        if self.settings.shipping_integration_enabled:
            self._step(report, "shipment", self._create_shipment, order)

        kind, _, account_id = order["owner_key"].partition(":")
        if self.settings.loyalty_enabled and kind == OwnerKind.ACCOUNT.value:
            if order.get("loyalty_points_redeemed"):
                self._step(report, "loyalty_redemption", self._redeem_loyalty, order, account_id)
            self._step(report, "loyalty", self._earn_loyalty, order, account_id)

        log = logger.warning if report.failures else logger.info
        log(
            "post_order.completed",
            order_id=report.order_id,
            failed_steps=report.failed_steps,
        )
        return report

    # -------------------------------------------------------------------
    # Step isolation
    # -------------------------------------------------------------------
    def _step(self, report: PostOrderReport, name: str, action, *args):
        try:
            result = action(*args)
        except Exception as exc:
            report.failures.append(AsyncStepFailure(order_id=report.order_id, step=name, error=str(exc)))
            logger.error(
                "post_order.step_failed",
                order_id=report.order_id,
                step=name,
                error=str(exc),
                exc_info=True,
            )
            return None

        setattr(report, name, result)
        return result

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _generate_invoice(self, order):
        return _ensure_ok(self.invoices.generate(order))

    def _recipient(self, order):
        if order.get("contact_email"):
            return order["contact_email"]
        kind, _, account_id = order["owner_key"].partition(":")
        if kind == OwnerKind.ACCOUNT.value:
            return self.accounts.email_for(account_id)
        return None

    def _send_confirmation(self, order, invoice):
        recipient = self._recipient(order)
        if not recipient:
            raise PostOrderStepError(f"No e-mail address for {order['owner_key']}")

        pricing = order["pricing"]
        data = {
            "order_id": order["id"],
            "owner_key": order["owner_key"],
            "total_amount": pricing["total_amount"],
            "currency": pricing["currency"],
            "item_count": sum(item["quantity"] for item in order["items"]),
            "invoice_number": invoice["invoice_number"] if invoice else None,
        }
        return _ensure_ok(self.notifier.notify_order_event(ORDER_CONFIRMATION, recipient, data))

    def _create_shipment(self, order):
        address = order["shipping_address"]
        cash_on_delivery = gateway_for(order["payment_method"]) == PaymentGateway.CASH_ON_DELIVERY
        total_amount = order["pricing"]["total_amount"]

        shipment = {
            "consignee": {
                "name": address["name"],
                "address": address["street"],
                "city": address["city"],
                "state": address["state"],
                "pin": address["postal_code"],
                "country": address.get("country"),
                "phone": address.get("phone"),
            },
            "payment_mode": "COD" if cash_on_delivery else "Prepaid",
            "total_amount": total_amount,
            "cod_amount": total_amount if cash_on_delivery else 0.0,
            "quantity": sum(item["quantity"] for item in order["items"]),
            "shipping_method": order.get("shipping_method"),
            "gift_wrap": bool(order.get("gift_wrap")),
        }
        return _ensure_ok(self.carrier.create_shipment(order["id"], shipment))

    def _redeem_loyalty(self, order, account_id):
        return _ensure_ok(self.loyalty.redeem_points(account_id, order["id"], order["loyalty_points_redeemed"]))

    def _earn_loyalty(self, order, account_id):
        return _ensure_ok(self.loyalty.earn_points(account_id, order["id"], order["pricing"]["total_amount"]))
