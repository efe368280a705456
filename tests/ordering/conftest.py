import pytest

from fulfillment.carrier import set_carrier
from fulfillment.carrier.fake_adapter import FakeCarrier
from identity.accounts import set_account_directory
from identity.accounts.memory_directory import MemoryAccountDirectory
from identity.loyalty import set_loyalty_ledger
from identity.loyalty.memory_ledger import MemoryLoyaltyLedger
from notifications.channel import set_notifier
from notifications.channel.email_notifier import EmailOrderNotifier
from notifications.channel.fake_email import FakeEmailAdapter
from ordering.cart.management import CartManager
from ordering.checkout.post_order import PostOrderProcessor
from ordering.checkout.service import CheckoutService
from ordering.config import CheckoutSettings
from ordering.shared.address import Address
from ordering.shared.owner import OwnerKey
from ordering.storage import set_storage
from ordering.storage.memory import MemoryStorage
from ordering.storage.sql import SQLStorage, drop_db
from payments.invoice import set_invoice_generator
from payments.invoice.fake_adapter import FakeInvoiceGenerator


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
@pytest.fixture
def memory_storage():
    storage = MemoryStorage()
    set_storage(storage)
    return storage


@pytest.fixture
def sql_storage():
    storage = SQLStorage.from_url("sqlite://")
    storage.setup()
    set_storage(storage)
    yield storage
    drop_db(storage.engine)


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def seed_stock(storage):
    def _seed(**levels):
        session = storage.session()
        for product_id, quantity in levels.items():
            session.set_inventory(product_id, quantity)

    return _seed


def available(storage, product_id):
    record = storage.session().get_inventory(product_id)
    return record.available_quantity if record else None


@pytest.fixture
def stock_of(storage):
    return lambda product_id: available(storage, product_id)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture
def email():
    adapter = FakeEmailAdapter()
    set_notifier(EmailOrderNotifier(adapter))
    return adapter


@pytest.fixture
def carrier():
    fake = FakeCarrier()
    set_carrier(fake)
    return fake


@pytest.fixture
def invoices():
    fake = FakeInvoiceGenerator()
    set_invoice_generator(fake)
    return fake


@pytest.fixture
def ledger():
    fake = MemoryLoyaltyLedger(points_per_unit=0.1)
    set_loyalty_ledger(fake)
    return fake


@pytest.fixture
def accounts():
    directory = MemoryAccountDirectory()
    set_account_directory(directory)
    return directory


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
@pytest.fixture(params=[False, True], ids=["sequential", "transactional"])
def settings(request):
    return CheckoutSettings(transactional=request.param, shipping_integration_enabled=True)


@pytest.fixture
def sequential_settings():
    return CheckoutSettings(transactional=False, shipping_integration_enabled=True)


@pytest.fixture
def post_order(settings, invoices, email, carrier, ledger, accounts):
    from notifications.channel import get_notifier

    return PostOrderProcessor(
        settings,
        invoices=invoices,
        notifier=get_notifier(),
        carrier=carrier,
        loyalty=ledger,
        accounts=accounts,
    )


@pytest.fixture
def checkout(settings, storage, post_order, accounts):
    return CheckoutService(settings, storage, post_order=post_order, accounts=accounts)


@pytest.fixture
def carts(storage):
    return CartManager(storage)


@pytest.fixture
def alice():
    return OwnerKey.account("alice")


@pytest.fixture
def fill_cart(carts):
    """Add ``(product_id, quantity, unit_price)`` lines to an owner's cart and return it."""

    def _fill(owner, *lines):
        cart = None
        for product_id, quantity, unit_price in lines:
            cart = carts.add_item(owner, product_id, quantity, unit_price, display_name=f"Product {product_id}")
        return cart

    return _fill


@pytest.fixture
def address():
    return Address(
        name="Alice Rao",
        street="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        postal_code="560001",
        phone="9876543210",
    )
