"""Application tests for the checkout unit of work: atomicity and compensation."""

from contextlib import contextmanager

import pytest
from ordering.checkout.service import CheckoutService
from ordering.checkout.unit_of_work import (
    SequentialUnitOfWork,
    TransactionalUnitOfWork,
    build_unit_of_work,
)
from ordering.config import CheckoutSettings
from ordering.errors import InsufficientInventory, ProductNotFound, StorageUnavailable
from ordering.storage.memory import MemoryStorage, _MemorySession
from structlog.testing import capture_logs


class FaultySession(_MemorySession):
    """Memory session that fails chosen operations, optionally only for some products."""

    def _check(self, operation, key=None):
        rule = self._storage.faults.get(operation)
        if rule is True or (rule and key in rule):
            raise StorageUnavailable(f"{operation} failed")

    def conditional_decrement(self, product_id, amount):
        self._check("conditional_decrement", product_id)
        return super().conditional_decrement(product_id, amount)

    def increment_inventory(self, product_id, amount):
        self._check("increment_inventory", product_id)
        return super().increment_inventory(product_id, amount)

    def insert_order(self, record):
        self._check("insert_order")
        return super().insert_order(record)

    def insert_payment(self, record):
        self._check("insert_payment")
        return super().insert_payment(record)

    def delete_cart(self, owner_key):
        self._check("delete_cart")
        return super().delete_cart(owner_key)


class FaultyStorage(MemoryStorage):
    def __init__(self):
        super().__init__()
        self.faults = {}

    def session(self):
        return FaultySession(self)

    @contextmanager
    def transaction(self):
        with super().transaction():
            yield FaultySession(self)


class NonTransactionalStorage(MemoryStorage):
    supports_transactions = False


@pytest.fixture
def settings():
    return CheckoutSettings(shipping_integration_enabled=True)


@pytest.fixture
def faulty():
    return FaultyStorage()


def _service(storage, transactional, post_order):
    settings = CheckoutSettings(transactional=transactional, shipping_integration_enabled=True)
    return CheckoutService(settings, storage, post_order=post_order)


@pytest.fixture
def seeded(faulty):
    session = faulty.session()
    for product_id in ("A", "B", "C"):
        session.set_inventory(product_id, 5)
    return faulty


@pytest.fixture
def fill_cart_in(faulty):
    from ordering.cart.management import CartManager

    def _fill(owner, *lines):
        manager = CartManager(faulty)
        cart = None
        for product_id, quantity in lines:
            cart = manager.add_item(owner, product_id, quantity, 100.0)
        return cart

    return _fill


def _stock(storage):
    session = storage.session()
    return {pid: session.get_inventory(pid).available_quantity for pid in ("A", "B", "C")}


class TestStrategySelection:
    def test_sequential_by_default(self):
        assert isinstance(build_unit_of_work(CheckoutSettings(), MemoryStorage()), SequentialUnitOfWork)

    def test_transactional_when_configured(self):
        uow = build_unit_of_work(CheckoutSettings(transactional=True), MemoryStorage())
        assert isinstance(uow, TransactionalUnitOfWork)

    def test_transactional_requires_backend_support(self):
        with pytest.raises(ValueError) as exc:
            build_unit_of_work(CheckoutSettings(transactional=True), NonTransactionalStorage())
        assert "does not support transactions" in str(exc.value)


class TestSequentialCompensation:
    def test_failure_on_last_line_restores_earlier_lines(self, seeded, fill_cart_in, post_order, alice, address):
        seeded.session().set_inventory("C", 0)
        cart = fill_cart_in(alice, ("A", 1), ("B", 1), ("C", 1))
        checkout = _service(seeded, False, post_order)

        with pytest.raises(InsufficientInventory) as exc:
            checkout.unit_of_work.commit(_plan(checkout, alice, cart, address))

        assert exc.value.product_id == "C"
        assert exc.value.compensation_failures == []
        assert _stock(seeded) == {"A": 5, "B": 5, "C": 0}
        assert seeded.session().list_orders() == []
        assert seeded.session().get_cart(alice.key) is not None

    def test_unknown_product_restores_earlier_lines(self, seeded, fill_cart_in, post_order, alice, address):
        cart = fill_cart_in(alice, ("A", 2), ("Z", 1))
        checkout = _service(seeded, False, post_order)

        with pytest.raises(ProductNotFound):
            checkout.unit_of_work.commit(_plan(checkout, alice, cart, address))

        assert _stock(seeded)["A"] == 5

    def test_storage_error_mid_reservation_restores_earlier_lines(
        self, seeded, fill_cart_in, post_order, alice, address
    ):
        seeded.faults["conditional_decrement"] = {"C"}
        cart = fill_cart_in(alice, ("A", 1), ("B", 2), ("C", 1))
        checkout = _service(seeded, False, post_order)

        with pytest.raises(StorageUnavailable):
            checkout.create_order(alice, cart, address, "cod")

        assert _stock(seeded) == {"A": 5, "B": 5, "C": 5}

    def test_failed_reversal_is_reported_and_others_still_run(
        self, seeded, fill_cart_in, post_order, alice, address
    ):
        seeded.session().set_inventory("C", 0)
        seeded.faults["increment_inventory"] = {"A"}
        cart = fill_cart_in(alice, ("A", 1), ("B", 1), ("C", 1))
        checkout = _service(seeded, False, post_order)

        with capture_logs() as logs, pytest.raises(InsufficientInventory) as exc:
            checkout.unit_of_work.commit(_plan(checkout, alice, cart, address))

        failures = exc.value.compensation_failures
        assert [(f.product_id, f.quantity) for f in failures] == [("A", 1)]
        assert _stock(seeded) == {"A": 4, "B": 5, "C": 0}
        critical = [entry for entry in logs if entry["log_level"] == "critical"]
        assert critical[0]["event"] == "inventory.compensation_failed"
        assert critical[0]["product_id"] == "A"

    def test_order_insert_failure_releases_stock(self, seeded, fill_cart_in, post_order, alice, address):
        seeded.faults["insert_order"] = True
        cart = fill_cart_in(alice, ("A", 2), ("B", 1))
        checkout = _service(seeded, False, post_order)

        with pytest.raises(StorageUnavailable):
            checkout.create_order(alice, cart, address, "cod")

        assert _stock(seeded) == {"A": 5, "B": 5, "C": 5}
        assert seeded.session().list_orders() == []
        assert seeded.session().get_cart(alice.key) is not None

    def test_payment_insert_failure_leaves_no_ghost_order(self, seeded, fill_cart_in, post_order, alice, address):
        seeded.faults["insert_payment"] = True
        cart = fill_cart_in(alice, ("A", 2))
        checkout = _service(seeded, False, post_order)

        with pytest.raises(StorageUnavailable):
            checkout.create_order(alice, cart, address, "cod")

        assert _stock(seeded)["A"] == 5
        assert seeded.session().list_orders() == []
        assert seeded._payments == {}

    def test_cart_delete_failure_does_not_fail_checkout(self, seeded, fill_cart_in, post_order, alice, address):
        seeded.faults["delete_cart"] = True
        cart = fill_cart_in(alice, ("A", 1))
        checkout = _service(seeded, False, post_order)

        with capture_logs() as logs:
            placed = checkout.create_order(alice, cart, address, "cod")

        assert placed.order.status == "pending"
        assert _stock(seeded)["A"] == 4
        assert seeded.session().get_cart(alice.key) is not None
        assert any(entry["event"] == "checkout.cart_not_consumed" for entry in logs)


class TestTransactionalRollback:
    def test_reservation_failure_rolls_back_everything(self, seeded, fill_cart_in, post_order, alice, address):
        seeded.session().set_inventory("C", 0)
        cart = fill_cart_in(alice, ("A", 1), ("B", 1), ("C", 1))
        checkout = _service(seeded, True, post_order)

        with capture_logs() as logs, pytest.raises(InsufficientInventory):
            checkout.unit_of_work.commit(_plan(checkout, alice, cart, address))

        assert _stock(seeded) == {"A": 5, "B": 5, "C": 0}
        # Rollback, not compensation, restored the stock.
        assert not any(entry["event"] == "inventory.reservation_released" for entry in logs)

    @pytest.mark.parametrize("operation", ["insert_order", "insert_payment", "delete_cart"])
    def test_late_failure_rolls_back_everything(
        self, seeded, fill_cart_in, post_order, alice, address, operation
    ):
        seeded.faults[operation] = True
        cart = fill_cart_in(alice, ("A", 2), ("B", 1))
        checkout = _service(seeded, True, post_order)

        with pytest.raises(StorageUnavailable):
            checkout.create_order(alice, cart, address, "cod")

        assert _stock(seeded) == {"A": 5, "B": 5, "C": 5}
        assert seeded.session().list_orders() == []
        assert seeded._payments == {}
        assert seeded.session().get_cart(alice.key) is not None


def _plan(checkout, owner, cart, address):
    """Build the plan ``create_order`` would commit, skipping its validation step."""
    from inventory.stock.reservation import ReservationLine
    from ordering.checkout.pricing import calculate_pricing
    from ordering.checkout.unit_of_work import CheckoutPlan
    from ordering.order.order import Order
    from ordering.order.payment import Payment

    order = Order.place(
        owner=owner,
        lines=[
            {"product_id": str(i.product_id), "quantity": i.quantity, "unit_price": i.unit_price} for i in cart.items
        ],
        pricing=calculate_pricing(cart.items).to_order_pricing(),
        shipping_address=address,
        billing_address=address,
        payment_method="cod",
    )
    return CheckoutPlan(
        lines=[ReservationLine(str(i.product_id), i.quantity) for i in cart.items],
        order=order,
        payment=Payment.for_order(order),
        cart_owner_key=cart.owner.key,
    )
