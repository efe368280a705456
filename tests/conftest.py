import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(autouse=True)
def run_around_tests(_ordering_domain):
    """Push domain context before each test, reset adapter registries after."""
    ctx = _ordering_domain.domain_context()
    ctx.push()

    yield

    from fulfillment.carrier import reset_carrier
    from identity.accounts import reset_account_directory
    from identity.loyalty import reset_loyalty_ledger
    from notifications.channel import reset_notifier
    from ordering.storage import reset_storage
    from payments.invoice import reset_invoice_generator

    reset_carrier()
    reset_account_directory()
    reset_loyalty_ledger()
    reset_notifier()
    reset_invoice_generator()
    reset_storage()

    ctx.pop()
