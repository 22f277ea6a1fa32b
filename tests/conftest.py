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


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from commerce.domain import commerce

    commerce.init()
    commerce.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path) or "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Threaded tests are slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from commerce.domain import commerce
    from commerce.utils.db import drop_db, setup_db

    setup_db(commerce)

    yield

    drop_db(commerce)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from commerce.addressbook import reset_address_book
    from commerce.catalog import reset_catalog
    from commerce.locking import reset_row_locks
    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    # Back to default collaborators and a fresh lock registry
    reset_catalog()
    reset_address_book()
    reset_row_locks()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalog():
    from commerce.catalog import InMemoryCatalog, set_catalog

    fake = InMemoryCatalog()
    fake.register("var-001", "10.00", title="Linen Shirt", sku="SHIRT-M", product_id="prod-001", weight_grams=250)
    fake.register("var-002", "4.50", title="Canvas Tote", sku="TOTE-1", product_id="prod-002", weight_grams=120)
    fake.register("var-003", "19.99", title="Gift Card", sku="GIFT-20", product_id="prod-003", taxable=False)
    set_catalog(fake)
    return fake


@pytest.fixture()
def address_book():
    from commerce.addressbook import InMemoryAddressBook, set_address_book

    fake = InMemoryAddressBook()
    set_address_book(fake)
    return fake


@pytest.fixture()
def billing_address():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "line1": "12 St James's Square",
        "city": "London",
        "postal_code": "SW1Y 4JH",
        "country_code": "GB",
    }


@pytest.fixture()
def placed_order(catalog, billing_address):
    """An order for 3 x var-001 (loc-a, 5 stocked) and 2 x var-002 (no location, 4 stocked)."""
    from commerce.cart import store
    from commerce.checkout.orchestrator import checkout
    from commerce.inventory import ledger

    ledger.stock("var-001", "loc-a", 5)
    ledger.stock("var-002", None, 4)
    cart_id = store.create_cart(customer_id="cust-001")
    store.add_item(cart_id, "var-001", 3)
    store.add_item(cart_id, "var-002", 2)
    return checkout(cart_id, billing_address)
