import pytest
from commerce.cart import store
from commerce.inventory import ledger


@pytest.fixture()
def stock(catalog):
    """var-001 x5 at loc-a, var-002 x10 at loc-a, var-003 x3 with no location."""
    ledger.stock("var-001", "loc-a", 5)
    ledger.stock("var-002", "loc-a", 10)
    ledger.stock("var-003", None, 3)


@pytest.fixture()
def cart_with(catalog):
    """Factory: an open cart holding ``{variant_id: quantity}``."""

    def _make(items, customer_id="cust-001"):
        cart_id = store.create_cart(customer_id=customer_id)
        for variant_id, quantity in items.items():
            store.add_item(cart_id, variant_id, quantity)
        return cart_id

    return _make
