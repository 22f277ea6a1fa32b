"""Application tests for checkout."""

import pytest
from commerce.cart import store
from commerce.cart.cart import CartStatus
from commerce.checkout.orchestrator import checkout
from commerce.checkout.placement import PlaceOrder, choose_level
from commerce.discount.management import create_discount
from commerce.errors import (
    CartAlreadyOrdered,
    DiscountNotActive,
    EmptyCart,
    InsufficientStock,
    NotFound,
)
from commerce.inventory import ledger
from commerce.inventory.level import InventoryLevel
from commerce.locking import get_row_locks, inventory_key
from commerce.order.lifecycle import get_order
from commerce.order.order import Order
from protean import current_domain
from protean.exceptions import ValidationError


def _all_orders():
    return current_domain.repository_for(Order)._dao.query.all().items


class TestCheckout:
    def test_single_item_checkout(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-001": 3})

        order_id = checkout(cart_id, billing_address)

        order = get_order(order_id)
        assert order.status == "PENDING"
        assert order.cart_id == cart_id
        assert order.customer_id == "cust-001"
        assert order.subtotal_price == 30.0
        assert order.total_price == 30.0
        assert order.total_weight == 750.0
        assert ledger.level_for("var-001", "loc-a").quantity == 2

        cart = store.get_cart(cart_id)
        assert cart.status == CartStatus.ORDERED.value
        assert cart.order_id == order_id

    def test_line_items_are_catalog_snapshots(self, stock, cart_with, billing_address, catalog):
        cart_id = cart_with({"var-001": 2})
        order_id = checkout(cart_id, billing_address)

        # A later catalog edit does not reach the order
        catalog.register("var-001", "99.00", title="Renamed")

        line = get_order(order_id).line_items[0]
        assert line.title == "Linen Shirt"
        assert line.sku == "SHIRT-M"
        assert line.product_id == "prod-001"
        assert line.location_id == "loc-a"
        assert line.unit_price == 10.0
        assert line.total_price == 20.0

    def test_subtotal_is_sum_of_lines(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-001": 1, "var-002": 3, "var-003": 1})
        order = get_order(checkout(cart_id, billing_address))
        expected = sum(line.unit_price * line.quantity for line in order.line_items)
        assert order.subtotal_price == round(expected, 2) == 43.49

    def test_addresses_are_copied(self, stock, cart_with, billing_address, address_book):
        shipping_id = address_book.save(first_name="Ada", line1="1 Dock Road", city="Leeds", country_code="GB")
        order_id = checkout(cart_with({"var-001": 1}), billing_address, shipping_address=shipping_id)

        # Editing the saved address afterwards does not touch the order
        address_book.save(shipping_id, first_name="Ada", line1="Elsewhere", city="York", country_code="GB")

        order = get_order(order_id)
        assert order.address("BILLING").city == "London"
        assert order.address("SHIPPING").line1 == "1 Dock Road"

    def test_unknown_address_field(self, stock, cart_with):
        with pytest.raises(ValidationError):
            checkout(cart_with({"var-001": 1}), {"street": "Main"})

    def test_billing_address_is_required(self, stock, cart_with):
        with pytest.raises(ValidationError):
            checkout(cart_with({"var-001": 1}), None)

    def test_taxes_and_shipping(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-001": 2, "var-003": 1})
        order = get_order(
            checkout(
                cart_id,
                billing_address,
                shipping_price="4.99",
                unit_tax_amounts={"var-001": "0.83", "var-003": "1.00"},
            )
        )
        # var-003 is not taxable
        assert order.total_tax == 1.66
        assert order.shipping_price == 4.99
        assert order.total_price == round(20.0 + 19.99 + 1.66 + 4.99, 2)


class TestCheckoutDiscounts:
    def test_order_wide_percent_off(self, stock, cart_with, billing_address):
        create_discount("SAVE10", "ORDER", "PERCENT_OFF", 10)
        order = get_order(checkout(cart_with({"var-001": 3}), billing_address, discount_codes=["save10"]))

        assert order.total_discounts == 3.0
        assert order.total_price == 27.0
        assert len(order.allocations) == 1
        allocation = order.allocations[0]
        assert allocation.code == "SAVE10"
        assert allocation.amount == 3.0
        assert allocation.line_item_id is None

    def test_line_item_allocation_points_at_line(self, stock, cart_with, billing_address):
        create_discount("ONEOFF", "LINE_ITEM", "FLAT_RATE", 1)
        order = get_order(checkout(cart_with({"var-001": 1}), billing_address, discount_codes=["ONEOFF"]))

        line = order.line_items[0]
        assert order.allocations[0].line_item_id == line.id
        assert line.total_discount == 1.0
        assert line.total_price == 9.0

    def test_duplicate_codes_apply_once(self, stock, cart_with, billing_address):
        create_discount("SAVE10", "ORDER", "PERCENT_OFF", 10)
        order = get_order(
            checkout(cart_with({"var-001": 3}), billing_address, discount_codes=["SAVE10", "save10"])
        )
        assert len(order.allocations) == 1

    def test_unknown_code_aborts(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-001": 3})
        with pytest.raises(NotFound):
            checkout(cart_id, billing_address, discount_codes=["MISSING"])
        assert store.get_cart(cart_id).status == "OPEN"
        assert ledger.level_for("var-001", "loc-a").quantity == 5

    def test_inactive_code_aborts(self, stock, cart_with, billing_address):
        create_discount("OLD", "ORDER", "FLAT_RATE", 5, status="EXPIRED")
        cart_id = cart_with({"var-001": 1})
        with pytest.raises(DiscountNotActive):
            checkout(cart_id, billing_address, discount_codes=["OLD"])
        assert store.get_cart(cart_id).status == "OPEN"


class TestCheckoutFailures:
    def test_second_checkout_is_rejected(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-001": 3})
        checkout(cart_id, billing_address)

        with pytest.raises(CartAlreadyOrdered):
            checkout(cart_id, billing_address)

        assert len(_all_orders()) == 1
        assert ledger.level_for("var-001", "loc-a").quantity == 2

    def test_handler_rejects_ordered_cart_too(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-001": 1})
        checkout(cart_id, billing_address)
        with pytest.raises(CartAlreadyOrdered):
            current_domain.process(
                PlaceOrder(cart_id=cart_id, billing_address='{"city": "London"}'),
                asynchronous=False,
            )

    def test_empty_cart(self, stock, catalog, billing_address):
        cart_id = store.create_cart()
        with pytest.raises(EmptyCart):
            checkout(cart_id, billing_address)

    def test_unknown_cart(self, billing_address):
        with pytest.raises(NotFound):
            checkout("cart-missing", billing_address)

    def test_insufficient_stock_changes_nothing(self, stock, cart_with, billing_address):
        cart_id = cart_with({"var-002": 2, "var-001": 6})

        with pytest.raises(InsufficientStock) as exc:
            checkout(cart_id, billing_address)

        assert exc.value.context["variant_id"] == "var-001"
        assert exc.value.context["available"] == 5
        assert ledger.level_for("var-001", "loc-a").quantity == 5
        assert ledger.level_for("var-002", "loc-a").quantity == 10
        assert store.get_cart(cart_id).status == "OPEN"
        assert _all_orders() == []

    def test_earlier_reservation_is_rolled_back(self, catalog, cart_with, billing_address):
        ledger.stock("var-001", "loc-a", 5)
        ledger.stock("var-002", "loc-a", 1)
        cart_id = cart_with({"var-001": 2, "var-002": 3})

        with pytest.raises(InsufficientStock) as exc:
            checkout(cart_id, billing_address)

        assert exc.value.context["variant_id"] == "var-002"
        assert ledger.level_for("var-001", "loc-a").quantity == 5
        assert ledger.level_for("var-002", "loc-a").quantity == 1
        assert store.get_cart(cart_id).status == "OPEN"
        assert _all_orders() == []

    def test_untracked_variant_has_no_stock(self, catalog, cart_with, billing_address):
        cart_id = cart_with({"var-001": 1})
        with pytest.raises(InsufficientStock):
            checkout(cart_id, billing_address)

    def test_unsupported_currency(self, stock, cart_with, billing_address):
        with pytest.raises(ValidationError):
            checkout(cart_with({"var-001": 1}), billing_address, currency="XXX")


class TestLocationSelection:
    def test_first_location_that_covers_the_line(self, catalog, cart_with, billing_address):
        ledger.stock("var-001", "loc-a", 1)
        ledger.stock("var-001", "loc-b", 4)
        order = get_order(checkout(cart_with({"var-001": 3}), billing_address))

        assert order.line_items[0].location_id == "loc-b"
        assert ledger.level_for("var-001", "loc-a").quantity == 1
        assert ledger.level_for("var-001", "loc-b").quantity == 1

    def test_explicit_location(self, catalog, cart_with, billing_address):
        ledger.stock("var-001", "loc-a", 5)
        ledger.stock("var-001", "loc-b", 5)
        checkout(cart_with({"var-001": 2}), billing_address, location_id="loc-b")
        assert ledger.level_for("var-001", "loc-a").quantity == 5
        assert ledger.level_for("var-001", "loc-b").quantity == 3

    def test_stock_is_not_split_across_locations(self, catalog, cart_with, billing_address):
        ledger.stock("var-001", "loc-a", 2)
        ledger.stock("var-001", "loc-b", 2)
        with pytest.raises(InsufficientStock):
            checkout(cart_with({"var-001": 3}), billing_address)

    def test_only_locked_levels_are_reserved_from(self, catalog):
        ledger.stock("var-001", "loc-a", 5)
        ledger.stock("var-001", "loc-b", 5)
        repo = current_domain.repository_for(InventoryLevel)

        with pytest.raises(InsufficientStock) as exc:
            choose_level(repo, "var-001", 2)
        assert exc.value.context["available"] == 0

        with get_row_locks().hold(inventory_key("var-001", "loc-b")):
            level = choose_level(repo, "var-001", 2)
        assert level.location_id == "loc-b"
