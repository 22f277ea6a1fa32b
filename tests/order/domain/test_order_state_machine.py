"""Tests for Order status transitions."""

import pytest
from commerce.errors import InvalidStatusTransition, NotFound
from commerce.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from commerce.order.order import AddressType, LineItem, Order, OrderAddress, OrderStatus
from protean.exceptions import ValidationError


def _make_order(status=None):
    line = LineItem(variant_id="var-001", quantity=2, unit_price=10.0, total_price=20.0)
    order = Order.place(
        cart_id="cart-001",
        customer_id="cust-001",
        currency="USD",
        line_items=[line],
        addresses=[OrderAddress(address_type=AddressType.BILLING.value, city="London")],
        allocations=[],
        subtotal_price=20.0,
        total_discounts=0.0,
        total_tax=0.0,
        shipping_price=0.0,
        total_price=20.0,
        total_weight=0.0,
    )
    if status:
        order.status = status
    return order


class TestPlacement:
    def test_placed_order_is_pending(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.total_weight_unit == "G"
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.item_count == 2

    def test_one_address_per_type(self):
        with pytest.raises(ValidationError):
            Order(
                cart_id="cart-001",
                addresses=[
                    OrderAddress(address_type="BILLING", city="London"),
                    OrderAddress(address_type="BILLING", city="Paris"),
                ],
            )

    def test_unknown_line_item(self):
        with pytest.raises(NotFound):
            _make_order().line_item("missing")


class TestTransitions:
    @pytest.mark.parametrize(
        "start, target",
        [
            ("PENDING", "PROCESSING"),
            ("PENDING", "ON-HOLD"),
            ("PROCESSING", "COMPLETED"),
            ("ON-HOLD", "PROCESSING"),
            ("COMPLETED", "REFUNDED"),
            ("REFUNDED", "ARCHIVED"),
        ],
    )
    def test_allowed(self, start, target):
        order = _make_order(start)
        order.change_status(target)
        assert order.status == target
        assert isinstance(order._events[-1], OrderStatusChanged)

    @pytest.mark.parametrize(
        "start, target",
        [
            ("PENDING", "COMPLETED"),
            ("ON-HOLD", "FAILED"),
            ("COMPLETED", "PENDING"),
            ("ARCHIVED", "PROCESSING"),
        ],
    )
    def test_rejected(self, start, target):
        order = _make_order(start)
        with pytest.raises(InvalidStatusTransition) as exc:
            order.change_status(target)
        assert exc.value.context["current"] == start
        assert order.status == start

    def test_same_status_is_a_no_op(self):
        order = _make_order()
        order._events.clear()
        order.change_status("PENDING")
        assert order._events == []


class TestCancel:
    @pytest.mark.parametrize("start", ["PENDING", "PROCESSING", "ON-HOLD"])
    def test_cancellable(self, start):
        order = _make_order(start)
        order.cancel("customer request")
        assert order.status == "CANCELLED"
        assert order.cancel_reason == "customer request"
        assert isinstance(order._events[-1], OrderCancelled)

    @pytest.mark.parametrize("start", ["COMPLETED", "CANCELLED", "FAILED"])
    def test_not_cancellable(self, start):
        with pytest.raises(InvalidStatusTransition):
            _make_order(start).cancel()

    def test_cancel_through_change_status_is_refused(self):
        with pytest.raises(ValidationError):
            _make_order().change_status("CANCELLED")
