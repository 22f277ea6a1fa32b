"""Tests for the error taxonomy."""

from commerce.errors import (
    CartNotOpen,
    CommerceError,
    InsufficientStock,
    InvalidStatusTransition,
    LockTimeout,
    NotFound,
    RefundAmountExceeded,
    StockAlreadyReleased,
)
from protean.exceptions import ObjectNotFoundError, ValidationError


class TestErrors:
    def test_business_errors_are_validation_errors(self):
        exc = CartNotOpen("cart-001", "ORDERED")
        assert isinstance(exc, CommerceError)
        assert isinstance(exc, ValidationError)
        assert exc.messages == {"status": [str(exc)]}
        assert exc.context == {"cart_id": "cart-001", "status": "ORDERED"}

    def test_insufficient_stock_message(self):
        exc = InsufficientStock("var-001", None, 3, 2)
        assert "2 available, 3 requested" in str(exc)
        assert exc.context["location_id"] is None

    def test_invalid_transition_context(self):
        exc = InvalidStatusTransition("Order", "ord-001", "PENDING", "COMPLETED")
        assert exc.context["target"] == "COMPLETED"

    def test_not_found(self):
        exc = NotFound("Variant", "var-404")
        assert isinstance(exc, ObjectNotFoundError)
        assert exc.kind == "Variant"
        assert str(exc) == "Variant var-404 does not exist"

    def test_lock_timeout_is_transient(self):
        exc = LockTimeout([("cart", "c1")], 4)
        assert isinstance(exc, TimeoutError)
        assert exc.keys == [("cart", "c1")]

    def test_stock_already_released(self):
        exc = StockAlreadyReleased("ord-001")
        assert exc.messages == {"restock": [str(exc)]}
        assert exc.context["line_item_id"] is None

        exc = StockAlreadyReleased("ord-001", "li-001", 2, 2)
        assert exc.context == {"order_id": "ord-001", "line_item_id": "li-001", "released": 2, "requested": 2}

    def test_refund_amount_exceeded(self):
        exc = RefundAmountExceeded("li-001", "5.00", "5.01")
        assert isinstance(exc, CommerceError)
        assert exc.context["remaining"] == "5.00"
