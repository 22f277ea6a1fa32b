"""Tests for money rounding and enum normalisation."""

from decimal import Decimal

import pytest
from commerce.fulfillment.fulfillment import FulfillmentStatus
from commerce.order.order import OrderStatus
from commerce.shared.choices import normalize_choice
from commerce.shared.money import ZERO, as_float, money_sum, to_money
from protean.exceptions import ValidationError


class TestToMoney:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2.675", "2.68"),
            (2.675, "2.68"),
            ("0.005", "0.01"),
            ("-0.005", "-0.01"),
            (10, "10.00"),
            (None, "0.00"),
        ],
    )
    def test_rounds_half_up(self, value, expected):
        assert to_money(value) == Decimal(expected)

    def test_as_float(self):
        assert as_float("19.999") == 20.0

    def test_money_sum(self):
        assert money_sum(["0.10", "0.20", 0.3]) == Decimal("0.60")
        assert money_sum([]) == ZERO


class TestNormalizeChoice:
    @pytest.mark.parametrize("value", ["on-hold", "ON_HOLD", "On-Hold", OrderStatus.ON_HOLD])
    def test_variants_map_to_stored_value(self, value):
        assert normalize_choice(OrderStatus, value) == "ON-HOLD"

    def test_unknown_value(self):
        with pytest.raises(ValidationError) as exc:
            normalize_choice(FulfillmentStatus, "SHIPPED")
        assert "status" in exc.value.messages
