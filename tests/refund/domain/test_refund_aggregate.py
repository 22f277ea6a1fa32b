"""Tests for the Refund aggregate."""

from decimal import Decimal

import pytest
from commerce.errors import InvalidStatusTransition
from commerce.refund.events import RefundIssued
from commerce.refund.refund import Refund


def _make_refund():
    return Refund.issue(
        order_id="ord-001",
        lines=[("line-1", 1, Decimal("10.00")), ("line-2", 2, Decimal("4.505"))],
        reason="damaged",
    )


class TestRefund:
    def test_total_is_sum_of_lines(self):
        refund = _make_refund()
        assert refund.total == 14.51
        assert refund.status == "PENDING"
        assert isinstance(refund._events[0], RefundIssued)

    def test_transitions(self):
        refund = _make_refund()
        refund.change_status("PROCESSING")
        refund.change_status("COMPLETED")
        with pytest.raises(InvalidStatusTransition):
            refund.change_status("CANCELLED")

    def test_failed_refund_does_not_count(self):
        refund = _make_refund()
        refund.change_status("FAILED")
        assert not refund.counts_toward_cap
