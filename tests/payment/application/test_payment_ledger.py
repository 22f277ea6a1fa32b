"""Application tests for the payment ledger."""

import json

import pytest
from commerce.errors import IdempotencyKeyConflict, InvalidStatusTransition, NotFound
from commerce.payment import ledger
from commerce.payment.transaction import PaymentTransaction
from protean import current_domain
from protean.exceptions import ValidationError


def _rows_for_key(key):
    return current_domain.repository_for(PaymentTransaction)._dao.query.filter(idempotency_key=key).all().items


class TestRecord:
    def test_record_without_key_inserts_each_time(self, placed_order):
        first = ledger.record(placed_order, "AUTHORIZATION", "39.00")
        second = ledger.record(placed_order, "AUTHORIZATION", "39.00")
        assert first.id != second.id
        assert len(ledger.transactions_for(placed_order)) == 2

    def test_replay_returns_same_transaction(self, placed_order):
        first = ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001")
        second = ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001")
        assert first.id == second.id
        assert len(_rows_for_key("idem-001")) == 1

    def test_replay_with_new_status_settles_pending_row(self, placed_order):
        first = ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001")
        replay = ledger.record(
            placed_order,
            "SALE",
            "39.00",
            idempotency_key="idem-001",
            status="success",
            raw_payload={"id": "ch_1"},
        )
        assert replay.id == first.id
        assert replay.status == "SUCCESS"
        assert json.loads(replay.raw_payload) == {"id": "ch_1"}

    def test_replay_on_settled_row_changes_nothing(self, placed_order):
        ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001", status="FAILURE")
        replay = ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001", status="SUCCESS")
        assert replay.status == "FAILURE"

    def test_key_reused_for_another_order(self, placed_order, catalog, billing_address):
        from commerce.cart import store
        from commerce.checkout.orchestrator import checkout

        cart_id = store.create_cart()
        store.add_item(cart_id, "var-001", 1)
        other_order = checkout(cart_id, billing_address)

        ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001")
        with pytest.raises(IdempotencyKeyConflict):
            ledger.record(other_order, "SALE", "10.00", idempotency_key="idem-001")

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            ledger.record("ord-missing", "SALE", "1.00")

    def test_negative_amount(self, placed_order):
        with pytest.raises(ValidationError):
            ledger.record(placed_order, "SALE", "-1.00")

    def test_amount_is_rounded(self, placed_order):
        assert ledger.record(placed_order, "CAPTURE", "12.345").amount == 12.35


class TestUpdateStatus:
    def test_update_status(self, placed_order):
        ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001")
        transaction = ledger.update_status("idem-001", "ERROR", raw_payload='{"code": "timeout"}')
        assert transaction.status == "ERROR"
        assert transaction.raw_payload == '{"code": "timeout"}'

    def test_update_unknown_key(self):
        with pytest.raises(NotFound):
            ledger.update_status("idem-missing", "SUCCESS")

    def test_settled_row_cannot_change(self, placed_order):
        ledger.record(placed_order, "SALE", "39.00", idempotency_key="idem-001")
        ledger.update_status("idem-001", "SUCCESS")
        with pytest.raises(InvalidStatusTransition):
            ledger.update_status("idem-001", "FAILURE")
        ledger.update_status("idem-001", "SUCCESS")
