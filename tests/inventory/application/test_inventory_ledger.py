"""Application tests for the inventory ledger entry points."""

import pytest
from commerce.errors import DuplicateInventoryLevel, InsufficientStock, NotFound
from commerce.inventory import ledger
from commerce.inventory.level import InventoryLevel
from commerce.inventory.reservation import ReserveStock
from protean import current_domain


class TestStock:
    def test_stock_creates_level(self):
        level_id = ledger.stock("var-001", "loc-a", 5)
        level = current_domain.repository_for(InventoryLevel).get(level_id)
        assert level.quantity == 5

    def test_duplicate_level_is_rejected(self):
        ledger.stock("var-001", "loc-a", 5)
        with pytest.raises(DuplicateInventoryLevel):
            ledger.stock("var-001", "loc-a", 1)

    def test_location_less_and_located_levels_coexist(self):
        ledger.stock("var-001", None, 1)
        ledger.stock("var-001", "loc-a", 2)
        assert [lvl.quantity for lvl in ledger.levels_for("var-001")] == [1, 2]

    def test_second_location_less_level_is_rejected(self):
        ledger.stock("var-001", None, 1)
        with pytest.raises(DuplicateInventoryLevel):
            ledger.stock("var-001", None, 1)


class TestReserveAndRelease:
    def test_reserve_then_release(self):
        ledger.stock("var-001", "loc-a", 5)
        assert ledger.reserve("var-001", "loc-a", 3) == 2
        assert ledger.release("var-001", "loc-a", 1) == 3
        assert ledger.level_for("var-001", "loc-a").quantity == 3

    def test_insufficient_stock_leaves_level(self):
        ledger.stock("var-001", "loc-a", 2)
        with pytest.raises(InsufficientStock):
            ledger.reserve("var-001", "loc-a", 3)
        assert ledger.level_for("var-001", "loc-a").quantity == 2

    def test_unknown_level(self):
        with pytest.raises(NotFound):
            ledger.reserve("var-001", "loc-missing", 1)
        with pytest.raises(NotFound):
            ledger.level_for("var-404")

    def test_reserve_command_returns_remaining(self):
        ledger.stock("var-001", None, 4)
        remaining = current_domain.process(
            ReserveStock(variant_id="var-001", quantity=1),
            asynchronous=False,
        )
        assert remaining == 3
