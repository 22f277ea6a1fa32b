"""Inventory Ledger: stocking, reservation and release entry points.

Every call holds the (variant, location) row lock while its command is
processed, so concurrent reservations against one level are serialised and
cannot lose updates.
"""

import structlog
from protean.utils.globals import current_domain

from commerce.inventory.level import InventoryLevel
from commerce.inventory.reservation import ReleaseStock, ReserveStock, load_level
from commerce.inventory.stocking import StockInventory
from commerce.locking import get_row_locks, inventory_key

logger = structlog.get_logger(__name__)


def stock(variant_id, location_id=None, quantity=0) -> str:
    """Create the inventory level for (variant, location). Returns its id."""
    with get_row_locks().hold(inventory_key(variant_id, location_id)):
        level_id = current_domain.process(
            StockInventory(variant_id=str(variant_id), location_id=location_id, quantity=quantity),
            asynchronous=False,
        )
    logger.info("Inventory stocked", variant_id=str(variant_id), location_id=location_id, quantity=quantity)
    return level_id


def reserve(variant_id, location_id, quantity) -> int:
    """Take ``quantity`` out of the level. Returns what is left."""
    with get_row_locks().hold(inventory_key(variant_id, location_id)):
        remaining = current_domain.process(
            ReserveStock(variant_id=str(variant_id), location_id=location_id, quantity=quantity),
            asynchronous=False,
        )
    logger.info(
        "Stock reserved",
        variant_id=str(variant_id),
        location_id=location_id,
        quantity=quantity,
        remaining=remaining,
    )
    return remaining


def release(variant_id, location_id, quantity) -> int:
    """Put ``quantity`` back into the level. Returns the new quantity."""
    with get_row_locks().hold(inventory_key(variant_id, location_id)):
        remaining = current_domain.process(
            ReleaseStock(variant_id=str(variant_id), location_id=location_id, quantity=quantity),
            asynchronous=False,
        )
    logger.info(
        "Stock released",
        variant_id=str(variant_id),
        location_id=location_id,
        quantity=quantity,
        remaining=remaining,
    )
    return remaining


def level_for(variant_id, location_id=None) -> InventoryLevel:
    return load_level(current_domain.repository_for(InventoryLevel), variant_id, location_id)


def levels_for(variant_id) -> list[InventoryLevel]:
    return current_domain.repository_for(InventoryLevel).for_variant(variant_id)
