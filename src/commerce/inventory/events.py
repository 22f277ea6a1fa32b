"""Domain events for the InventoryLevel aggregate."""

from protean.fields import Identifier, Integer

from commerce.domain import commerce


@commerce.event(part_of="InventoryLevel")
class InventoryStocked:
    level_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(required=True)


@commerce.event(part_of="InventoryLevel")
class StockReserved:
    """Quantity left the level for an order."""

    level_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(required=True)
    remaining = Integer(required=True)


@commerce.event(part_of="InventoryLevel")
class StockReleased:
    """Quantity returned to the level (cancellation, restock or receiving)."""

    level_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(required=True)
    remaining = Integer(required=True)
