"""Inventory stocking: command and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import DuplicateInventoryLevel
from commerce.inventory.level import InventoryLevel


@commerce.command(part_of="InventoryLevel")
class StockInventory:
    """Create the level for a (variant, location) pair."""

    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(default=0, min_value=0)


@commerce.command_handler(part_of=InventoryLevel)
class StockInventoryHandler:
    @handle(StockInventory)
    def stock_inventory(self, command):
        repo = current_domain.repository_for(InventoryLevel)
        if repo.at(command.variant_id, command.location_id) is not None:
            raise DuplicateInventoryLevel(command.variant_id, command.location_id)

        level = InventoryLevel.stock(
            variant_id=command.variant_id,
            location_id=command.location_id,
            quantity=command.quantity or 0,
        )
        repo.add(level)
        return str(level.id)
