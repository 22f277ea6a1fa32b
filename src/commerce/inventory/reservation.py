"""Stock reservation and release: commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import NotFound
from commerce.inventory.level import InventoryLevel


@commerce.command(part_of="InventoryLevel")
class ReserveStock:
    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="InventoryLevel")
class ReleaseStock:
    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(required=True, min_value=1)


def load_level(repo, variant_id, location_id) -> InventoryLevel:
    level = repo.at(variant_id, location_id)
    if level is None:
        raise NotFound("InventoryLevel", f"{variant_id}@{location_id or '-'}")
    return level


@commerce.command_handler(part_of=InventoryLevel)
class ReservationHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        repo = current_domain.repository_for(InventoryLevel)
        level = load_level(repo, command.variant_id, command.location_id)
        level.reserve(command.quantity)
        repo.add(level)
        return level.quantity

    @handle(ReleaseStock)
    def release_stock(self, command):
        repo = current_domain.repository_for(InventoryLevel)
        level = load_level(repo, command.variant_id, command.location_id)
        level.release(command.quantity)
        repo.add(level)
        return level.quantity
