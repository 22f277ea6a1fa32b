"""Fulfillment status and tracking updates: commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.fulfillment.fulfillment import Fulfillment, FulfillmentStatus
from commerce.shared.choices import normalize_choice


@commerce.command(part_of="Fulfillment")
class ChangeFulfillmentStatus:
    fulfillment_id = Identifier(required=True)
    status = String(required=True, max_length=15)


@commerce.command(part_of="Fulfillment")
class UpdateTracking:
    fulfillment_id = Identifier(required=True)
    shipping_carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1024)


@commerce.command_handler(part_of=Fulfillment)
class FulfillmentTrackingHandler:
    @handle(ChangeFulfillmentStatus)
    def change_fulfillment_status(self, command):
        repo = current_domain.repository_for(Fulfillment)
        fulfillment = repo.get(command.fulfillment_id)
        fulfillment.change_status(normalize_choice(FulfillmentStatus, command.status))
        repo.add(fulfillment)

    @handle(UpdateTracking)
    def update_tracking(self, command):
        repo = current_domain.repository_for(Fulfillment)
        fulfillment = repo.get(command.fulfillment_id)
        fulfillment.update_tracking(
            shipping_carrier=command.shipping_carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
        )
        repo.add(fulfillment)
