"""Discount management: commands, handler and entry points."""

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.discount.discount import Discount, DiscountApplication, DiscountMethod, DiscountStatus
from commerce.domain import commerce
from commerce.errors import DuplicateDiscountCode, NotFound
from commerce.shared.choices import normalize_choice

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Discount")
class CreateDiscount:
    code = String(required=True, max_length=64)
    application = String(required=True, max_length=15)
    method = String(required=True, max_length=15)
    value = Float(required=True, min_value=0.0)
    status = String(max_length=15, default=DiscountStatus.ACTIVE.value)
    starts_at = DateTime()
    ends_at = DateTime()


@commerce.command(part_of="Discount")
class ChangeDiscountStatus:
    discount_id = Identifier(required=True)
    status = String(required=True, max_length=15)


@commerce.command_handler(part_of=Discount)
class ManageDiscountHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        repo = current_domain.repository_for(Discount)
        if repo.by_code(command.code) is not None:
            raise DuplicateDiscountCode(command.code.strip().upper())

        discount = Discount.create(
            code=command.code,
            application=normalize_choice(DiscountApplication, command.application, "application"),
            method=normalize_choice(DiscountMethod, command.method, "method"),
            value=command.value,
            status=normalize_choice(DiscountStatus, command.status or DiscountStatus.ACTIVE),
            starts_at=command.starts_at,
            ends_at=command.ends_at,
        )
        repo.add(discount)
        return str(discount.id)

    @handle(ChangeDiscountStatus)
    def change_discount_status(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.change_status(normalize_choice(DiscountStatus, command.status))
        repo.add(discount)


def create_discount(code, application, method, value, status="ACTIVE", starts_at=None, ends_at=None) -> str:
    discount_id = current_domain.process(
        CreateDiscount(
            code=code,
            application=str(getattr(application, "value", application)),
            method=str(getattr(method, "value", method)),
            value=float(value),
            status=str(getattr(status, "value", status)),
            starts_at=starts_at,
            ends_at=ends_at,
        ),
        asynchronous=False,
    )
    logger.info("Discount created", discount_id=discount_id, code=code.strip().upper())
    return discount_id


def change_discount_status(discount_id, status) -> None:
    current_domain.process(
        ChangeDiscountStatus(discount_id=str(discount_id), status=str(getattr(status, "value", status))),
        asynchronous=False,
    )
    logger.info("Discount status changed", discount_id=str(discount_id), status=str(status))


def discount_for_code(code) -> Discount:
    discount = current_domain.repository_for(Discount).by_code(code)
    if discount is None:
        raise NotFound("Discount", str(code).strip().upper())
    return discount
