"""Refund issuance and status changes: commands and handler.

A line's refund amount defaults to its share of the line total,
``total_price * quantity / ordered``, rounded half-up. With ``restock`` the
refunded quantity goes back to the level the line was reserved from, in the
same unit of work as the refund.

A line can never be refunded for more than its total, and its units can
only go back to stock once. Restocking a cancelled order is refused because
cancellation has already released everything it held.
"""

import json
from decimal import Decimal

from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import RefundAmountExceeded, StockAlreadyReleased
from commerce.inventory.level import InventoryLevel
from commerce.inventory.reservation import load_level
from commerce.order.caps import check_caps, normalize_lines, restocked, tally
from commerce.order.order import Order, OrderStatus
from commerce.refund.refund import Refund, RefundStatus
from commerce.shared.choices import normalize_choice
from commerce.shared.money import ZERO, to_money


@commerce.command(part_of="Refund")
class IssueRefund:
    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: {line_item_id: quantity}
    amounts = Text()  # JSON: {line_item_id: amount}, overrides the pro-rata default
    reason = Text()
    restock = Boolean(default=False)


@commerce.command(part_of="Refund")
class ChangeRefundStatus:
    refund_id = Identifier(required=True)
    status = String(required=True, max_length=15)


def prorated_amount(line, quantity) -> Decimal:
    return to_money(to_money(line.total_price) * quantity / line.quantity)


def refunded_amounts(refunds) -> dict[str, Decimal]:
    """Sum refunded amounts per line item over ``refunds``."""
    totals = {}
    for refund in refunds:
        for line in refund.lines:
            key = str(line.line_item_id)
            totals[key] = to_money(totals.get(key, ZERO) + to_money(line.amount))
    return totals


def check_restock(order, lines, already) -> None:
    """Refuse to put units back on a level that has already had them returned."""
    if OrderStatus(order.status) == OrderStatus.CANCELLED:
        raise StockAlreadyReleased(order.id)
    for line_item_id, quantity in lines.items():
        line = order.line_item(line_item_id)
        released = already.get(str(line.id), 0)
        if released + quantity > line.quantity:
            raise StockAlreadyReleased(order.id, line.id, released, quantity)


@commerce.command_handler(part_of=Refund)
class RefundHandler:
    @handle(IssueRefund)
    def issue_refund(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        repo = current_domain.repository_for(Refund)
        inventory_repo = current_domain.repository_for(InventoryLevel)

        lines = normalize_lines(json.loads(command.lines))
        previous = repo.for_order(order.id)
        live = [r for r in previous if r.counts_toward_cap]
        check_caps(order, lines, tally(live))

        if command.restock:
            check_restock(order, lines, restocked(previous))

        refunded = refunded_amounts(live)
        amounts = json.loads(command.amounts) if command.amounts else {}
        refund_lines = []
        for line_item_id, quantity in lines.items():
            line = order.line_item(line_item_id)
            remaining = to_money(line.total_price) - refunded.get(line_item_id, ZERO)
            if line_item_id in amounts:
                amount = to_money(amounts[line_item_id])
                if amount > remaining:
                    raise RefundAmountExceeded(line_item_id, remaining, amount)
            else:
                amount = min(prorated_amount(line, quantity), remaining)
            refund_lines.append((line_item_id, quantity, amount))

        levels = []
        if command.restock:
            for line_item_id, quantity in lines.items():
                line = order.line_item(line_item_id)
                level = load_level(inventory_repo, line.variant_id, line.location_id)
                level.release(quantity)
                levels.append(level)

        refund = Refund.issue(
            order_id=str(order.id),
            lines=refund_lines,
            reason=command.reason,
            restocked=bool(command.restock),
        )

        for level in levels:
            inventory_repo.add(level)
        repo.add(refund)
        return str(refund.id)

    @handle(ChangeRefundStatus)
    def change_refund_status(self, command):
        repo = current_domain.repository_for(Refund)
        refund = repo.get(command.refund_id)
        refund.change_status(normalize_choice(RefundStatus, command.status))
        repo.add(refund)
