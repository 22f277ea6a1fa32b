"""Per-line quantity caps shared by fulfillments and refunds.

Neither may, summed over its live records, exceed what was ordered on a line.
Cancellation uses the same tallies to work out what is still reserved.
"""

from protean.exceptions import ValidationError

from commerce.errors import QuantityExceeded


def normalize_lines(lines, field="lines") -> dict[str, int]:
    """Validate a ``{line_item_id: quantity}`` mapping."""
    if not lines:
        raise ValidationError({field: ["At least one line is required"]})

    normalized = {}
    for line_item_id, quantity in dict(lines).items():
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError({field: [f"Quantity for line item {line_item_id} must be a positive integer"]})
        normalized[str(line_item_id)] = quantity
    return normalized


def check_caps(order, requested, already) -> None:
    """Raise ``QuantityExceeded`` if ``requested`` on top of ``already`` overruns a line.

    ``NotFound`` is raised for a line item that is not on ``order``.
    """
    for line_item_id, quantity in requested.items():
        line = order.line_item(line_item_id)
        used = already.get(str(line.id), 0)
        if used + quantity > line.quantity:
            raise QuantityExceeded(line.id, line.quantity, used, quantity)


def tally(records) -> dict[str, int]:
    """Sum line quantities over ``records`` (fulfillments or refunds)."""
    totals = {}
    for record in records:
        for line in record.lines:
            key = str(line.line_item_id)
            totals[key] = totals.get(key, 0) + line.quantity
    return totals


def restocked(refunds) -> dict[str, int]:
    """Units per line already returned to stock by restocking refunds.

    Counts refunds in every status: cancelling a refund never takes its
    restocked units back out of inventory.
    """
    return tally(refund for refund in refunds if refund.restocked)


def still_reserved(order, refunds, fulfillments) -> dict[str, int]:
    """Units per line that are still held out of inventory for ``order``.

    Restocking refunds have already given theirs back and shipped
    fulfillments have consumed theirs, so neither is released again.
    """
    returned = restocked(refunds)
    shipped = tally(fulfillment for fulfillment in fulfillments if fulfillment.is_shipped)
    return {
        str(line.id): max(line.quantity - returned.get(str(line.id), 0) - shipped.get(str(line.id), 0), 0)
        for line in order.line_items
    }
