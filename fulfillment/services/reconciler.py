"""
Line reconciliation: ordered vs received vs remaining, per order line.

Pure functions over snapshots already loaded; no I/O. Used to seed a draft
receipt, to validate a proposed one and to derive the order status.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from fulfillment.services.errors import Inconsistency
from fulfillment.services.snapshots import (
    LineReconciliation,
    OrderLineSnapshot,
    ReceivedQuantity,
)


def reconcile(line: OrderLineSnapshot, received: Iterable[ReceivedQuantity]) -> LineReconciliation:
    """
    remaining = ordered - SUM(received for this line, across every receipt)

    Receipt lines belonging to other order lines are ignored, so the full
    receipt history of an order can be passed as-is.
    Raises Inconsistency if remaining would be negative.
    """
    total_received = sum(
        (r.quantity for r in received if r.order_line_id == line.id),
        Decimal("0"),
    )
    remaining = line.quantity - total_received
    if remaining < 0:
        raise Inconsistency(line.id, line.quantity, total_received)

    return LineReconciliation(
        order_line_id=line.id,
        total_ordered=line.quantity,
        total_received=total_received,
        remaining=remaining,
    )


def reconcile_lines(
    lines: Iterable[OrderLineSnapshot],
    received: Iterable[ReceivedQuantity],
) -> tuple[LineReconciliation, ...]:
    received = tuple(received)
    return tuple(reconcile(line, received) for line in lines)
