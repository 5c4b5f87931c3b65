from __future__ import annotations

from typing import Iterable

from fulfillment.app.db.models.core_types import POStatus
from fulfillment.services.reconciler import reconcile_lines
from fulfillment.services.snapshots import (
    LineReconciliation,
    OrderLineSnapshot,
    ReceivedQuantity,
)


def derive_status(current: POStatus, reconciliations: Iterable[LineReconciliation]) -> POStatus:
    """
    Order status from the current per-line sums only:

    - every line remaining <= 0          -> fully_received
    - some line has received something   -> partially_received
    - otherwise                          -> unchanged

    Depends on sums, not on receipt order, so recomputing it from scratch is
    idempotent.
    """
    reconciliations = tuple(reconciliations)
    if not reconciliations:
        return current

    if all(r.remaining <= 0 for r in reconciliations):
        return POStatus.fully_received
    if any(r.total_received > 0 for r in reconciliations):
        return POStatus.partially_received
    return current


def derive_order_status(
    current: POStatus,
    lines: Iterable[OrderLineSnapshot],
    received: Iterable[ReceivedQuantity],
) -> POStatus:
    return derive_status(current, reconcile_lines(lines, received))
