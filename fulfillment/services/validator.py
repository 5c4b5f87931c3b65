"""
Receipt validation.

Every rule is evaluated, none short-circuits, so a caller can display all
problems of a proposed receipt at once. Either the whole receipt is valid
or nothing of it may be written.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Collection, Iterable, Sequence

from fulfillment.app.db.models.core_types import RECEIVABLE_PO_STATUSES
from fulfillment.services.errors import ErrorCode
from fulfillment.services.reconciler import reconcile
from fulfillment.services.snapshots import (
    OrderSnapshot,
    ProposedReceiptLine,
    ReceiptHeader,
    ReceivedQuantity,
)


# scale of the stored quantity columns, Numeric(14, 3)
QTY_STEP = Decimal("0.001")


def format_qty(q: Decimal) -> str:
    return f"{Decimal(q).normalize():f}"


def is_storable_qty(q: Decimal) -> bool:
    """Finite and no finer than the stored scale, so nothing is rounded away on write."""
    q = Decimal(q)
    if not q.is_finite():
        return False
    try:
        return q == q.quantize(QTY_STEP)
    except InvalidOperation:
        # more digits than the context precision
        return False


@dataclass(frozen=True)
class Violation:
    code: ErrorCode
    message: str
    field: str
    line_index: int | None = None
    order_line_id: int | None = None
    maximum: Decimal | None = None


@dataclass(frozen=True)
class ValidationResult:
    violations: tuple[Violation, ...] = ()

    @property
    def accepted(self) -> bool:
        return not self.violations

    @property
    def codes(self) -> tuple[ErrorCode, ...]:
        seen: list[ErrorCode] = []
        for v in self.violations:
            if v.code not in seen:
                seen.append(v.code)
        return tuple(seen)

    @property
    def form_errors(self) -> dict[str, str]:
        return {v.field: v.message for v in self.violations if v.line_index is None}

    @property
    def line_errors(self) -> dict[int, dict[str, str]]:
        errors: dict[int, dict[str, str]] = {}
        for v in self.violations:
            if v.line_index is not None:
                errors.setdefault(v.line_index, {})[v.field] = v.message
        return errors

    def summary(self) -> str:
        if self.accepted:
            return "Receipt accepted"
        return "; ".join(
            v.message if v.line_index is None else f"line {v.line_index + 1}: {v.message}"
            for v in self.violations
        )


def validate(
    order: OrderSnapshot,
    header: ReceiptHeader,
    proposed: Sequence[ProposedReceiptLine],
    received: Iterable[ReceivedQuantity],
    locations: Collection[int] | None = None,
) -> ValidationResult:
    """
    Check a proposed receipt against the order and its receipt history.

    ``locations``, when given, are the storage locations the tenant may
    receive into; any other location id is reported as not found.

    Raises Inconsistency (from reconcile) when the stored history is already
    corrupt; that is not a validation problem the caller can correct.
    """
    received = tuple(received)
    violations: list[Violation] = []

    if order.status not in RECEIVABLE_PO_STATUSES:
        violations.append(
            Violation(
                code=ErrorCode.invalid_state,
                field="status",
                message=(
                    f"Purchase order {order.order_number} cannot receive goods "
                    f"in status '{order.status.value}'"
                ),
            )
        )

    if header.receipt_date is None:
        violations.append(
            Violation(code=ErrorCode.receipt_date_required, field="receipt_date", message="Receipt date is required")
        )

    if not any(is_storable_qty(p.quantity) and p.quantity > 0 for p in proposed):
        violations.append(
            Violation(
                code=ErrorCode.nothing_to_receive,
                field="items",
                message="At least one item must have a quantity greater than zero",
            )
        )

    remaining = {}
    for line in order.lines:
        remaining[line.id] = reconcile(line, received).remaining

    # several proposed lines may target the same order line
    claimed: dict[int, Decimal] = defaultdict(Decimal)

    for index, p in enumerate(proposed):
        if p.order_line_id not in remaining:
            violations.append(
                Violation(
                    code=ErrorCode.not_found,
                    field="order_line_id",
                    line_index=index,
                    order_line_id=p.order_line_id,
                    message=f"Order line {p.order_line_id} is not part of purchase order {order.order_number}",
                )
            )
            continue

        if not is_storable_qty(p.quantity):
            violations.append(
                Violation(
                    code=ErrorCode.invalid_quantity,
                    field="quantity",
                    line_index=index,
                    order_line_id=p.order_line_id,
                    message="Quantity must be a number with at most 3 decimal places",
                )
            )
            continue

        if p.quantity < 0:
            violations.append(
                Violation(
                    code=ErrorCode.negative_quantity,
                    field="quantity",
                    line_index=index,
                    order_line_id=p.order_line_id,
                    message="Quantity cannot be negative",
                )
            )
            continue

        if p.quantity == 0:
            continue

        maximum = max(remaining[p.order_line_id] - claimed[p.order_line_id], Decimal("0"))
        claimed[p.order_line_id] += p.quantity
        if p.quantity > maximum:
            violations.append(
                Violation(
                    code=ErrorCode.over_receipt,
                    field="quantity",
                    line_index=index,
                    order_line_id=p.order_line_id,
                    maximum=maximum,
                    message=f"Cannot exceed remaining quantity ({format_qty(maximum)})",
                )
            )

        if p.location_id is None:
            violations.append(
                Violation(
                    code=ErrorCode.location_required,
                    field="location_id",
                    line_index=index,
                    order_line_id=p.order_line_id,
                    message="Storage location is required",
                )
            )
        elif locations is not None and p.location_id not in locations:
            violations.append(
                Violation(
                    code=ErrorCode.not_found,
                    field="location_id",
                    line_index=index,
                    order_line_id=p.order_line_id,
                    message=f"Storage location {p.location_id} not found",
                )
            )

    return ValidationResult(violations=tuple(violations))
