"""
Immutable views of the rows the receiving pipeline reads.

The pipeline never mutates these; the only mutable state is the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from fulfillment.app.db.models.core_types import POStatus
from fulfillment.app.db.models.models_v1 import (
    GoodsReceiptLine,
    PurchaseOrder,
    PurchaseOrderLine,
)


@dataclass(frozen=True)
class OrderLineSnapshot:
    id: int
    product_id: int
    quantity: Decimal
    unit_price: Decimal | None = None
    tax_rate: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")

    @classmethod
    def from_model(cls, line: PurchaseOrderLine) -> OrderLineSnapshot:
        return cls(
            id=int(line.id),
            product_id=int(line.product_id),
            quantity=Decimal(line.quantity),
            unit_price=None if line.unit_price is None else Decimal(line.unit_price),
            tax_rate=Decimal(line.tax_rate or 0),
            discount_amount=Decimal(line.discount_amount or 0),
        )


@dataclass(frozen=True)
class OrderSnapshot:
    id: int
    organization_id: int
    order_number: str
    status: POStatus
    currency: str
    lines: tuple[OrderLineSnapshot, ...] = ()

    @classmethod
    def from_model(cls, po: PurchaseOrder) -> OrderSnapshot:
        return cls(
            id=int(po.id),
            organization_id=int(po.organization_id),
            order_number=po.order_number,
            status=POStatus(po.status),
            currency=po.currency,
            lines=tuple(OrderLineSnapshot.from_model(l) for l in po.lines),
        )

    def line(self, order_line_id: int) -> OrderLineSnapshot | None:
        for l in self.lines:
            if l.id == order_line_id:
                return l
        return None


@dataclass(frozen=True)
class ReceivedQuantity:
    """One historical receipt line, reduced to what reconciliation needs."""

    order_line_id: int
    quantity: Decimal

    @classmethod
    def from_model(cls, line: GoodsReceiptLine) -> ReceivedQuantity:
        return cls(order_line_id=int(line.po_line_id), quantity=Decimal(line.quantity))


@dataclass(frozen=True)
class ReceiptHeader:
    receipt_date: date | None
    notes: str | None = None


@dataclass(frozen=True)
class ProposedReceiptLine:
    order_line_id: int
    quantity: Decimal
    location_id: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class LineReconciliation:
    order_line_id: int
    total_ordered: Decimal
    total_received: Decimal
    remaining: Decimal

    @property
    def is_fully_received(self) -> bool:
        return self.remaining <= 0


@dataclass(frozen=True)
class ReceiptOutcome:
    receipt_id: int
    receipt_number: str
    order_status: POStatus
    previous_status: POStatus
    lines: tuple[LineReconciliation, ...] = field(default=())

    @property
    def status_changed(self) -> bool:
        return self.order_status != self.previous_status
