"""
Purchase order totals. Derived from the lines, never hand-edited.

    line_total  = quantity * unit_price - line discount
    subtotal    = SUM(line_total)
    tax         = SUM(line_total * tax_rate / 100)
    grand total = subtotal + tax + shipping - order discount
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from fulfillment.app.db.models.models_v1 import PurchaseOrder
from fulfillment.services.snapshots import OrderLineSnapshot

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def line_total(line: OrderLineSnapshot) -> Decimal:
    return _money(line.quantity * (line.unit_price or Decimal("0")) - line.discount_amount)


def compute_order_totals(
    lines: Iterable[OrderLineSnapshot],
    shipping: Decimal = Decimal("0"),
    discount: Decimal = Decimal("0"),
) -> OrderTotals:
    subtotal = Decimal("0")
    tax = Decimal("0")
    for line in lines:
        amount = line_total(line)
        subtotal += amount
        tax += amount * line.tax_rate / 100

    subtotal = _money(subtotal)
    tax = _money(tax)
    shipping = _money(shipping)
    discount = _money(discount)
    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax,
        shipping_amount=shipping,
        discount_amount=discount,
        total_amount=subtotal + tax + shipping - discount,
    )


def apply_order_totals(po: PurchaseOrder) -> OrderTotals:
    """Recompute line totals and order totals onto the ORM rows."""
    snapshots = []
    for ln in po.lines:
        snap = OrderLineSnapshot(
            id=ln.id or 0,
            product_id=ln.product_id,
            quantity=Decimal(ln.quantity),
            unit_price=None if ln.unit_price is None else Decimal(ln.unit_price),
            tax_rate=Decimal(ln.tax_rate or 0),
            discount_amount=Decimal(ln.discount_amount or 0),
        )
        ln.line_total = line_total(snap)
        snapshots.append(snap)

    totals = compute_order_totals(
        snapshots,
        shipping=Decimal(po.shipping_amount or 0),
        discount=Decimal(po.discount_amount or 0),
    )
    po.subtotal = totals.subtotal
    po.tax_amount = totals.tax_amount
    po.total_amount = totals.total_amount
    return totals
