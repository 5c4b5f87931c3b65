"""
Stock ledger updater.

Applies one accepted goods receipt to inventory: upserts the stock record
per (product, location) and appends one immutable ledger entry per line.
Strictly additive; never decrements, never deletes.

Must run inside the caller's transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.app.db.models.core_types import InventoryStatus, TransactionType
from fulfillment.app.db.models.models_v1 import (
    GoodsReceipt,
    GoodsReceiptLine,
    InventoryRecord,
    InventoryTransaction,
)
from fulfillment.services.identity import Identity
from fulfillment.services.snapshots import OrderSnapshot

logger = logging.getLogger(__name__)

REFERENCE_GOODS_RECEIPT = "goods_receipt"
CENTS = Decimal("0.01")


def _lock_inventory_record(db: Session, product_id: int, location_id: int) -> InventoryRecord | None:
    # FOR UPDATE serializes concurrent receipts into the same (product, location)
    # on PostgreSQL; the version column catches the rest.
    return (
        db.execute(
            select(InventoryRecord)
            .where(InventoryRecord.product_id == product_id)
            .where(InventoryRecord.location_id == location_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )


def add_stock(
    db: Session,
    *,
    product_id: int,
    location_id: int,
    quantity: Decimal,
    actor: Identity,
    now: datetime | None = None,
) -> InventoryRecord:
    now = now or datetime.utcnow()
    record = _lock_inventory_record(db, product_id, location_id)
    if record is None:
        record = InventoryRecord(
            product_id=product_id,
            location_id=location_id,
            organization_id=actor.tenant_id,
            current_stock=quantity,
            committed_stock=Decimal("0"),
            shelf_location="",
            status=InventoryStatus.active,
            last_count_date=now,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )
        db.add(record)
        db.flush()
        logger.debug("created inventory record product=%s location=%s", product_id, location_id)
        return record

    record.current_stock = Decimal(record.current_stock) + quantity
    record.last_count_date = now
    record.updated_by = actor.user_id
    db.flush()
    return record


def unit_cost_for(order: OrderSnapshot, order_line_id: int) -> Decimal:
    line = order.line(order_line_id)
    if line is None or line.unit_price is None:
        return Decimal("0")
    return line.unit_price


def apply_receipt(
    db: Session,
    *,
    order: OrderSnapshot,
    receipt: GoodsReceipt,
    lines: Sequence[GoodsReceiptLine],
    actor: Identity,
    now: datetime | None = None,
) -> list[InventoryTransaction]:
    now = now or datetime.utcnow()
    entries: list[InventoryTransaction] = []

    for ln in lines:
        quantity = Decimal(ln.quantity)
        if quantity <= 0:
            continue

        order_line = order.line(int(ln.po_line_id))
        product_id = order_line.product_id

        add_stock(
            db,
            product_id=product_id,
            location_id=int(ln.location_id),
            quantity=quantity,
            actor=actor,
            now=now,
        )

        unit_cost = unit_cost_for(order, int(ln.po_line_id))
        tx = InventoryTransaction(
            organization_id=actor.tenant_id,
            product_id=product_id,
            location_id=int(ln.location_id),
            transaction_type=TransactionType.receipt,
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=(unit_cost * quantity).quantize(CENTS),
            reference_type=REFERENCE_GOODS_RECEIPT,
            reference_id=int(receipt.id),
            notes=f"Goods receipt from PO: {order.order_number}",
            created_by=actor.user_id,
        )
        db.add(tx)
        entries.append(tx)

    db.flush()
    return entries
