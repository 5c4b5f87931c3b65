from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from fulfillment.app.db.models.core_types import POStatus
from fulfillment.app.db.models.models_v1 import InventoryRecord, InventoryTransaction, PurchaseOrder
from fulfillment.services.snapshots import ProposedReceiptLine, ReceiptHeader


def header(day: int = 15, notes: str | None = None) -> ReceiptHeader:
    return ReceiptHeader(receipt_date=date(2026, 10, day), notes=notes)


def line(order_line_id: int, qty, location_id: int | None) -> ProposedReceiptLine:
    return ProposedReceiptLine(order_line_id=order_line_id, quantity=Decimal(str(qty)), location_id=location_id)


def stock_of(session_factory: sessionmaker, product_id: int, location_id: int) -> Decimal | None:
    with session_factory() as s:
        rec = s.get(InventoryRecord, (product_id, location_id))
        return None if rec is None else Decimal(rec.current_stock)


def ledger_for(session_factory: sessionmaker, product_id: int, location_id: int) -> list[InventoryTransaction]:
    with session_factory() as s:
        return list(
            s.execute(
                select(InventoryTransaction)
                .where(InventoryTransaction.product_id == product_id)
                .where(InventoryTransaction.location_id == location_id)
                .order_by(InventoryTransaction.id)
            ).scalars()
        )


def order_status(session_factory: sessionmaker, po_id: int) -> POStatus:
    with session_factory() as s:
        return POStatus(s.get(PurchaseOrder, po_id).status)
