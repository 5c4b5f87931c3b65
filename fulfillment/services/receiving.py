"""
Receiving service.

Entry point for "receive goods against a purchase order" and the read-side
queries around it. Orchestrates, inside ONE transaction:

    load order (tenant scoped, locked)
    -> validate proposed receipt
    -> persist receipt header + lines
    -> stock ledger (inventory records + ledger entries)
    -> recompute order status from ALL receipts

Any failure rolls the whole unit of work back. Contention is retried with a
fresh receipt number; validation failures are never retried.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from fulfillment.app.core.config import RECEIVE_MAX_ATTEMPTS
from fulfillment.app.db.models.core_types import RECEIVABLE_PO_STATUSES, POStatus
from fulfillment.app.db.models.models_v1 import (
    GoodsReceipt,
    GoodsReceiptLine,
    Location,
    PurchaseOrder,
)
from fulfillment.services.errors import (
    Contention,
    Inconsistency,
    InvalidState,
    NotFound,
    ReceiptRejected,
    StoreFailure,
)
from fulfillment.services.identity import Identity
from fulfillment.services.ledger import apply_receipt
from fulfillment.services.reconciler import reconcile_lines
from fulfillment.services.snapshots import (
    LineReconciliation,
    OrderSnapshot,
    ProposedReceiptLine,
    ReceiptHeader,
    ReceiptOutcome,
    ReceivedQuantity,
)
from fulfillment.services.status import derive_status
from fulfillment.services.unit_of_work import SqlAlchemyUnitOfWork, translate_store_errors
from fulfillment.services.validator import validate

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out


def allocate_receipt_number() -> str:
    """GR-<base36 ms timestamp>-<4 hex>; the store's unique key is the real guard."""
    millis = time.time_ns() // 1_000_000
    return f"GR-{_base36(millis)}-{secrets.token_hex(2).upper()}"


# ---------- Loading ----------
def _load_order(db: Session, order_id: int, actor: Identity, *, lock: bool = False) -> PurchaseOrder:
    stmt = (
        select(PurchaseOrder)
        .where(PurchaseOrder.id == order_id)
        .where(PurchaseOrder.organization_id == actor.tenant_id)
        .options(selectinload(PurchaseOrder.lines))
    )
    if lock:
        stmt = stmt.with_for_update(of=PurchaseOrder).execution_options(populate_existing=True)

    po = db.execute(stmt).scalar_one_or_none()
    if not po:
        raise NotFound(f"Purchase order {order_id} not found")
    return po


def _load_received(db: Session, order_id: int) -> tuple[ReceivedQuantity, ...]:
    rows = (
        db.execute(
            select(GoodsReceiptLine)
            .join(GoodsReceipt, GoodsReceipt.id == GoodsReceiptLine.receipt_id)
            .where(GoodsReceipt.po_id == order_id)
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return tuple(ReceivedQuantity.from_model(r) for r in rows)


def _tenant_location_ids(db: Session, actor: Identity) -> set[int]:
    rows = db.execute(
        select(Location.id)
        .where(Location.organization_id == actor.tenant_id)
        .where(Location.is_active.is_(True))
    ).scalars()
    return {int(i) for i in rows}


# ---------- Write side ----------
def _receive_once(
    session_factory: sessionmaker,
    order_id: int,
    header: ReceiptHeader,
    lines: Sequence[ProposedReceiptLine],
    actor: Identity,
) -> ReceiptOutcome:
    with SqlAlchemyUnitOfWork(session_factory) as uow:
        db = uow.session
        with translate_store_errors("receive goods"):
            po = _load_order(db, order_id, actor, lock=True)
            order = OrderSnapshot.from_model(po)

            result = validate(
                order,
                header,
                lines,
                _load_received(db, order.id),
                locations=_tenant_location_ids(db, actor),
            )
            if not result.accepted:
                raise ReceiptRejected(result)

            number = allocate_receipt_number()
            now = datetime.utcnow()

            # claim the order row first: a receipt committed since our read fails the version check here
            po.updated_by = actor.user_id
            po.updated_at = now
            db.flush()

            receipt = GoodsReceipt(
                organization_id=actor.tenant_id,
                po_id=order.id,
                receipt_number=number,
                receipt_date=header.receipt_date,
                notes=header.notes,
                received_by=actor.user_id,
                created_by=actor.user_id,
                updated_by=actor.user_id,
            )
            db.add(receipt)
            db.flush()

            receipt_lines = [
                GoodsReceiptLine(
                    organization_id=actor.tenant_id,
                    receipt_id=receipt.id,
                    po_line_id=p.order_line_id,
                    quantity=p.quantity,
                    location_id=p.location_id,
                    notes=p.notes,
                    created_by=actor.user_id,
                )
                for p in lines
                if p.quantity > 0
            ]
            db.add_all(receipt_lines)
            db.flush()

            apply_receipt(db, order=order, receipt=receipt, lines=receipt_lines, actor=actor, now=now)

            # full recomputation from every stored receipt, this one included
            reconciliations = reconcile_lines(order.lines, _load_received(db, order.id))
            new_status = derive_status(order.status, reconciliations)
            if new_status != order.status:
                po.status = new_status
                db.flush()

        uow.commit()

    return ReceiptOutcome(
        receipt_id=int(receipt.id),
        receipt_number=receipt.receipt_number,
        order_status=new_status,
        previous_status=order.status,
        lines=reconciliations,
    )


def receive_goods(
    session_factory: sessionmaker,
    order_id: int,
    header: ReceiptHeader,
    lines: Sequence[ProposedReceiptLine],
    actor: Identity,
    *,
    max_attempts: int = RECEIVE_MAX_ATTEMPTS,
) -> ReceiptOutcome:
    """
    Receive goods against a purchase order.

    Returns the new receipt id, its number and the resulting order status.
    Raises NotFound, ReceiptRejected (structured validation errors),
    Inconsistency, Contention (after ``max_attempts``) or StoreFailure.
    """
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            outcome = _receive_once(session_factory, order_id, header, lines, actor)
        except Contention as e:
            if attempt == attempts:
                logger.warning("receipt on PO %s gave up after %s attempts: %s", order_id, attempt, e.message)
                raise
            logger.warning("receipt on PO %s contended (attempt %s/%s), retrying", order_id, attempt, attempts)
            continue
        except ReceiptRejected as e:
            logger.info("receipt on PO %s rejected: %s", order_id, e.message)
            raise
        except (Inconsistency, StoreFailure) as e:
            logger.error("receipt on PO %s failed: %s", order_id, e.message)
            raise

        logger.info(
            "received %s on PO %s by user %s: status %s -> %s",
            outcome.receipt_number,
            order_id,
            actor.user_id,
            outcome.previous_status.value,
            outcome.order_status.value,
        )
        return outcome


# ---------- Read side ----------
def get_purchase_order(db: Session, order_id: int, actor: Identity) -> PurchaseOrder:
    return _load_order(db, order_id, actor)


def reconcile_order(db: Session, order_id: int, actor: Identity) -> tuple[LineReconciliation, ...]:
    po = _load_order(db, order_id, actor)
    order = OrderSnapshot.from_model(po)
    return reconcile_lines(order.lines, _load_received(db, order.id))


def draft_receipt(db: Session, order_id: int, actor: Identity) -> tuple[ProposedReceiptLine, ...]:
    """One proposed line per order line still open, pre-filled with what remains."""
    po = _load_order(db, order_id, actor)
    order = OrderSnapshot.from_model(po)
    if order.status not in RECEIVABLE_PO_STATUSES:
        raise InvalidState(
            f"Purchase order {order.order_number} cannot receive goods in status '{order.status.value}'"
        )

    return tuple(
        ProposedReceiptLine(order_line_id=r.order_line_id, quantity=r.remaining)
        for r in reconcile_lines(order.lines, _load_received(db, order.id))
        if r.remaining > Decimal("0")
    )


def list_goods_receipts(db: Session, order_id: int, actor: Identity) -> list[GoodsReceipt]:
    _load_order(db, order_id, actor)
    return list(
        db.execute(
            select(GoodsReceipt)
            .where(GoodsReceipt.po_id == order_id)
            .where(GoodsReceipt.organization_id == actor.tenant_id)
            .options(selectinload(GoodsReceipt.lines))
            .order_by(GoodsReceipt.receipt_date.desc(), GoodsReceipt.id.desc())
        )
        .scalars()
        .all()
    )


def get_goods_receipt(db: Session, receipt_id: int, actor: Identity) -> GoodsReceipt:
    gr = (
        db.execute(
            select(GoodsReceipt)
            .where(GoodsReceipt.id == receipt_id)
            .where(GoodsReceipt.organization_id == actor.tenant_id)
            .options(selectinload(GoodsReceipt.lines))
        )
        .scalar_one_or_none()
    )
    if not gr:
        raise NotFound(f"Goods receipt {receipt_id} not found")
    return gr


def is_receivable(status: POStatus) -> bool:
    return status in RECEIVABLE_PO_STATUSES
