from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, sessionmaker

from fulfillment.app.api.deps import get_db, get_identity, get_notifier, get_session_factory
from fulfillment.app.api.errors import to_http
from fulfillment.app.schemas.purchase_orders import POLineRead, PORead
from fulfillment.app.schemas.receipts import (
    DraftLineRead,
    LineReconciliationRead,
    ReceiptCreate,
    ReceiptCreated,
    ReceiptRead,
)
from fulfillment.services.errors import ReceivingError
from fulfillment.services.identity import Identity
from fulfillment.services.notifications import Notifier, Severity
from fulfillment.services.receiving import (
    draft_receipt,
    get_purchase_order,
    is_receivable,
    list_goods_receipts,
    receive_goods,
    reconcile_order,
)

router = APIRouter(prefix="/purchase-orders")


@router.get("/{po_id}", response_model=PORead)
def get_po(po_id: int, db: Session = Depends(get_db), actor: Identity = Depends(get_identity)):
    try:
        po = get_purchase_order(db, po_id, actor)
    except ReceivingError as e:
        raise to_http(e)

    return PORead(
        id=po.id,
        order_number=po.order_number,
        vendor_id=po.vendor_id,
        order_date=po.order_date,
        status=po.status,
        currency=po.currency,
        subtotal=po.subtotal,
        tax_amount=po.tax_amount,
        shipping_amount=po.shipping_amount,
        discount_amount=po.discount_amount,
        total_amount=po.total_amount,
        can_receive=is_receivable(po.status),
        lines=[POLineRead.model_validate(l) for l in po.lines],
    )


@router.get("/{po_id}/reconciliation", response_model=list[LineReconciliationRead])
def get_reconciliation(po_id: int, db: Session = Depends(get_db), actor: Identity = Depends(get_identity)):
    """
    Per line: ordered / received / remaining (READ ONLY)
    """
    try:
        rows = reconcile_order(db, po_id, actor)
    except ReceivingError as e:
        raise to_http(e)

    return [
        LineReconciliationRead(
            order_line_id=r.order_line_id,
            ordered=r.total_ordered,
            received=r.total_received,
            remaining=r.remaining,
            is_fully_received=r.is_fully_received,
        )
        for r in rows
    ]


@router.get("/{po_id}/receipt-draft", response_model=list[DraftLineRead])
def get_receipt_draft(po_id: int, db: Session = Depends(get_db), actor: Identity = Depends(get_identity)):
    try:
        lines = draft_receipt(db, po_id, actor)
    except ReceivingError as e:
        raise to_http(e)

    return [DraftLineRead(order_line_id=l.order_line_id, quantity=l.quantity, location_id=l.location_id) for l in lines]


@router.get("/{po_id}/goods-receipts", response_model=list[ReceiptRead])
def list_receipts(po_id: int, db: Session = Depends(get_db), actor: Identity = Depends(get_identity)):
    try:
        return list_goods_receipts(db, po_id, actor)
    except ReceivingError as e:
        raise to_http(e)


@router.post("/{po_id}/goods-receipts", status_code=201, response_model=ReceiptCreated)
def create_goods_receipt(
    po_id: int,
    payload: ReceiptCreate,
    session_factory: sessionmaker = Depends(get_session_factory),
    actor: Identity = Depends(get_identity),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        outcome = receive_goods(
            session_factory,
            po_id,
            payload.to_header(),
            [ln.to_proposed() for ln in payload.lines],
            actor,
        )
    except ReceivingError as e:
        notifier.notify(f"Failed to save goods receipt: {e.message}", Severity.error)
        raise to_http(e)

    notifier.notify(f"Goods receipt {outcome.receipt_number} saved", Severity.success)
    return ReceiptCreated(
        id=outcome.receipt_id,
        receipt_number=outcome.receipt_number,
        po_id=po_id,
        order_status=outcome.order_status,
        status_changed=outcome.status_changed,
    )
