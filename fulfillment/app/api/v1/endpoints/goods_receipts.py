from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fulfillment.app.api.deps import get_db, get_identity
from fulfillment.app.api.errors import to_http
from fulfillment.app.schemas.receipts import ReceiptRead
from fulfillment.services.errors import ReceivingError
from fulfillment.services.identity import Identity
from fulfillment.services.receiving import get_goods_receipt

router = APIRouter(prefix="/goods-receipts")


@router.get("/{receipt_id}", response_model=ReceiptRead)
def get_receipt(receipt_id: int, db: Session = Depends(get_db), actor: Identity = Depends(get_identity)):
    try:
        return get_goods_receipt(db, receipt_id, actor)
    except ReceivingError as e:
        raise to_http(e)
