from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.app.api.deps import get_db, get_identity
from fulfillment.app.db.models.models_v1 import InventoryRecord, InventoryTransaction, Location, Product
from fulfillment.app.schemas.inventory import InventoryRecordRead, InventoryTransactionRead
from fulfillment.services.identity import Identity

router = APIRouter()


@router.get(
    "/inventory",
    response_model=list[InventoryRecordRead],
)
def get_inventory(
    location_id: int | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
    actor: Identity = Depends(get_identity),
):
    """
    Stock on hand (READ ONLY)
    - current_stock only moves through goods receipts / ledger entries
    - committed_stock is never written here
    """

    stmt = (
        select(InventoryRecord)
        .join(Location, Location.id == InventoryRecord.location_id)
        .join(Product, Product.id == InventoryRecord.product_id)
        .where(InventoryRecord.organization_id == actor.tenant_id)
        .order_by(InventoryRecord.location_id, Product.sku)
    )

    if location_id is not None:
        stmt = stmt.where(InventoryRecord.location_id == location_id)

    if product_id is not None:
        stmt = stmt.where(InventoryRecord.product_id == product_id)

    return db.execute(stmt).scalars().all()


@router.get(
    "/inventory-transactions",
    response_model=list[InventoryTransactionRead],
)
def get_inventory_transactions(
    product_id: int | None = None,
    location_id: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    db: Session = Depends(get_db),
    actor: Identity = Depends(get_identity),
):
    """Append-only ledger, newest first."""
    stmt = (
        select(InventoryTransaction)
        .where(InventoryTransaction.organization_id == actor.tenant_id)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
    )
    if product_id is not None:
        stmt = stmt.where(InventoryTransaction.product_id == product_id)
    if location_id is not None:
        stmt = stmt.where(InventoryTransaction.location_id == location_id)
    if reference_type is not None:
        stmt = stmt.where(InventoryTransaction.reference_type == reference_type)
    if reference_id is not None:
        stmt = stmt.where(InventoryTransaction.reference_id == reference_id)

    return db.execute(stmt).scalars().all()
