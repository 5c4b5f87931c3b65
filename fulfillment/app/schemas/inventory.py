from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from fulfillment.app.db.models.core_types import InventoryStatus, TransactionType


class InventoryRecordRead(BaseModel):
    product_id: int
    location_id: int

    current_stock: Decimal
    committed_stock: Decimal  # READ ONLY, never written by receiving
    shelf_location: str
    status: InventoryStatus
    last_count_date: datetime | None = None

    class Config:
        from_attributes = True


class InventoryTransactionRead(BaseModel):
    id: int
    product_id: int
    location_id: int
    transaction_type: TransactionType
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    reference_type: str
    reference_id: int
    notes: str | None = None
    created_by: int | None = None
    created_at: datetime

    class Config:
        from_attributes = True
