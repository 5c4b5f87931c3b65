from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from fulfillment.app.db.models.core_types import POStatus
from fulfillment.services.snapshots import ProposedReceiptLine, ReceiptHeader


# ---------- Input ----------
class ReceiptLineCreate(BaseModel):
    order_line_id: int
    # sign and bounds are checked by the validator so every error comes back at once
    quantity: Decimal
    location_id: int | None = None
    notes: str | None = Field(default=None, max_length=2000)

    def to_proposed(self) -> ProposedReceiptLine:
        return ProposedReceiptLine(
            order_line_id=self.order_line_id,
            quantity=self.quantity,
            location_id=self.location_id,
            notes=self.notes,
        )


class ReceiptCreate(BaseModel):
    receipt_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)
    lines: list[ReceiptLineCreate] = Field(default_factory=list)

    def to_header(self) -> ReceiptHeader:
        return ReceiptHeader(receipt_date=self.receipt_date, notes=self.notes)


# ---------- Output ----------
class ReceiptCreated(BaseModel):
    id: int
    receipt_number: str
    po_id: int
    order_status: POStatus
    status_changed: bool


class ReceiptLineRead(BaseModel):
    id: int
    po_line_id: int
    quantity: Decimal
    location_id: int
    notes: str | None = None

    class Config:
        from_attributes = True


class ReceiptRead(BaseModel):
    id: int
    po_id: int
    receipt_number: str
    receipt_date: date
    notes: str | None = None
    received_by: int | None = None
    created_at: datetime
    lines: list[ReceiptLineRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class LineReconciliationRead(BaseModel):
    order_line_id: int
    ordered: Decimal
    received: Decimal
    remaining: Decimal
    is_fully_received: bool


class DraftLineRead(BaseModel):
    order_line_id: int
    quantity: Decimal
    location_id: int | None = None
