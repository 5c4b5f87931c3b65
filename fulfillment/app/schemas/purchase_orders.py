from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from fulfillment.app.db.models.core_types import POStatus


class POLineRead(BaseModel):
    id: int
    product_id: int
    quantity: Decimal
    unit_price: Decimal | None = None
    tax_rate: Decimal
    discount_amount: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class PORead(BaseModel):
    id: int
    order_number: str
    vendor_id: int
    order_date: date
    status: POStatus
    currency: str
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    can_receive: bool
    lines: list[POLineRead] = Field(default_factory=list)
