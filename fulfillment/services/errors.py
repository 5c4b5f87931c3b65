"""
Error taxonomy of the receiving engine.

Every failure is a ReceivingError carrying a stable ``code`` and a
human-readable message the caller can show as-is. ``retryable`` tells the
caller whether a fresh attempt (new receipt number) may succeed.
"""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fulfillment.services.validator import ValidationResult


class ErrorCode(str, enum.Enum):
    not_found = "NOT_FOUND"
    invalid_state = "INVALID_STATE"
    receipt_date_required = "RECEIPT_DATE_REQUIRED"
    nothing_to_receive = "NOTHING_TO_RECEIVE"
    negative_quantity = "NEGATIVE_QUANTITY"
    over_receipt = "OVER_RECEIPT"
    location_required = "LOCATION_REQUIRED"
    invalid_quantity = "INVALID_QUANTITY"
    inconsistency = "INCONSISTENCY"
    contention = "CONTENTION"
    store_failure = "STORE_FAILURE"


class ReceivingError(Exception):
    code: ErrorCode = ErrorCode.store_failure
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(ReceivingError):
    code = ErrorCode.not_found


class InvalidState(ReceivingError):
    code = ErrorCode.invalid_state


class Inconsistency(ReceivingError):
    """Stored receipts add up to more than was ordered. Never auto-corrected."""

    code = ErrorCode.inconsistency

    def __init__(self, order_line_id: int, total_ordered: Decimal, total_received: Decimal) -> None:
        super().__init__(
            f"Order line {order_line_id} has received {total_received} against "
            f"{total_ordered} ordered; stored receipts are inconsistent"
        )
        self.order_line_id = order_line_id
        self.total_ordered = total_ordered
        self.total_received = total_received


class Contention(ReceivingError):
    code = ErrorCode.contention
    retryable = True


class StoreFailure(ReceivingError):
    code = ErrorCode.store_failure
    retryable = True

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        # a refused constraint fails again on every attempt
        self.retryable = retryable


class ReceiptRejected(ReceivingError):
    """The proposed receipt failed validation; nothing was written."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(result.summary())
        self.result = result
        # InvalidState dominates: no correction of the lines can fix it.
        codes = result.codes
        self.code = ErrorCode.invalid_state if ErrorCode.invalid_state in codes else codes[0]
