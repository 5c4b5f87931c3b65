from __future__ import annotations

from fastapi import HTTPException

from fulfillment.services.errors import (
    Contention,
    Inconsistency,
    NotFound,
    ReceiptRejected,
    ReceivingError,
    StoreFailure,
)


def to_http(e: ReceivingError) -> HTTPException:
    body = {"code": e.code.value, "message": e.message, "retryable": e.retryable}

    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=body)
    if isinstance(e, ReceiptRejected):
        body["form_errors"] = e.result.form_errors
        # JSON object keys are strings; index stays 0-based
        body["line_errors"] = {str(i): errs for i, errs in e.result.line_errors.items()}
        body["codes"] = [c.value for c in e.result.codes]
        return HTTPException(status_code=422, detail=body)
    if isinstance(e, Contention):
        return HTTPException(status_code=409, detail=body)
    if isinstance(e, StoreFailure):
        return HTTPException(status_code=503, detail=body)
    if isinstance(e, Inconsistency):
        return HTTPException(status_code=500, detail=body)
    # InvalidState raised outside validation (draft receipt)
    return HTTPException(status_code=422, detail=body)
