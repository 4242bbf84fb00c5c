"""
mfg_erp/errors.py

Typed failures raised by the balance & inventory engine.

Every error carries:
- code: stable machine-readable identifier (used by the JSON API and the activity log)
- status_code: HTTP status the API adapter answers with

IMPORTANT:
- Services raise these; they never return error tuples.
- Any ErpError raised inside an operation rolls back the whole transaction
  (see services/base.py: atomic()).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ErpError(Exception):
    """Base class for all engine failures."""

    code = "error"
    status_code = 400
    default_message = "Operation failed."

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.code, "message": self.message}
        if self.details:
            payload["details"] = {k: str(v) for k, v in self.details.items()}
        return payload


class ValidationError(ErpError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid input."


class NotFound(ErpError):
    code = "not_found"
    status_code = 404
    default_message = "Record not found."


class Unauthorized(ErpError):
    code = "unauthorized"
    status_code = 403
    default_message = "You are not allowed to perform this action."


class InvalidTransition(ErpError):
    code = "invalid_transition"
    status_code = 409
    default_message = "Invalid status transition."


class NotReversible(ErpError):
    code = "not_reversible"
    status_code = 409
    default_message = "This record can no longer be reversed."


class InsufficientBalance(ErpError):
    code = "insufficient_balance"
    status_code = 409
    default_message = "Insufficient fund balance."


class FundInactive(ErpError):
    code = "fund_inactive"
    status_code = 409
    default_message = "Fund is not active."


class InsufficientStock(ErpError):
    code = "insufficient_stock"
    status_code = 409
    default_message = "Insufficient stock."


class NegativeStock(InsufficientStock):
    """Raised when reversing a stock increase would drive stock below zero."""

    code = "negative_stock"
    default_message = "Operation would make stock negative."


class NotPending(ErpError):
    code = "not_pending"
    status_code = 409
    default_message = "Transfer is not pending."


class OverPayment(ErpError):
    code = "over_payment"
    status_code = 409
    default_message = "Payment exceeds the amount due."


class ConcurrencyConflict(ErpError):
    code = "concurrency_conflict"
    status_code = 409
    default_message = "The record was modified concurrently. Please retry."
