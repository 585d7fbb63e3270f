# Overview: Typed failures raised by the ledger services and their HTTP mapping.

"""
Error taxonomy shared by every service.

Each error carries a machine-readable ``kind`` and a ``details`` dict with the
offending entity id and the relevant numbers. Services never build user-facing
sentences; the route layer turns an error into a JSON body and status code via
``error_response``.

Retry policy:
- ValidationError, NotFoundError, InsufficientStockError, ConflictError are
  business outcomes. Resubmitting the same command gives the same answer.
- InfrastructureError wraps store failures that outlived the retry budget.
  The aborted transaction left nothing behind, so the whole call may be retried.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all service-level failures."""

    kind = "ledger_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": str(self), "details": self.details}


class ValidationError(LedgerError, ValueError):
    """400-level input problem, including values the ledger can never accept."""

    kind = "validation"
    status_code = 400


class NotFoundError(LedgerError):
    """A referenced product, sale, purchase or expense does not exist."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "entity_id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(LedgerError):
    """A stock-out would drive current_stock below zero."""

    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, *, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"insufficient stock for product {product_id}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""

    kind = "conflict"
    status_code = 409


class InfrastructureError(LedgerError):
    """Store-level failure (locks, deadlocks, lost connection) after retries."""

    kind = "infrastructure"
    status_code = 503
    retryable = True


def error_response(exc: LedgerError) -> tuple[dict, int]:
    return exc.to_dict(), exc.status_code
