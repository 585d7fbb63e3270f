# Overview: Validated command objects consumed by the stock accounting services.

"""
Commands are the only input shape the ledger services accept. The HTTP layer
(or a CLI, or a test) builds them; ``check()`` re-validates the invariants the
ledger can never tolerate even if the caller skipped validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ValidationError
from ..models.sales import PAYMENT_METHODS


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest quantity a single document line may move
MAX_LINE_QTY = 1_000_000

# SQLite and Postgres integer keys are signed 64-bit
MAX_ROW_ID = 2**63 - 1


def _require_positive_int(value, field_name: str, index: int | None = None, *, maximum: int | None = None) -> None:
    details = {"field": field_name, "value": value}
    if index is not None:
        details["item"] = index
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field_name} must be a positive integer", details=details)
    if maximum is not None and value > maximum:
        raise ValidationError(f"{field_name} cannot exceed {maximum}", details={**details, "max": maximum})


def _require_money(value, field_name: str, index: int | None = None) -> None:
    details = {"field": field_name, "value": value}
    if index is not None:
        details["item"] = index
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer", details=details)
    if value > MAX_PRICE_CENTS:
        raise ValidationError(
            f"{field_name} cannot exceed {MAX_PRICE_CENTS}",
            details={**details, "max": MAX_PRICE_CENTS},
        )


@dataclass(frozen=True)
class CustomerInfo:
    name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    qty: int
    # None means "use the product's current sell price"
    sell_price_cents: int | None = None


@dataclass(frozen=True)
class CreateSaleCommand:
    items: tuple[SaleItemInput, ...]
    payment_method: str
    customer: CustomerInfo | None = None
    discount_cents: int = 0

    def check(self) -> None:
        if not self.items:
            raise ValidationError("sale requires at least one item", details={"field": "items"})
        for i, item in enumerate(self.items):
            _require_positive_int(item.product_id, "product_id", i, maximum=MAX_ROW_ID)
            _require_positive_int(item.qty, "qty", i, maximum=MAX_LINE_QTY)
            if item.sell_price_cents is not None:
                _require_money(item.sell_price_cents, "sell_price_cents", i)
        if self.payment_method not in PAYMENT_METHODS:
            raise ValidationError(
                "unsupported payment method",
                details={"field": "payment_method", "value": self.payment_method, "allowed": list(PAYMENT_METHODS)},
            )
        _require_money(self.discount_cents, "discount_cents")


@dataclass(frozen=True)
class PurchaseItemInput:
    product_id: int
    qty: int
    cost_price_cents: int


@dataclass(frozen=True)
class CreatePurchaseCommand:
    supplier: str
    items: tuple[PurchaseItemInput, ...] = field(default_factory=tuple)
    invoice_ref: str | None = None

    def check(self) -> None:
        if not self.supplier or not self.supplier.strip():
            raise ValidationError("supplier is required", details={"field": "supplier"})
        if not self.items:
            raise ValidationError("purchase requires at least one item", details={"field": "items"})
        for i, item in enumerate(self.items):
            _require_positive_int(item.product_id, "product_id", i, maximum=MAX_ROW_ID)
            _require_positive_int(item.qty, "qty", i, maximum=MAX_LINE_QTY)
            _require_money(item.cost_price_cents, "cost_price_cents", i)


@dataclass(frozen=True)
class DeleteSaleCommand:
    sale_id: int


@dataclass(frozen=True)
class DeletePurchaseCommand:
    purchase_id: int
