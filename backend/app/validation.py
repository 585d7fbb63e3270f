from __future__ import annotations
from datetime import datetime
from app.time_utils import parse_iso_datetime, parse_range_end

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .services.commands import (
    MAX_PRICE_CENTS,
    CreatePurchaseCommand,
    CreateSaleCommand,
    CustomerInfo,
    PurchaseItemInput,
    SaleItemInput,
)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "category", "cost_price_cents", "sell_price_cents", "unit", "reorder_threshold"},
    required_on_create={"sku", "name", "category"},
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "amount_cents", "note", "occurred_at"},
    required_on_create={"category", "amount_cents"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field_name: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} must be an integer", details={"field": field_name})
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(
                f"{field_name} must be a plain integer (scientific notation not allowed)",
                details={"field": field_name},
            )
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field_name} must be an integer (no decimals)", details={"field": field_name})
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field_name} must be an integer", details={"field": field_name})
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field_name} must be an integer, not a decimal", details={"field": field_name})
    raise ValidationError(f"{field_name} must be an integer", details={"field": field_name})


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", details={"field": col.key})
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", details={"field": col.key})
            return dt
        raise ValidationError(f"{col.key} must be a datetime", details={"field": col.key})

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", details={"missing": missing})

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", details={"field": k})
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", details={"field": k})

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", details={"field": k})
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", details={"field": k})

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", details={"field": k})

        patch[k] = val

    return patch


def _check_price(value: int | None, field_name: str) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{field_name} must be >= 0", details={"field": field_name, "value": value})
    if value > MAX_PRICE_CENTS:
        raise ValidationError(
            f"{field_name} cannot exceed {MAX_PRICE_CENTS}",
            details={"field": field_name, "value": value},
        )


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_price(patch.get("cost_price_cents"), "cost_price_cents")
    _check_price(patch.get("sell_price_cents"), "sell_price_cents")
    threshold = patch.get("reorder_threshold")
    if threshold is not None and threshold < 0:
        raise ValidationError("reorder_threshold must be >= 0", details={"field": "reorder_threshold"})


def enforce_rules_expense(patch: dict) -> None:
    amount = patch.get("amount_cents")
    if amount is not None and amount < 0:
        raise ValidationError("amount_cents must be >= 0", details={"field": "amount_cents", "value": amount})


def _require_items(payload: dict) -> list:
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", details={"field": "items"})
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError("each item must be an object", details={"field": "items", "item": i})
    return items


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", details={"field": field_name})
    return value.strip() or None


def parse_create_sale_command(payload: Any) -> CreateSaleCommand:
    """
    Build a CreateSaleCommand from the JSON body of POST /api/sales.

    {
      "items": [{"product_id": 1, "qty": 2, "sell_price_cents": 500}],
      "customer": {"name": "...", "phone": "..."},
      "payment_method": "cash",
      "discount_cents": 0
    }
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = []
    for raw in _require_items(payload):
        if "product_id" not in raw or "qty" not in raw:
            raise ValidationError("each item needs product_id and qty", details={"field": "items"})
        sell_price = raw.get("sell_price_cents")
        items.append(
            SaleItemInput(
                product_id=coerce_int(raw["product_id"], "product_id"),
                qty=coerce_int(raw["qty"], "qty"),
                sell_price_cents=None if sell_price is None else coerce_int(sell_price, "sell_price_cents"),
            )
        )

    customer = None
    raw_customer = payload.get("customer")
    if raw_customer is not None:
        if not isinstance(raw_customer, dict):
            raise ValidationError("customer must be an object", details={"field": "customer"})
        customer = CustomerInfo(
            name=_optional_str(raw_customer.get("name"), "customer.name"),
            phone=_optional_str(raw_customer.get("phone"), "customer.phone"),
        )

    payment_method = payload.get("payment_method")
    if not isinstance(payment_method, str) or not payment_method.strip():
        raise ValidationError("payment_method is required", details={"field": "payment_method"})

    discount = payload.get("discount_cents")
    command = CreateSaleCommand(
        items=tuple(items),
        payment_method=payment_method.strip().lower(),
        customer=customer,
        discount_cents=0 if discount is None else coerce_int(discount, "discount_cents"),
    )
    command.check()
    return command


def parse_create_purchase_command(payload: Any) -> CreatePurchaseCommand:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    supplier = _optional_str(payload.get("supplier"), "supplier")
    if not supplier:
        raise ValidationError("supplier is required", details={"field": "supplier"})

    items = []
    for raw in _require_items(payload):
        missing = [k for k in ("product_id", "qty", "cost_price_cents") if k not in raw]
        if missing:
            raise ValidationError(f"Missing item fields: {', '.join(missing)}", details={"missing": missing})
        items.append(
            PurchaseItemInput(
                product_id=coerce_int(raw["product_id"], "product_id"),
                qty=coerce_int(raw["qty"], "qty"),
                cost_price_cents=coerce_int(raw["cost_price_cents"], "cost_price_cents"),
            )
        )

    command = CreatePurchaseCommand(
        supplier=supplier,
        items=tuple(items),
        invoice_ref=_optional_str(payload.get("invoice_ref"), "invoice_ref"),
    )
    command.check()
    return command


def parse_date_range(args) -> tuple[datetime | None, datetime | None]:
    """
    Read ?start=...&end=... query args (ISO-8601 date or datetime).

    A plain end date covers that whole day.
    """
    start_raw = args.get("start")
    end_raw = args.get("end")
    try:
        start = parse_iso_datetime(start_raw) if start_raw else None
        end = parse_range_end(end_raw) if end_raw else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 dates", details={"start": start_raw, "end": end_raw})
    if start and end and start > end:
        raise ValidationError("start must not be after end", details={"start": start_raw, "end": end_raw})
    return start, end


def parse_page_args(args) -> tuple[int | None, int | None]:
    page = args.get("page")
    per_page = args.get("per_page")
    return (
        coerce_int(page, "page") if page is not None else None,
        coerce_int(per_page, "per_page") if per_page is not None else None,
    )


def parse_int_arg(args, name: str, default: int) -> int:
    """Query-string integer; a malformed value is a ValidationError, never the default."""
    raw = args.get(name)
    if raw is None:
        return default
    return coerce_int(raw, name)
