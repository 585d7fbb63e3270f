# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product catalog routes.

Stock levels are read-only here. current_stock changes only through sales,
purchases and /api/products/<id>/adjustments.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError, ValidationError, error_response
from ..models import Product
from ..services import inventory_service, products_service
from ..validation import (
    PRODUCT_POLICY,
    coerce_int,
    enforce_rules_product,
    parse_int_arg,
    parse_page_args,
    validate_payload,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _true_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


@products_bp.get("")
@require_actor
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - category: str (optional)
    - low_stock: bool (optional) - only products below their reorder threshold
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    try:
        page, per_page = parse_page_args(request.args)
        return products_service.list_products(
            category=request.args.get("category"),
            low_stock=_true_flag(request.args.get("low_stock")),
            page=page,
            per_page=per_page,
        )
    except LedgerError as e:
        return error_response(e)


@products_bp.post("")
@require_actor
def create_product():
    payload = request.get_json(silent=True)
    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        payload = dict(payload)
        opening_stock = coerce_int(payload.pop("opening_stock", 0), "opening_stock")

        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)

        p = products_service.create_product(patch=patch, opening_stock=opening_stock, actor_id=g.actor_id)
        return {"product": p.to_dict()}, 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500


@products_bp.get("/<int:product_id>")
@require_actor
def get_product(product_id: int):
    try:
        return {"product": products_service.get_product(product_id).to_dict()}
    except LedgerError as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_actor
def update_product(product_id: int):
    payload = request.get_json(silent=True)
    try:
        if isinstance(payload, dict) and "current_stock" in payload:
            raise ValidationError(
                "current_stock can only change through stock transactions",
                details={"field": "current_stock"},
            )
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)

        p = products_service.update_product(product_id=product_id, patch=patch, actor_id=g.actor_id)
        return {"product": p.to_dict()}

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500


@products_bp.delete("/<int:product_id>")
@require_actor
def delete_product(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
        return {"deleted": True, "product_id": product_id}

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500


@products_bp.post("/<int:product_id>/adjustments")
@require_actor
def adjust_product_stock(product_id: int):
    """
    Manual stock correction.

    Body: {"qty_delta": -2, "note": "damaged"}
    """
    payload = request.get_json(silent=True) or {}
    try:
        if "qty_delta" not in payload:
            raise ValidationError("qty_delta is required", details={"field": "qty_delta"})
        tx = inventory_service.adjust_stock(
            product_id=product_id,
            qty_delta=coerce_int(payload["qty_delta"], "qty_delta"),
            note=payload.get("note"),
            actor_id=g.actor_id,
        )
        return {"transaction": tx.to_dict()}, 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500


@products_bp.get("/<int:product_id>/transactions")
@require_actor
def list_product_transactions(product_id: int):
    try:
        limit = parse_int_arg(request.args, "limit", 200)
        txs = inventory_service.list_stock_transactions(product_id=product_id, limit=min(max(limit, 1), 1000))
        return {
            "product_id": product_id,
            "ledger_balance": inventory_service.get_ledger_balance(product_id),
            "items": [tx.to_dict() for tx in txs],
        }
    except LedgerError as e:
        return error_response(e)
