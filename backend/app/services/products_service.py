# backend/app/services/products_service.py
"""
Products Service

Catalog maintenance. Stock is never written here directly: a non-zero
opening stock goes through the ledger as an adjustment, and updates refuse
current_stock outright.
"""
from __future__ import annotations

import logging

from sqlalchemy import delete

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, PurchaseLine, SaleLine, StockTransaction
from ..models.inventory import STOCK_TX_ADJUSTMENT, normalize_sku
from .concurrency import ledger_transaction, run_with_retry
from .inventory_service import load_product, post_stock_movement
from .pagination import paginate
from .reporting_service import invalidate_reports

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "sku",
    "name",
    "category",
    "cost_price_cents",
    "sell_price_cents",
    "unit",
    "reorder_threshold",
}

OPENING_BALANCE_NOTE = "Opening balance"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_sku_available(session, sku: str, *, exclude_id: int | None = None) -> None:
    query = session.query(Product.id).filter(Product.sku == normalize_sku(sku))
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("SKU already exists.", details={"sku": normalize_sku(sku)})


def list_products(
    *,
    category: str | None = None,
    low_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing ordered by name.

    low_stock keeps only products with current_stock < reorder_threshold.
    Without page every product is returned.
    """
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if low_stock:
        query = query.filter(Product.current_stock < Product.reorder_threshold)
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda p: p.to_dict())


def get_product(product_id: int) -> Product:
    return load_product(db.session, product_id)


def create_product(*, patch: dict, opening_stock: int = 0, actor_id: int | None = None, cache=None) -> Product:
    """
    Create a product from a validated patch dict.

    Raises:
        ValidationError: sku or name missing, negative opening stock
        ConflictError: SKU already exists
    """
    sku = patch.get("sku")
    if not sku or not str(sku).strip():
        raise ValidationError("sku is required", details={"field": "sku"})
    if not patch.get("name"):
        raise ValidationError("name is required", details={"field": "name"})
    if isinstance(opening_stock, bool) or not isinstance(opening_stock, int) or opening_stock < 0:
        raise ValidationError(
            "opening_stock must be a non-negative integer",
            details={"field": "opening_stock", "value": opening_stock},
        )

    def _op():
        with ledger_transaction() as session:
            _ensure_sku_available(session, sku)

            p = Product(current_stock=0, created_by_user_id=actor_id, updated_by_user_id=actor_id)
            apply_product_patch(p, patch)
            if not p.category:
                p.category = "General"
            session.add(p)
            session.flush()

            if opening_stock:
                post_stock_movement(
                    session,
                    product=p,
                    tx_type=STOCK_TX_ADJUSTMENT,
                    qty_delta=opening_stock,
                    unit_price_cents=p.cost_price_cents or 0,
                    actor_id=actor_id,
                    note=OPENING_BALANCE_NOTE,
                )
            return p

    p = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info("Product created: id=%s sku=%s opening_stock=%d", p.id, p.sku, opening_stock)
    return p


def update_product(*, product_id: int, patch: dict, actor_id: int | None = None, cache=None) -> Product:
    """
    Update catalog attributes.

    Raises:
        ValidationError: patch tries to set current_stock
        NotFoundError: no such product
        ConflictError: new SKU already exists
    """
    if "current_stock" in patch:
        raise ValidationError(
            "current_stock can only change through stock transactions",
            details={"field": "current_stock"},
        )

    def _op():
        with ledger_transaction() as session:
            p = load_product(session, product_id, lock=True)
            if "sku" in patch and normalize_sku(patch["sku"]) != p.sku:
                _ensure_sku_available(session, patch["sku"], exclude_id=p.id)
            apply_product_patch(p, patch)
            p.updated_by_user_id = actor_id
            session.flush()
            return p

    p = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info("Product updated: id=%s fields=%s", p.id, ", ".join(sorted(patch.keys())))
    return p


def delete_product(*, product_id: int, cache=None) -> None:
    """
    Hard-delete a product together with its stock journal.

    Products referenced by any sale or purchase line are kept for history;
    deleting them raises ConflictError.
    """
    def _op():
        with ledger_transaction() as session:
            p = load_product(session, product_id, lock=True)
            sale_refs = session.query(SaleLine.id).filter(SaleLine.product_id == p.id).count()
            purchase_refs = session.query(PurchaseLine.id).filter(PurchaseLine.product_id == p.id).count()
            if sale_refs or purchase_refs:
                raise ConflictError(
                    "Product is referenced by sales or purchases.",
                    details={"product_id": p.id, "sale_lines": sale_refs, "purchase_lines": purchase_refs},
                )
            session.execute(
                delete(StockTransaction)
                .where(StockTransaction.product_id == p.id)
                .execution_options(synchronize_session=False)
            )
            session.delete(p)

    run_with_retry(_op)
    invalidate_reports(cache)
    logger.info("Product deleted: id=%s", product_id)
