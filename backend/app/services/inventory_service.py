# Overview: Service-layer operations for inventory; stock movements and the ledger invariant.

# backend/app/services/inventory_service.py

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockTransaction
from ..models.inventory import STOCK_TX_ADJUSTMENT, STOCK_TX_TYPES
from app.time_utils import utcnow
from .concurrency import ledger_transaction, lock_for_update, run_with_retry
from .reporting_service import invalidate_reports

"""
Inventory Invariants (authoritative)

Ledger model:
- Product.current_stock is a materialized running balance.
- StockTransaction is the append-only journal of every movement.
- current_stock == SUM(StockTransaction.qty) per product at every commit.

Write rules:
- post_stock_movement is the only code path that changes current_stock. It
  applies the delta with one atomic UPDATE and appends the journal row in the
  caller's transaction, so both land or neither does.
- Stock-out deltas carry a guard (current_stock >= qty) in the UPDATE itself;
  a concurrent writer can never push the balance below zero.
- Callers own the transaction (ledger_transaction); nothing here commits
  except the public adjust_stock entry point.
"""

logger = logging.getLogger(__name__)


def load_product(session, product_id: int, *, lock: bool = False) -> Product:
    query = session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("product", product_id)
    return product


def post_stock_movement(
    session,
    *,
    product: Product,
    tx_type: str,
    qty_delta: int,
    unit_price_cents: int,
    actor_id: int | None = None,
    note: str | None = None,
    sale_id: int | None = None,
    purchase_id: int | None = None,
    cost_price_cents: int | None = None,
    occurred_at: datetime | None = None,
) -> StockTransaction:
    """
    Apply qty_delta to product.current_stock and append the matching journal row.

    cost_price_cents, when given, overwrites Product.cost_price_cents in the
    same UPDATE (last-cost accounting on purchases).

    Raises InsufficientStockError when a stock-out exceeds the balance. The
    product object is refreshed afterwards, so a later line for the same
    product in the same operation checks against the reduced balance.
    """
    if tx_type not in STOCK_TX_TYPES:
        raise ValidationError("unknown stock transaction type", details={"type": tx_type})
    if isinstance(qty_delta, bool) or not isinstance(qty_delta, int) or qty_delta == 0:
        raise ValidationError("qty must be a non-zero integer", details={"product_id": product.id, "qty": qty_delta})

    stmt = update(Product).where(Product.id == product.id)
    if qty_delta < 0:
        requested = -qty_delta
        if product.current_stock < requested:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                available=product.current_stock,
                requested=requested,
            )
        stmt = stmt.where(Product.current_stock >= requested)

    values = {"current_stock": Product.current_stock + qty_delta}
    if cost_price_cents is not None:
        values["cost_price_cents"] = cost_price_cents

    result = session.execute(stmt.values(**values).execution_options(synchronize_session=False))
    session.refresh(product)
    if result.rowcount != 1:
        # Guard failed: another writer took the stock between our read and write
        raise InsufficientStockError(
            product_id=product.id,
            product_name=product.name,
            available=product.current_stock,
            requested=-qty_delta,
        )

    tx = StockTransaction(
        product_id=product.id,
        type=tx_type,
        qty=qty_delta,
        unit_price_cents=unit_price_cents,
        sale_id=sale_id,
        purchase_id=purchase_id,
        created_by_user_id=actor_id,
        note=note,
        occurred_at=occurred_at or utcnow(),
    )
    session.add(tx)
    session.flush()
    return tx


def detach_document_transactions(session, *, sale_id: int | None = None, purchase_id: int | None = None) -> int:
    """
    Clear the backlink on every journal row that points at a sale or purchase.

    Used when the document is deleted: the rows stay (they still explain how
    current_stock got where it is) but are no longer attributable to the
    vanished document. Returns the number of rows detached.
    """
    if (sale_id is None) == (purchase_id is None):
        raise ValueError("exactly one of sale_id or purchase_id is required")
    if sale_id is not None:
        stmt = (
            update(StockTransaction)
            .where(StockTransaction.sale_id == sale_id)
            .values(sale_id=None)
        )
    else:
        stmt = (
            update(StockTransaction)
            .where(StockTransaction.purchase_id == purchase_id)
            .values(purchase_id=None)
        )
    result = session.execute(stmt.execution_options(synchronize_session="evaluate"))
    return result.rowcount


def adjust_stock(
    *,
    product_id: int,
    qty_delta: int,
    note: str | None = None,
    actor_id: int | None = None,
    cache=None,
) -> StockTransaction:
    """
    Manual correction (damage, shrinkage, recount) as an adjustment entry.

    The resulting balance must stay >= 0.
    """
    if isinstance(qty_delta, bool) or not isinstance(qty_delta, int) or qty_delta == 0:
        raise ValidationError("qty_delta must be a non-zero integer", details={"field": "qty_delta"})

    def _op():
        with ledger_transaction() as session:
            product = load_product(session, product_id, lock=True)
            return post_stock_movement(
                session,
                product=product,
                tx_type=STOCK_TX_ADJUSTMENT,
                qty_delta=qty_delta,
                unit_price_cents=product.cost_price_cents,
                actor_id=actor_id,
                note=note,
            )

    tx = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info("Stock adjusted: product=%s delta=%+d tx=%s", product_id, qty_delta, tx.id)
    return tx


def get_ledger_balance(product_id: int) -> int:
    """SUM(qty) over the product's journal."""
    total = db.session.query(
        func.coalesce(func.sum(StockTransaction.qty), 0)
    ).filter(StockTransaction.product_id == product_id).scalar()
    return int(total or 0)


def list_stock_transactions(*, product_id: int, limit: int = 200) -> list[StockTransaction]:
    load_product(db.session, product_id)
    return (
        db.session.query(StockTransaction)
        .filter_by(product_id=product_id)
        .order_by(StockTransaction.occurred_at.desc(), StockTransaction.id.desc())
        .limit(limit)
        .all()
    )


def find_ledger_discrepancies() -> list[dict]:
    """
    Products whose current_stock differs from their journal sum.

    An empty list means the ledger invariant holds everywhere.
    """
    balance = (
        db.session.query(
            StockTransaction.product_id.label("product_id"),
            func.sum(StockTransaction.qty).label("ledger_balance"),
        )
        .group_by(StockTransaction.product_id)
        .subquery()
    )
    rows = (
        db.session.query(
            Product.id,
            Product.sku,
            Product.current_stock,
            func.coalesce(balance.c.ledger_balance, 0).label("ledger_balance"),
        )
        .outerjoin(balance, balance.c.product_id == Product.id)
        .filter(Product.current_stock != func.coalesce(balance.c.ledger_balance, 0))
        .order_by(Product.id.asc())
        .all()
    )
    return [
        {
            "product_id": row.id,
            "sku": row.sku,
            "current_stock": int(row.current_stock),
            "ledger_balance": int(row.ledger_balance),
        }
        for row in rows
    ]
