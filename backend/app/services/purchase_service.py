# Overview: Service-layer operations for purchases; stock-in and its reversal.

from __future__ import annotations

import logging
from datetime import datetime

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import Purchase, PurchaseLine
from ..models.inventory import STOCK_TX_ADJUSTMENT, STOCK_TX_PURCHASE
from .commands import CreatePurchaseCommand, DeletePurchaseCommand
from .concurrency import ledger_transaction, lock_for_update, run_with_retry
from .inventory_service import detach_document_transactions, load_product, post_stock_movement
from .pagination import paginate
from .reporting_service import invalidate_reports

logger = logging.getLogger(__name__)


def _create_purchase_locked(session, command: CreatePurchaseCommand, *, actor_id: int) -> Purchase:
    purchase = Purchase(
        supplier=command.supplier.strip(),
        invoice_ref=command.invoice_ref,
        total_amount_cents=0,
        created_by_user_id=actor_id,
    )
    session.add(purchase)
    session.flush()

    total_amount_cents = 0
    for position, item in enumerate(command.items, start=1):
        product = load_product(session, item.product_id, lock=True)
        post_stock_movement(
            session,
            product=product,
            tx_type=STOCK_TX_PURCHASE,
            qty_delta=item.qty,
            unit_price_cents=item.cost_price_cents,
            actor_id=actor_id,
            purchase_id=purchase.id,
            cost_price_cents=item.cost_price_cents,
        )
        line_total_cents = item.qty * item.cost_price_cents
        total_amount_cents += line_total_cents
        purchase.lines.append(
            PurchaseLine(
                line_number=position,
                product_id=product.id,
                qty=item.qty,
                cost_price_cents=item.cost_price_cents,
                line_total_cents=line_total_cents,
            )
        )

    purchase.total_amount_cents = total_amount_cents
    session.flush()
    return purchase


def create_purchase(command: CreatePurchaseCommand, *, actor_id: int, cache=None) -> Purchase:
    """
    Record a supplier restock.

    Each line adds qty to stock and overwrites the product's cost price with
    the line's cost (last-cost). Stock-in never needs an availability check.
    """
    command.check()

    def _op():
        with ledger_transaction() as session:
            return _create_purchase_locked(session, command, actor_id=actor_id)

    purchase = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info(
        "Purchase created: id=%s supplier=%r lines=%d total_cents=%d actor=%s",
        purchase.id, purchase.supplier, len(purchase.lines), purchase.total_amount_cents, actor_id,
    )
    return purchase


def _delete_purchase_locked(session, purchase_id: int, *, actor_id: int | None) -> dict:
    purchase = lock_for_update(session.query(Purchase).filter_by(id=purchase_id)).first()
    if not purchase:
        raise NotFoundError("purchase", purchase_id)

    label = purchase.invoice_ref or f"#{purchase.id}"

    # Check every product up front, summing repeated lines, so nothing is
    # written when any part of the purchase has already been sold.
    required: dict[int, int] = {}
    for line in purchase.lines:
        required[line.product_id] = required.get(line.product_id, 0) + line.qty
    products = {}
    for product_id, qty in required.items():
        product = load_product(session, product_id, lock=True)
        if product.current_stock < qty:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                available=product.current_stock,
                requested=qty,
            )
        products[product_id] = product

    for line in purchase.lines:
        post_stock_movement(
            session,
            product=products[line.product_id],
            tx_type=STOCK_TX_ADJUSTMENT,
            qty_delta=-line.qty,
            unit_price_cents=line.cost_price_cents,
            actor_id=actor_id,
            note=f"Purchase {label} deleted",
        )

    result = {
        "purchase_id": purchase.id,
        "removed": [{"product_id": line.product_id, "qty": line.qty} for line in purchase.lines],
    }
    detach_document_transactions(session, purchase_id=purchase.id)
    session.delete(purchase)
    session.flush()
    return result


def delete_purchase(command: DeletePurchaseCommand, *, actor_id: int | None = None, cache=None) -> dict:
    """
    Delete a purchase and take its quantities back out of stock.

    Fails with InsufficientStockError, writing nothing, when stock has since
    dropped below a line's qty. Product cost prices are left as they are.
    """
    def _op():
        with ledger_transaction() as session:
            return _delete_purchase_locked(session, command.purchase_id, actor_id=actor_id)

    result = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info("Purchase deleted: id=%s actor=%s", command.purchase_id, actor_id)
    return result


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError("purchase", purchase_id)
    return purchase


def list_purchases(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    supplier: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Purchase)
    if start is not None:
        query = query.filter(Purchase.occurred_at >= start)
    if end is not None:
        query = query.filter(Purchase.occurred_at <= end)
    if supplier:
        query = query.filter(Purchase.supplier == supplier)
    query = query.order_by(Purchase.occurred_at.desc(), Purchase.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda p: p.to_dict(include_lines=False))
