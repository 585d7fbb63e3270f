"""
Sales Service - stock-deducting sale creation and stock-restoring deletion

Both entry points run as one ledger transaction: every product update, every
journal row and the sale document commit together or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Sale, SaleLine
from ..models.inventory import STOCK_TX_ADJUSTMENT, STOCK_TX_SALE
from .commands import CreateSaleCommand, DeleteSaleCommand
from .concurrency import ledger_transaction, lock_for_update, run_with_retry
from .inventory_service import detach_document_transactions, load_product, post_stock_movement
from .invoice_service import next_invoice_number
from .pagination import paginate
from .reporting_service import invalidate_reports
from .settings_service import get_tax_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_cents: int
    taxes_cents: int
    total_cents: int


def compute_sale_totals(subtotal_cents: int, discount_cents: int, tax_rate: Decimal) -> SaleTotals:
    """
    taxes = (subtotal - discount) * tax_rate / 100, rounded half-up to a cent
    total = subtotal - discount + taxes
    """
    if discount_cents > subtotal_cents:
        raise ValidationError(
            "discount exceeds subtotal",
            details={"discount_cents": discount_cents, "subtotal_cents": subtotal_cents},
        )
    taxable = subtotal_cents - discount_cents
    taxes = (Decimal(taxable) * Decimal(tax_rate) / Decimal(100)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    taxes_cents = int(taxes)
    return SaleTotals(
        subtotal_cents=subtotal_cents,
        discount_cents=discount_cents,
        taxes_cents=taxes_cents,
        total_cents=taxable + taxes_cents,
    )


def _create_sale_locked(session, command: CreateSaleCommand, *, actor_id: int, invoice_number: str) -> Sale:
    lines: list[SaleLine] = []
    created_txs = []
    subtotal_cents = 0

    for position, item in enumerate(command.items, start=1):
        product = load_product(session, item.product_id, lock=True)

        sell_price_cents = item.sell_price_cents
        if sell_price_cents is None:
            sell_price_cents = product.sell_price_cents
        cost_snapshot_cents = product.cost_price_cents

        tx = post_stock_movement(
            session,
            product=product,
            tx_type=STOCK_TX_SALE,
            qty_delta=-item.qty,
            unit_price_cents=sell_price_cents,
            actor_id=actor_id,
        )
        created_txs.append(tx)

        line_total_cents = item.qty * sell_price_cents
        subtotal_cents += line_total_cents
        lines.append(
            SaleLine(
                line_number=position,
                product_id=product.id,
                name=product.name,
                qty=item.qty,
                sell_price_cents=sell_price_cents,
                cost_price_cents=cost_snapshot_cents,
                line_total_cents=line_total_cents,
            )
        )

    tax_rate = get_tax_rate()
    totals = compute_sale_totals(subtotal_cents, command.discount_cents, tax_rate)

    customer = command.customer
    sale = Sale(
        invoice_number=invoice_number,
        customer_name=customer.name if customer else None,
        customer_phone=customer.phone if customer else None,
        subtotal_cents=totals.subtotal_cents,
        discount_cents=totals.discount_cents,
        tax_rate=tax_rate,
        taxes_cents=totals.taxes_cents,
        total_cents=totals.total_cents,
        payment_method=command.payment_method,
        created_by_user_id=actor_id,
        lines=lines,
    )
    session.add(sale)
    session.flush()

    # Only the rows written by this call get the backlink. Matching on
    # product or on "sale_id IS NULL" would claim other sales' rows.
    for tx in created_txs:
        tx.sale_id = sale.id
    session.flush()

    return sale


def create_sale(command: CreateSaleCommand, *, actor_id: int, cache=None) -> Sale:
    """
    Create a sale and deduct its items from stock.

    Every line must fit the product's stock at the moment it is processed;
    repeated lines for one product are checked cumulatively.

    The invoice number is allocated first, on its own connection. It stays
    consumed if the sale aborts (NotFoundError, InsufficientStockError, store
    failure), leaving a gap in the sequence rather than a duplicate.
    """
    command.check()
    invoice_number = next_invoice_number()

    def _op():
        with ledger_transaction() as session:
            return _create_sale_locked(session, command, actor_id=actor_id, invoice_number=invoice_number)

    sale = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info(
        "Sale created: id=%s invoice=%s lines=%d total_cents=%d actor=%s",
        sale.id, sale.invoice_number, len(sale.lines), sale.total_cents, actor_id,
    )
    return sale


def _delete_sale_locked(session, sale_id: int, *, actor_id: int | None) -> dict:
    sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFoundError("sale", sale_id)

    for line in sale.lines:
        product = load_product(session, line.product_id, lock=True)
        post_stock_movement(
            session,
            product=product,
            tx_type=STOCK_TX_ADJUSTMENT,
            qty_delta=line.qty,
            unit_price_cents=line.sell_price_cents,
            actor_id=actor_id,
            note=f"Sale {sale.invoice_number} deleted",
        )

    restored = {
        "sale_id": sale.id,
        "invoice_number": sale.invoice_number,
        "restored": [{"product_id": line.product_id, "qty": line.qty} for line in sale.lines],
    }
    detach_document_transactions(session, sale_id=sale.id)
    session.delete(sale)
    session.flush()
    return restored


def delete_sale(command: DeleteSaleCommand, *, actor_id: int | None = None, cache=None) -> dict:
    """
    Delete a sale and give its quantities back to stock.

    Restoring stock needs no availability check. The sale's original journal
    rows are detached and one compensating adjustment per line is booked, so
    SUM(qty) still equals current_stock. The invoice number is not reused.
    """
    def _op():
        with ledger_transaction() as session:
            return _delete_sale_locked(session, command.sale_id, actor_id=actor_id)

    result = run_with_retry(_op)
    invalidate_reports(cache)
    logger.info("Sale deleted: id=%s invoice=%s actor=%s", command.sale_id, result["invoice_number"], actor_id)
    return result


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("sale", sale_id)
    return sale


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Sales newest first, optionally restricted to start <= date <= end."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.occurred_at >= start)
    if end is not None:
        query = query.filter(Sale.occurred_at <= end)
    query = query.order_by(Sale.occurred_at.desc(), Sale.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda s: s.to_dict(include_lines=False))

