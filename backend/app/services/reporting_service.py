# Overview: Service-layer operations for reporting; read-only aggregates behind the report cache.

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from app.errors import ValidationError
from app.extensions import db
from app.models import Expense, Product, Sale, SaleLine
from app.time_utils import to_utc_z, utcnow
from .report_cache import ReportCache

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)
LOW_STOCK_SALES_WINDOW_DAYS = 7


class ReportError(ValidationError):
    """Raised when report parameters are unusable."""


def get_report_cache() -> ReportCache:
    return current_app.extensions["report_cache"]


def invalidate_reports(cache: ReportCache | None = None) -> None:
    """Drop every cached report. Called after each successful ledger mutation."""
    if cache is None:
        cache = get_report_cache()
    cache.clear()
    logger.info("Report cache cleared")


def _cached(cache: ReportCache | None, key: tuple, compute):
    if cache is None:
        cache = get_report_cache()
    hit = cache.get(key)
    if hit is not None:
        return hit
    generation = cache.generation
    result = compute()
    # A mutation that committed while we computed makes result stale
    cache.set(key, result, generation=generation)
    return result


def summary(
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    cache: ReportCache | None = None,
) -> dict:
    """
    Revenue, COGS and profit over sales and expenses with start <= date <= end.

    revenue       = SUM(sale.total_cents)
    cogs          = SUM(line.qty * line.cost_price_cents)   (cost snapshot)
    gross_profit  = revenue - cogs
    net_profit    = gross_profit - SUM(expense.amount_cents)
    """
    start_dt = start or EPOCH
    end_dt = end or utcnow()
    if start_dt > end_dt:
        raise ReportError("start must not be after end")

    def compute() -> dict:
        revenue_cents, sales_count = db.session.query(
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.count(Sale.id),
        ).filter(
            Sale.occurred_at >= start_dt,
            Sale.occurred_at <= end_dt,
        ).one()

        cogs_cents = db.session.query(
            func.coalesce(func.sum(SaleLine.qty * SaleLine.cost_price_cents), 0)
        ).join(Sale, SaleLine.sale_id == Sale.id).filter(
            Sale.occurred_at >= start_dt,
            Sale.occurred_at <= end_dt,
        ).scalar()

        expenses_cents = db.session.query(
            func.coalesce(func.sum(Expense.amount_cents), 0)
        ).filter(
            Expense.occurred_at >= start_dt,
            Expense.occurred_at <= end_dt,
        ).scalar()

        revenue_cents = int(revenue_cents or 0)
        cogs_cents = int(cogs_cents or 0)
        expenses_cents = int(expenses_cents or 0)
        gross_profit_cents = revenue_cents - cogs_cents

        return {
            "revenue_cents": revenue_cents,
            "cogs_cents": cogs_cents,
            "gross_profit_cents": gross_profit_cents,
            "total_expenses_cents": expenses_cents,
            "net_profit_cents": gross_profit_cents - expenses_cents,
            "sales_count": int(sales_count or 0),
            "period": {"from": to_utc_z(start_dt), "to": to_utc_z(end_dt)},
        }

    return _cached(cache, ("summary", start, end), compute)


def top_products(
    period_days: int = 7,
    limit: int = 10,
    *,
    cache: ReportCache | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Best sellers by quantity over the trailing period_days.

    Ties on quantity are ordered by product id, which keeps the output stable.
    """
    if period_days <= 0:
        raise ReportError("period_days must be > 0")
    if limit <= 0:
        raise ReportError("limit must be > 0")

    def compute() -> dict:
        to_dt = now or utcnow()
        from_dt = to_dt - timedelta(days=period_days)

        total_qty = func.sum(SaleLine.qty).label("total_qty")
        rows = (
            db.session.query(
                SaleLine.product_id,
                func.min(SaleLine.name).label("product_name"),
                total_qty,
                func.sum(SaleLine.line_total_cents).label("total_revenue_cents"),
            )
            .join(Sale, SaleLine.sale_id == Sale.id)
            .filter(Sale.occurred_at >= from_dt)
            .group_by(SaleLine.product_id)
            .order_by(total_qty.desc(), SaleLine.product_id.asc())
            .limit(limit)
            .all()
        )
        return {
            "top_products": [
                {
                    "product_id": row.product_id,
                    "product_name": row.product_name,
                    "total_qty": int(row.total_qty or 0),
                    "total_revenue_cents": int(row.total_revenue_cents or 0),
                }
                for row in rows
            ],
            "period": {"from": to_utc_z(from_dt), "to": to_utc_z(to_dt)},
        }

    return _cached(cache, ("top_products", period_days, limit, now), compute)


def low_stock(
    limit: int = 20,
    *,
    cache: ReportCache | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Products with current_stock < reorder_threshold, lowest stock first.

    Each row carries the quantity sold over the last 7 days (0 when none) to
    help size the reorder.
    """
    if limit <= 0:
        raise ReportError("limit must be > 0")

    def compute() -> dict:
        products = (
            db.session.query(Product)
            .filter(Product.current_stock < Product.reorder_threshold)
            .order_by(Product.current_stock.asc(), Product.id.asc())
            .limit(limit)
            .all()
        )

        sold: dict[int, int] = {}
        if products:
            since = (now or utcnow()) - timedelta(days=LOW_STOCK_SALES_WINDOW_DAYS)
            rows = (
                db.session.query(SaleLine.product_id, func.sum(SaleLine.qty))
                .join(Sale, SaleLine.sale_id == Sale.id)
                .filter(
                    Sale.occurred_at >= since,
                    SaleLine.product_id.in_([p.id for p in products]),
                )
                .group_by(SaleLine.product_id)
                .all()
            )
            sold = {product_id: int(qty or 0) for product_id, qty in rows}

        return {
            "low_stock_products": [
                {
                    "product": {
                        "id": p.id,
                        "sku": p.sku,
                        "name": p.name,
                        "category": p.category,
                        "current_stock": p.current_stock,
                        "reorder_threshold": p.reorder_threshold,
                    },
                    "sold_last_7_days": sold.get(p.id, 0),
                }
                for p in products
            ],
        }

    return _cached(cache, ("low_stock", limit, now), compute)
