# Overview: Service-layer operations for operating expenses.

from __future__ import annotations

import logging
from datetime import datetime

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Expense
from .pagination import paginate
from .reporting_service import invalidate_reports

logger = logging.getLogger(__name__)


def create_expense(
    *,
    category: str,
    amount_cents: int,
    actor_id: int,
    note: str | None = None,
    occurred_at: datetime | None = None,
    cache=None,
) -> Expense:
    if not category or not category.strip():
        raise ValidationError("category is required", details={"field": "category"})
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents < 0:
        raise ValidationError(
            "amount_cents must be a non-negative integer",
            details={"field": "amount_cents", "value": amount_cents},
        )

    expense = Expense(
        category=category.strip(),
        amount_cents=amount_cents,
        note=note,
        created_by_user_id=actor_id,
    )
    if occurred_at is not None:
        expense.occurred_at = occurred_at
    db.session.add(expense)
    db.session.commit()

    invalidate_reports(cache)
    logger.info("Expense created: id=%s category=%r amount_cents=%d", expense.id, expense.category, amount_cents)
    return expense


def delete_expense(expense_id: int, *, cache=None) -> None:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("expense", expense_id)
    db.session.delete(expense)
    db.session.commit()

    invalidate_reports(cache)
    logger.info("Expense deleted: id=%s", expense_id)


def list_expenses(
    *,
    category: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Expense)
    if category:
        query = query.filter(Expense.category == category)
    if start is not None:
        query = query.filter(Expense.occurred_at >= start)
    if end is not None:
        query = query.filter(Expense.occurred_at <= end)
    query = query.order_by(Expense.occurred_at.desc(), Expense.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda e: e.to_dict())
