# Overview: Flask API routes for operating expenses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError, ValidationError, error_response
from ..models import Expense
from ..services import expense_service
from ..validation import EXPENSE_POLICY, enforce_rules_expense, parse_date_range, parse_page_args, validate_payload

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_actor
def list_expenses():
    try:
        start, end = parse_date_range(request.args)
        page, per_page = parse_page_args(request.args)
        return expense_service.list_expenses(
            category=request.args.get("category"),
            start=start,
            end=end,
            page=page,
            per_page=per_page,
        )
    except LedgerError as e:
        return error_response(e)


@expenses_bp.post("")
@require_actor
def create_expense():
    payload = request.get_json(silent=True)
    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)

        expense = expense_service.create_expense(
            category=patch["category"],
            amount_cents=patch["amount_cents"],
            note=patch.get("note"),
            occurred_at=patch.get("occurred_at"),
            actor_id=g.actor_id,
        )
        return {"expense": expense.to_dict()}, 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return {"error": "Internal server error"}, 500


@expenses_bp.delete("/<int:expense_id>")
@require_actor
def delete_expense(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
        return {"deleted": True, "expense_id": expense_id}

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return {"error": "Internal server error"}, 500
