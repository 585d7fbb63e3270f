from flask import Blueprint, jsonify, request

from app.decorators import require_actor
from app.errors import LedgerError, error_response
from app.services import reporting_service
from app.validation import parse_date_range, parse_int_arg


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_actor
def summary_report():
    """Revenue, COGS, gross and net profit. ?start=&end= are inclusive."""
    try:
        start, end = parse_date_range(request.args)
        return jsonify(reporting_service.summary(start, end)), 200
    except LedgerError as exc:
        return error_response(exc)


@reports_bp.get("/top-products")
@require_actor
def top_products_report():
    try:
        period_days = parse_int_arg(request.args, "period_days", 7)
        limit = parse_int_arg(request.args, "limit", 10)
        return jsonify(reporting_service.top_products(period_days, limit)), 200
    except LedgerError as exc:
        return error_response(exc)


@reports_bp.get("/low-stock")
@require_actor
def low_stock_report():
    try:
        limit = parse_int_arg(request.args, "limit", 20)
        return jsonify(reporting_service.low_stock(limit)), 200
    except LedgerError as exc:
        return error_response(exc)
