# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/app/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError, error_response
from ..services import sales_service
from ..services.commands import DeleteSaleCommand
from ..services.invoice_service import next_invoice_number
from ..validation import parse_create_sale_command, parse_date_range, parse_page_args


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_actor
def create_sale_route():
    """
    Create a sale and deduct stock.

    Returns 201 with the sale, 409 when any line exceeds stock (nothing is
    written in that case).
    """
    try:
        command = parse_create_sale_command(request.get_json(silent=True))
        sale = sales_service.create_sale(command, actor_id=g.actor_id)
        return jsonify({"sale": sale.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_actor
def list_sales_route():
    try:
        start, end = parse_date_range(request.args)
        page, per_page = parse_page_args(request.args)
        return jsonify(sales_service.list_sales(start=start, end=end, page=page, per_page=per_page)), 200

    except LedgerError as e:
        return error_response(e)


@sales_bp.get("/<int:sale_id>")
@require_actor
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)


@sales_bp.delete("/<int:sale_id>")
@require_actor
def delete_sale_route(sale_id: int):
    """Delete a sale and restore its quantities to stock."""
    try:
        result = sales_service.delete_sale(DeleteSaleCommand(sale_id=sale_id), actor_id=g.actor_id)
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/invoice-number")
@require_actor
def next_invoice_number_route():
    """
    Reserve the next invoice number without creating a sale.

    The number is consumed whether or not it is ever used.
    """
    try:
        return jsonify({"invoice_number": next_invoice_number()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to allocate invoice number")
        return jsonify({"error": "Internal server error"}), 500
