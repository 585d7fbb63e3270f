# Overview: Flask API routes for supplier purchases.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError, error_response
from ..services import purchase_service
from ..services.commands import DeletePurchaseCommand
from ..validation import parse_create_purchase_command, parse_date_range, parse_page_args


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_actor
def create_purchase_route():
    try:
        command = parse_create_purchase_command(request.get_json(silent=True))
        purchase = purchase_service.create_purchase(command, actor_id=g.actor_id)
        return jsonify({"purchase": purchase.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("")
@require_actor
def list_purchases_route():
    try:
        start, end = parse_date_range(request.args)
        page, per_page = parse_page_args(request.args)
        result = purchase_service.list_purchases(
            start=start,
            end=end,
            supplier=request.args.get("supplier"),
            page=page,
            per_page=per_page,
        )
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)


@purchases_bp.get("/<int:purchase_id>")
@require_actor
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)


@purchases_bp.delete("/<int:purchase_id>")
@require_actor
def delete_purchase_route(purchase_id: int):
    """
    Delete a purchase and remove its quantities from stock.

    409 if part of the purchase has already been sold.
    """
    try:
        result = purchase_service.delete_purchase(
            DeletePurchaseCommand(purchase_id=purchase_id), actor_id=g.actor_id
        )
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"error": "Internal server error"}), 500
