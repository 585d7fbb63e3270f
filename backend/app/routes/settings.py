from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_actor
from ..errors import LedgerError, ValidationError, error_response
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_actor
def get_settings():
    return jsonify({
        "tax_rate": str(settings_service.get_tax_rate()),
        "invoice_sequence": settings_service.get_invoice_sequence(),
    }), 200


@settings_bp.put("/tax-rate")
@require_actor
def put_tax_rate():
    payload = request.get_json(silent=True) or {}
    try:
        if "tax_rate" not in payload:
            raise ValidationError("tax_rate is required", details={"field": "tax_rate"})
        rate = settings_service.set_tax_rate(payload["tax_rate"])
        return jsonify({"tax_rate": str(rate)}), 200
    except LedgerError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update tax rate")
        return jsonify({"error": "Internal server error"}), 500
