# backend/app/routes/system.py
"""
System health endpoint.

Checks database connectivity and that the ledger settings are seeded.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Setting
from ..models.settings import INVOICE_SEQUENCE_KEY
from app.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and the invoice counter row.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        sequence_seeded = (
            db.session.query(Setting.id).filter_by(key=INVOICE_SEQUENCE_KEY).first() is not None
        )
        elapsed_ms = (time.time() - start_time) * 1000

        if not sequence_seeded:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Settings not initialized; run `flask system init`",
            }
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    report_cache = current_app.extensions["report_cache"]
    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
            "report_cache": {"entries": len(report_cache)},
        },
    }, http_status
