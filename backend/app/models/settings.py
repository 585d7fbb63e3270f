from __future__ import annotations

from ..extensions import db
from app.time_utils import utcnow


INVOICE_SEQUENCE_KEY = "invoiceSequence"
TAX_RATE_KEY = "taxRate"


class Setting(db.Model):
    """
    Generic numeric key/value store for cross-cutting counters and config.

    Known keys:
    - invoiceSequence: last issued invoice counter. Only ever incremented by a
      single atomic UPDATE ... RETURNING; never decremented or reset.
    - taxRate: sales tax percentage (5 means 5%).
    """
    __tablename__ = "settings"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True)
    value = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Setting {self.key}={self.value}>"

    def to_dict(self) -> dict:
        return {"key": self.key, "value": str(self.value)}
