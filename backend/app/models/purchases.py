from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow


class Purchase(db.Model):
    """
    Restock from a supplier.

    total_amount_cents == SUM(line.qty * line.cost_price_cents)
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_purchases_total_nonneg"),
        db.Index("ix_purchases_occurred_at", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier = db.Column(db.String(255), nullable=False, index=True)
    invoice_ref = db.Column(db.String(64), nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_by_user_id = db.Column(db.Integer, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    lines = db.relationship(
        "PurchaseLine",
        backref="purchase",
        order_by="PurchaseLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} supplier={self.supplier!r} total_cents={self.total_amount_cents}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "supplier": self.supplier,
            "invoice_ref": self.invoice_ref,
            "total_amount_cents": self.total_amount_cents,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_purchase_lines_qty_pos"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_purchase_lines_cost_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(
        db.Integer, db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "qty": self.qty,
            "cost_price_cents": self.cost_price_cents,
            "line_total_cents": self.line_total_cents,
        }
