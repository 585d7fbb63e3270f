from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow


PAYMENT_METHODS = ("cash", "card", "upi", "credit")


class Sale(db.Model):
    """
    Completed sale with a customer.

    TOTALS (all integer cents):
    taxes = round_half_up((subtotal - discount) * tax_rate / 100)
    total = subtotal - discount + taxes

    tax_rate is the percentage in force when the sale was created, kept so the
    totals stay reproducible after the setting changes.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("subtotal_cents >= 0", name="ck_sales_subtotal_nonneg"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sales_discount_nonneg"),
        db.CheckConstraint("taxes_cents >= 0", name="ck_sales_taxes_nonneg"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_nonneg"),
        db.CheckConstraint(
            "payment_method IN ('cash', 'card', 'upi', 'credit')", name="ck_sales_payment_method"
        ),
        db.Index("ix_sales_occurred_at", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable invoice number (e.g., "INV-2025-00042")
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(7, 4), nullable=False, default=0)
    taxes_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_by_user_id = db.Column(db.Integer, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice={self.invoice_number!r} total_cents={self.total_cents}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer": {"name": self.customer_name, "phone": self.customer_phone},
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_rate": str(self.tax_rate) if self.tax_rate is not None else None,
            "taxes_cents": self.taxes_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    Sale line with point-in-time snapshots.

    name and cost_price_cents are copied from the product when the sale is
    created, so profit reports stay historically accurate after the product's
    cost or name changes.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_sale_lines_qty_pos"),
        db.CheckConstraint("sell_price_cents >= 0", name="ck_sale_lines_sell_nonneg"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_sale_lines_cost_nonneg"),
        db.Index("ix_sale_lines_product_sale", "product_id", "sale_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    qty = db.Column(db.Integer, nullable=False)
    sell_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "name": self.name,
            "qty": self.qty,
            "sell_price_cents": self.sell_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "line_total_cents": self.line_total_cents,
        }
