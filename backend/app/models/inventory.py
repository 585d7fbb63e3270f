from __future__ import annotations

from sqlalchemy import event, inspect
from sqlalchemy.orm import validates

from ..extensions import db
from app.errors import ConflictError
from app.time_utils import to_utc_z, utcnow


STOCK_TX_PURCHASE = "purchase"
STOCK_TX_SALE = "sale"
STOCK_TX_ADJUSTMENT = "adjustment"
STOCK_TX_TYPES = (STOCK_TX_PURCHASE, STOCK_TX_SALE, STOCK_TX_ADJUSTMENT)


def normalize_sku(value: str) -> str:
    """Normalize to uppercase, no surrounding whitespace."""
    return value.strip().upper()


class Product(db.Model):
    """
    Product master data and the running stock balance.

    LEDGER INVARIANT:
    current_stock == SUM(stock_transactions.qty) for this product, always.
    current_stock is only ever changed by the stock accounting services, and
    every change is paired with exactly one StockTransaction in the same DB
    transaction. Never assign current_stock directly.

    COST PRICE:
    cost_price_cents is last-cost, overwritten by every purchase line that
    references the product. Sale lines snapshot it at sale time.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("cost_price_cents >= 0", name="ck_products_cost_nonneg"),
        db.CheckConstraint("sell_price_cents >= 0", name="ck_products_sell_nonneg"),
        db.CheckConstraint("reorder_threshold >= 0", name="ck_products_reorder_nonneg"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_nonneg"),
        db.Index("ix_products_stock_threshold", "current_stock", "reorder_threshold"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Globally unique, stored upper-case
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sell_price_cents = db.Column(db.Integer, nullable=False, default=0)

    unit = db.Column(db.String(32), nullable=False, default="pcs")

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_threshold = db.Column(db.Integer, nullable=False, default=10)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    updated_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @validates("sku")
    def _normalize_sku(self, key, value):
        return normalize_sku(value) if value is not None else value

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock < self.reorder_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "sell_price_cents": self.sell_price_cents,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "reorder_threshold": self.reorder_threshold,
            "is_low_stock": self.is_low_stock,
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Append-only inventory ledger: one row per stock movement.

    qty is signed: positive for stock-in (purchase, restoring adjustment),
    negative for stock-out (sale, removing adjustment).

    sale_id / purchase_id point at the originating document while it exists.
    Deleting the document detaches its rows (sets the backlink to NULL) and
    books a compensating adjustment, so history is never rewritten.
    """
    __tablename__ = "stock_transactions"

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="SET NULL"), nullable=True, index=True)
    purchase_id = db.Column(
        db.Integer, db.ForeignKey("purchases.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Set for manual adjustments and document reversals
    created_by_user_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "type IN ('purchase', 'sale', 'adjustment')", name="ck_stock_tx_type"
        ),
        db.CheckConstraint("qty <> 0", name="ck_stock_tx_qty_nonzero"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_stock_tx_price_nonneg"),
        db.Index("ix_stock_tx_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "qty": self.qty,
            "unit_price_cents": self.unit_price_cents,
            "sale_id": self.sale_id,
            "purchase_id": self.purchase_id,
            "created_by_user_id": self.created_by_user_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }


# Only the document backlinks may change on a persisted journal row.
_MUTABLE_JOURNAL_COLUMNS = frozenset({"sale_id", "purchase_id"})


@event.listens_for(StockTransaction, "before_update")
def _reject_journal_rewrite(mapper, connection, target):
    state = inspect(target)
    changed = {
        attr.key
        for attr in state.attrs
        if attr.key in mapper.columns and attr.history.has_changes()
    }
    rewritten = changed - _MUTABLE_JOURNAL_COLUMNS
    if rewritten:
        raise ConflictError(
            f"stock transaction {target.id} is append-only",
            details={"stock_transaction_id": target.id, "columns": sorted(rewritten)},
        )


@event.listens_for(StockTransaction, "before_delete")
def _reject_journal_delete(mapper, connection, target):
    raise ConflictError(
        f"stock transaction {target.id} is append-only",
        details={"stock_transaction_id": target.id},
    )
