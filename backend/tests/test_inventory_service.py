# Overview: Pytest coverage for manual adjustments and ledger verification.

import pytest
from sqlalchemy import text

from app.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from app.models import StockTransaction
from app.services import inventory_service


class TestAdjustStock:
    def test_positive_adjustment(self, db_session, rice, actor_id):
        tx = inventory_service.adjust_stock(product_id=rice.id, qty_delta=5, note="recount", actor_id=actor_id)

        assert tx.type == "adjustment"
        assert tx.qty == 5
        assert tx.note == "recount"
        assert tx.created_by_user_id == actor_id
        assert rice.current_stock == 15
        assert inventory_service.get_ledger_balance(rice.id) == 15

    def test_negative_adjustment(self, db_session, rice):
        inventory_service.adjust_stock(product_id=rice.id, qty_delta=-10, note="damaged")
        assert rice.current_stock == 0

    def test_cannot_go_below_zero(self, db_session, rice):
        with pytest.raises(InsufficientStockError):
            inventory_service.adjust_stock(product_id=rice.id, qty_delta=-11)
        db_session.refresh(rice)
        assert rice.current_stock == 10

    @pytest.mark.parametrize("delta", [0, True, 1.5])
    def test_delta_must_be_non_zero_int(self, db_session, rice, delta):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(product_id=rice.id, qty_delta=delta)

    def test_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(product_id=999, qty_delta=1)


class TestLedgerQueries:
    def test_transactions_newest_first(self, db_session, rice):
        inventory_service.adjust_stock(product_id=rice.id, qty_delta=-1)
        inventory_service.adjust_stock(product_id=rice.id, qty_delta=2)

        txs = inventory_service.list_stock_transactions(product_id=rice.id)
        assert [tx.qty for tx in txs] == [2, -1, 10]

    def test_discrepancy_reported(self, db_session, rice, oil):
        assert inventory_service.find_ledger_discrepancies() == []

        # Simulate an out-of-band write that bypassed the journal
        db_session.execute(text("UPDATE products SET current_stock = 3 WHERE id = :id"), {"id": oil.id})
        db_session.commit()

        assert inventory_service.find_ledger_discrepancies() == [
            {"product_id": oil.id, "sku": "OIL-1L", "current_stock": 3, "ledger_balance": 5},
        ]

    def test_product_without_journal_but_with_stock(self, db_session, rice):
        db_session.query(StockTransaction).filter_by(product_id=rice.id).delete()
        db_session.commit()

        rows = inventory_service.find_ledger_discrepancies()
        assert rows == [{"product_id": rice.id, "sku": "RICE-5KG", "current_stock": 10, "ledger_balance": 0}]


class TestJournalImmutability:
    def test_qty_rewrite_rejected(self, db_session, rice):
        tx = inventory_service.list_stock_transactions(product_id=rice.id)[0]
        tx.qty = 99
        with pytest.raises(ConflictError) as exc:
            db_session.flush()
        db_session.rollback()

        assert exc.value.details["columns"] == ["qty"]
        assert inventory_service.get_ledger_balance(rice.id) == 10

    def test_orm_delete_rejected(self, db_session, rice):
        tx = inventory_service.list_stock_transactions(product_id=rice.id)[0]
        db_session.delete(tx)
        with pytest.raises(ConflictError):
            db_session.flush()
        db_session.rollback()

        assert db_session.query(StockTransaction).filter_by(product_id=rice.id).count() == 1
