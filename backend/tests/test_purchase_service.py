# Overview: Pytest coverage for purchase creation and deletion.

import pytest

from app.errors import InsufficientStockError, NotFoundError, ValidationError
from app.models import Purchase, StockTransaction
from app.services import inventory_service, purchase_service, sales_service
from app.services.commands import (
    CreatePurchaseCommand,
    CreateSaleCommand,
    DeletePurchaseCommand,
    DeleteSaleCommand,
    PurchaseItemInput,
    SaleItemInput,
)


def _purchase(*items, supplier="Metro Wholesale", invoice_ref="MW-881"):
    return CreatePurchaseCommand(
        supplier=supplier,
        items=tuple(PurchaseItemInput(*item) for item in items),
        invoice_ref=invoice_ref,
    )


class TestCreatePurchase:
    def test_adds_stock_and_sets_last_cost(self, db_session, rice, oil, actor_id):
        purchase = purchase_service.create_purchase(
            _purchase((rice.id, 20, 550), (oil.id, 10, 320)), actor_id=actor_id
        )

        assert rice.current_stock == 30
        assert rice.cost_price_cents == 550
        assert oil.current_stock == 15
        assert oil.cost_price_cents == 320
        assert purchase.total_amount_cents == 20 * 550 + 10 * 320

        txs = db_session.query(StockTransaction).filter_by(purchase_id=purchase.id).all()
        assert sorted((tx.product_id, tx.type, tx.qty, tx.unit_price_cents) for tx in txs) == sorted([
            (rice.id, "purchase", 20, 550),
            (oil.id, "purchase", 10, 320),
        ])

    def test_later_line_wins_cost(self, db_session, rice, actor_id):
        purchase_service.create_purchase(_purchase((rice.id, 1, 500), (rice.id, 1, 700)), actor_id=actor_id)
        assert rice.cost_price_cents == 700
        assert rice.current_stock == 12

    def test_missing_product_aborts(self, db_session, rice, actor_id):
        with pytest.raises(NotFoundError):
            purchase_service.create_purchase(_purchase((rice.id, 5, 500), (4040, 1, 100)), actor_id=actor_id)

        db_session.refresh(rice)
        assert rice.current_stock == 10
        assert rice.cost_price_cents == 600
        assert db_session.query(Purchase).count() == 0

    @pytest.mark.parametrize(
        "command",
        [
            _purchase(),
            _purchase((1, 0, 100)),
            _purchase((1, 1, -1)),
            _purchase((1, 1, 100), supplier="  "),
            _purchase((1, 1, 1_000_000_000)),
            _purchase((1, 1, 10**19)),
            _purchase((1, 1_000_001, 100)),
        ],
    )
    def test_invalid_commands_rejected(self, db_session, command, actor_id):
        with pytest.raises(ValidationError):
            purchase_service.create_purchase(command, actor_id=actor_id)


class TestDeletePurchase:
    def test_removes_stock_and_detaches(self, db_session, rice, actor_id):
        purchase = purchase_service.create_purchase(_purchase((rice.id, 20, 550)), actor_id=actor_id)
        purchase_id = purchase.id

        result = purchase_service.delete_purchase(DeletePurchaseCommand(purchase_id), actor_id=actor_id)

        assert result["removed"] == [{"product_id": rice.id, "qty": 20}]
        db_session.refresh(rice)
        assert rice.current_stock == 10
        # Cost price is not reverted
        assert rice.cost_price_cents == 550
        assert db_session.query(StockTransaction).filter_by(purchase_id=purchase_id).count() == 0
        assert inventory_service.get_ledger_balance(rice.id) == 10

        compensation = (
            db_session.query(StockTransaction)
            .filter_by(product_id=rice.id)
            .order_by(StockTransaction.id.desc())
            .first()
        )
        assert compensation.type == "adjustment"
        assert compensation.qty == -20
        assert compensation.note == "Purchase MW-881 deleted"

    def test_blocked_when_stock_already_sold(self, db_session, make_product, actor_id):
        soap = make_product("SOAP", stock=0)
        purchase = purchase_service.create_purchase(_purchase((soap.id, 10, 100)), actor_id=actor_id)
        sales_service.create_sale(
            CreateSaleCommand(items=(SaleItemInput(soap.id, 4),), payment_method="card"),
            actor_id=actor_id,
        )

        with pytest.raises(InsufficientStockError) as excinfo:
            purchase_service.delete_purchase(DeletePurchaseCommand(purchase.id), actor_id=actor_id)

        assert excinfo.value.available == 6
        assert excinfo.value.requested == 10
        db_session.refresh(soap)
        assert soap.current_stock == 6
        assert db_session.get(Purchase, purchase.id) is not None

    def test_missing_purchase(self, db_session):
        with pytest.raises(NotFoundError):
            purchase_service.delete_purchase(DeletePurchaseCommand(777))


class TestLedgerScenario:
    def test_purchase_sale_delete_round_trip(self, db_session, make_product, actor_id):
        tea = make_product("TEA", stock=0, cost=200, sell=350)

        purchase_service.create_purchase(_purchase((tea.id, 10, 200)), actor_id=actor_id)
        sale = sales_service.create_sale(
            CreateSaleCommand(items=(SaleItemInput(tea.id, 4),), payment_method="upi"),
            actor_id=actor_id,
        )
        assert tea.current_stock == 6

        sales_service.delete_sale(DeleteSaleCommand(sale.id), actor_id=actor_id)

        db_session.refresh(tea)
        assert tea.current_stock == 10
        assert inventory_service.get_ledger_balance(tea.id) == 10
        assert inventory_service.find_ledger_discrepancies() == []


class TestPurchaseQueries:
    def test_list_filters_by_supplier(self, db_session, rice, actor_id):
        purchase_service.create_purchase(_purchase((rice.id, 1, 500)), actor_id=actor_id)
        purchase_service.create_purchase(_purchase((rice.id, 1, 500), supplier="Corner Mill"), actor_id=actor_id)

        result = purchase_service.list_purchases(supplier="Corner Mill")
        assert result["count"] == 1
        assert result["items"][0]["supplier"] == "Corner Mill"

    def test_get_includes_lines(self, db_session, rice, actor_id):
        purchase = purchase_service.create_purchase(_purchase((rice.id, 3, 500)), actor_id=actor_id)
        data = purchase_service.get_purchase(purchase.id).to_dict()
        assert data["lines"][0]["qty"] == 3
        assert data["lines"][0]["line_total_cents"] == 1500
