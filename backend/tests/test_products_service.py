# Overview: Pytest coverage for the product catalog service.

import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Product, StockTransaction
from app.services import products_service, purchase_service, sales_service
from app.services.commands import CreatePurchaseCommand, CreateSaleCommand, PurchaseItemInput, SaleItemInput


class TestCreateProduct:
    def test_sku_normalized(self, db_session, make_product):
        p = make_product("  sugar-1kg ")
        assert p.sku == "SUGAR-1KG"

    def test_opening_stock_is_journaled(self, db_session, make_product, actor_id):
        p = make_product("FLOUR", stock=25, cost=150)

        txs = db_session.query(StockTransaction).filter_by(product_id=p.id).all()
        assert len(txs) == 1
        assert (txs[0].type, txs[0].qty, txs[0].unit_price_cents) == ("adjustment", 25, 150)
        assert txs[0].note == "Opening balance"
        assert txs[0].created_by_user_id == actor_id
        assert p.current_stock == 25

    def test_zero_opening_stock_writes_nothing(self, db_session, make_product):
        p = make_product("SALT")
        assert db_session.query(StockTransaction).filter_by(product_id=p.id).count() == 0

    def test_duplicate_sku_case_insensitive(self, db_session, make_product):
        make_product("TEA-250")
        with pytest.raises(ConflictError):
            make_product("tea-250")

    def test_negative_opening_stock(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(
                patch={"sku": "X", "name": "X", "category": "Misc"}, opening_stock=-1
            )

    def test_missing_sku(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(patch={"name": "No SKU", "category": "Misc"})


class TestUpdateProduct:
    def test_updates_catalog_fields(self, db_session, rice, actor_id):
        p = products_service.update_product(
            product_id=rice.id,
            patch={"name": "Basmati 5kg", "sell_price_cents": 1200, "reorder_threshold": 4},
            actor_id=actor_id,
        )
        assert p.name == "Basmati 5kg"
        assert p.sell_price_cents == 1200
        assert p.updated_by_user_id == actor_id
        assert p.current_stock == 10

    def test_current_stock_is_not_writable(self, db_session, rice):
        with pytest.raises(ValidationError):
            products_service.update_product(product_id=rice.id, patch={"current_stock": 99})
        db_session.refresh(rice)
        assert rice.current_stock == 10

    def test_sku_change_conflict(self, db_session, rice, oil):
        with pytest.raises(ConflictError):
            products_service.update_product(product_id=oil.id, patch={"sku": "rice-5kg"})

    def test_same_sku_is_not_a_conflict(self, db_session, rice):
        p = products_service.update_product(product_id=rice.id, patch={"sku": "rice-5kg", "unit": "bag"})
        assert p.unit == "bag"

    def test_missing(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.update_product(product_id=555, patch={"name": "ghost"})


class TestDeleteProduct:
    def test_unreferenced_product_deleted_with_journal(self, db_session, make_product):
        p = make_product("TEMP", stock=3)
        product_id = p.id

        products_service.delete_product(product_id=product_id)

        assert db_session.get(Product, product_id) is None
        assert db_session.query(StockTransaction).filter_by(product_id=product_id).count() == 0

    def test_blocked_by_sale_lines(self, db_session, rice, actor_id):
        sales_service.create_sale(
            CreateSaleCommand(items=(SaleItemInput(rice.id, 1),), payment_method="cash"), actor_id=actor_id
        )
        with pytest.raises(ConflictError) as excinfo:
            products_service.delete_product(product_id=rice.id)
        assert excinfo.value.details["sale_lines"] == 1

    def test_blocked_by_purchase_lines(self, db_session, rice, actor_id):
        purchase_service.create_purchase(
            CreatePurchaseCommand(supplier="Mill", items=(PurchaseItemInput(rice.id, 1, 500),)),
            actor_id=actor_id,
        )
        with pytest.raises(ConflictError):
            products_service.delete_product(product_id=rice.id)


class TestListProducts:
    def test_filters(self, db_session, make_product):
        make_product("A-1", stock=2, category="Dairy")
        make_product("A-2", stock=50, category="Dairy")
        make_product("B-1", stock=1, category="Bakery")

        assert products_service.list_products(category="Dairy")["count"] == 2
        low = products_service.list_products(low_stock=True)
        assert sorted(item["sku"] for item in low["items"]) == ["A-1", "B-1"]
        dairy_low = products_service.list_products(category="Dairy", low_stock=True)
        assert [item["sku"] for item in dairy_low["items"]] == ["A-1"]

    def test_pagination(self, db_session, make_product):
        for i in range(5):
            make_product(f"P-{i}", name=f"Item {i}")

        page = products_service.list_products(page=2, per_page=2)
        assert [item["name"] for item in page["items"]] == ["Item 2", "Item 3"]
        assert page["pagination"]["total_pages"] == 3
        assert page["pagination"]["has_prev"] is True
