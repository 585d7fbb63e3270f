# Overview: Pytest coverage for the aggregate reports and their cache.

from datetime import datetime, timedelta

import pytest

from app.models import Expense, Sale
from app.services import expense_service, products_service, reporting_service, sales_service
from app.services.commands import CreateSaleCommand, SaleItemInput
from app.services.reporting_service import ReportError
from app.time_utils import utcnow


def _sell(product_id, qty, actor_id, discount_cents=0):
    return sales_service.create_sale(
        CreateSaleCommand(
            items=(SaleItemInput(product_id, qty),),
            payment_method="cash",
            discount_cents=discount_cents,
        ),
        actor_id=actor_id,
    )


def _backdate(session, sale_id, days):
    session.query(Sale).filter_by(id=sale_id).update({"occurred_at": utcnow() - timedelta(days=days)})
    session.commit()


class TestSummary:
    def test_profit_breakdown(self, db_session, rice, oil, actor_id):
        sales_service.create_sale(
            CreateSaleCommand(items=(SaleItemInput(rice.id, 3), SaleItemInput(oil.id, 2)), payment_method="cash"),
            actor_id=actor_id,
        )
        _sell(rice.id, 1, actor_id, discount_cents=100)
        expense_service.create_expense(category="Rent", amount_cents=500, actor_id=actor_id)

        report = reporting_service.summary()

        assert report["revenue_cents"] == 3900 + 900
        assert report["cogs_cents"] == 3 * 600 + 2 * 300 + 600
        assert report["gross_profit_cents"] == 4800 - 3000
        assert report["total_expenses_cents"] == 500
        assert report["net_profit_cents"] == 1300
        assert report["sales_count"] == 2

    def test_empty_store(self, db_session):
        report = reporting_service.summary()
        assert report["revenue_cents"] == 0
        assert report["net_profit_cents"] == 0
        assert report["sales_count"] == 0

    def test_range_outside_activity(self, db_session, rice, actor_id):
        _sell(rice.id, 1, actor_id)
        report = reporting_service.summary(datetime(2001, 1, 1), datetime(2001, 1, 31, 23, 59, 59))
        assert report["revenue_cents"] == 0

    def test_inverted_range_rejected(self, db_session):
        with pytest.raises(ReportError):
            reporting_service.summary(datetime(2025, 2, 1), datetime(2025, 1, 1))

    def test_cost_snapshot_survives_cost_change(self, db_session, rice, actor_id):
        _sell(rice.id, 2, actor_id)
        products_service.update_product(product_id=rice.id, patch={"cost_price_cents": 900})

        assert reporting_service.summary()["cogs_cents"] == 2 * 600


class TestTopProducts:
    def test_ranked_by_quantity(self, db_session, rice, oil, actor_id):
        _sell(rice.id, 4, actor_id)
        _sell(oil.id, 2, actor_id)

        rows = reporting_service.top_products(7, 10)["top_products"]

        assert [(r["product_id"], r["total_qty"], r["total_revenue_cents"]) for r in rows] == [
            (rice.id, 4, 4000),
            (oil.id, 2, 900),
        ]
        assert rows[0]["product_name"] == "Rice 5kg"

    def test_ties_ordered_by_product_id(self, db_session, rice, oil, actor_id):
        _sell(oil.id, 2, actor_id)
        _sell(rice.id, 2, actor_id)

        rows = reporting_service.top_products(7, 10)["top_products"]
        assert [r["product_id"] for r in rows] == sorted([rice.id, oil.id])

    def test_limit(self, db_session, rice, oil, actor_id):
        _sell(rice.id, 1, actor_id)
        _sell(oil.id, 1, actor_id)
        assert len(reporting_service.top_products(7, 1)["top_products"]) == 1

    def test_sales_before_window_excluded(self, db_session, rice, oil, actor_id):
        old = _sell(rice.id, 5, actor_id)
        _backdate(db_session, old.id, 10)
        _sell(oil.id, 1, actor_id)

        rows = reporting_service.top_products(7, 10)["top_products"]
        assert [(r["product_id"], r["total_qty"]) for r in rows] == [(oil.id, 1)]

        wide = reporting_service.top_products(30, 10)["top_products"]
        assert [(r["product_id"], r["total_qty"]) for r in wide] == [(rice.id, 5), (oil.id, 1)]

    def test_window_follows_now(self, db_session, rice, actor_id):
        _sell(rice.id, 2, actor_id)

        later = utcnow() + timedelta(days=8)
        assert reporting_service.top_products(7, 10, now=later)["top_products"] == []
        assert len(reporting_service.top_products(7, 10)["top_products"]) == 1

    def test_bad_parameters(self, db_session):
        with pytest.raises(ReportError):
            reporting_service.top_products(0, 10)
        with pytest.raises(ReportError):
            reporting_service.top_products(7, 0)


class TestLowStock:
    def test_only_below_threshold(self, db_session, make_product, actor_id):
        low = make_product("LOW-1", stock=8, reorder_threshold=10)
        make_product("OK-1", stock=12, reorder_threshold=10)
        make_product("EDGE-1", stock=10, reorder_threshold=10)
        _sell(low.id, 1, actor_id)

        rows = reporting_service.low_stock()["low_stock_products"]

        assert len(rows) == 1
        assert rows[0]["product"]["sku"] == "LOW-1"
        assert rows[0]["product"]["current_stock"] == 7
        assert rows[0]["sold_last_7_days"] == 1

    def test_lowest_stock_first_and_zero_sales(self, db_session, make_product):
        make_product("A", stock=5)
        make_product("B", stock=1)

        rows = reporting_service.low_stock()["low_stock_products"]
        assert [r["product"]["sku"] for r in rows] == ["B", "A"]
        assert all(r["sold_last_7_days"] == 0 for r in rows)

    def test_sold_last_7_days_ignores_older_sales(self, db_session, rice, actor_id):
        old = _sell(rice.id, 5, actor_id)
        _backdate(db_session, old.id, 8)
        _sell(rice.id, 1, actor_id)

        rows = reporting_service.low_stock()["low_stock_products"]
        assert rows[0]["product"]["current_stock"] == 4
        assert rows[0]["sold_last_7_days"] == 1

        later = utcnow() + timedelta(days=8)
        rows = reporting_service.low_stock(now=later)["low_stock_products"]
        assert rows[0]["sold_last_7_days"] == 0


class TestReportCaching:
    def test_cached_until_mutation(self, db_session, rice, actor_id):
        first = reporting_service.summary()
        assert first["revenue_cents"] == 0

        # Written behind the services' back: the cache still answers
        db_session.add(Expense(category="Power", amount_cents=250, created_by_user_id=actor_id))
        db_session.commit()
        assert reporting_service.summary()["total_expenses_cents"] == 0

        _sell(rice.id, 1, actor_id)

        fresh = reporting_service.summary()
        assert fresh["revenue_cents"] == 1000
        assert fresh["total_expenses_cents"] == 250

    def test_every_mutation_clears(self, db_session, rice, report_cache, actor_id):
        reporting_service.low_stock()
        reporting_service.top_products()
        assert len(report_cache) == 2

        expense = expense_service.create_expense(category="Rent", amount_cents=1, actor_id=actor_id)
        assert len(report_cache) == 0

        reporting_service.summary()
        expense_service.delete_expense(expense.id)
        assert len(report_cache) == 0

    def test_low_stock_refreshes_after_sale(self, db_session, rice, actor_id):
        assert reporting_service.low_stock()["low_stock_products"] == []

        _sell(rice.id, 3, actor_id)

        rows = reporting_service.low_stock()["low_stock_products"]
        assert [r["product"]["id"] for r in rows] == [rice.id]

    def test_result_computed_across_a_mutation_is_not_cached(
        self, db_session, rice, report_cache, actor_id, monkeypatch
    ):
        real_to_utc_z = reporting_service.to_utc_z
        sold = []

        def sell_while_computing(dt):
            # Runs after the summary queries, before the result is stored
            if not sold:
                sold.append(_sell(rice.id, 1, actor_id))
            return real_to_utc_z(dt)

        monkeypatch.setattr(reporting_service, "to_utc_z", sell_while_computing)
        stale = reporting_service.summary()
        monkeypatch.undo()

        assert stale["revenue_cents"] == 0
        assert len(report_cache) == 0
        assert reporting_service.summary()["revenue_cents"] == 1000
