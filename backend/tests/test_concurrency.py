# Overview: Threaded races against the stock ledger.

import threading

from app.errors import InsufficientStockError
from app.extensions import db
from app.models import Product, Sale
from app.services import inventory_service, sales_service
from app.services.commands import CreateSaleCommand, SaleItemInput


def _run_workers(app, targets):
    results = []
    lock = threading.Lock()

    def wrap(target):
        def worker():
            with app.app_context():
                try:
                    outcome = target()
                    with lock:
                        results.append(outcome)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()
        return worker

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


class TestConcurrentSales:
    def test_concurrent_oversell_only_one_wins(self, app, rice, actor_id):
        product_id = rice.id

        def sell_six():
            sales_service.create_sale(
                CreateSaleCommand(items=(SaleItemInput(product_id, 6),), payment_method="cash"),
                actor_id=actor_id,
            )
            return "sold"

        results = _run_workers(app, [sell_six, sell_six])

        assert results.count("sold") == 1
        failures = [r for r in results if r != "sold"]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)

        with app.app_context():
            assert db.session.get(Product, product_id).current_stock == 4
            assert inventory_service.find_ledger_discrepancies() == []
            assert db.session.query(Sale).count() == 1

    def test_many_small_sales_never_go_negative(self, app, make_product, actor_id):
        product_id = make_product("MILK", stock=5).id

        def sell_one():
            sales_service.create_sale(
                CreateSaleCommand(items=(SaleItemInput(product_id, 1),), payment_method="card"),
                actor_id=actor_id,
            )
            return "sold"

        results = _run_workers(app, [sell_one] * 8)

        assert results.count("sold") == 5
        assert all(isinstance(r, InsufficientStockError) for r in results if r != "sold")

        with app.app_context():
            assert db.session.get(Product, product_id).current_stock == 0
            assert inventory_service.get_ledger_balance(product_id) == 0
            invoices = [s.invoice_number for s in db.session.query(Sale).all()]
            assert len(invoices) == len(set(invoices)) == 5
