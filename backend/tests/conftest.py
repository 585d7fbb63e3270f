"""
Pytest fixtures for the store ledger backend tests.

Each test gets its own file-backed SQLite database: invoice numbers are
allocated on a separate connection and the concurrency tests run workers on
their own threads, so an in-memory database would not be shared.
"""

import pytest
from app import create_app
from app.extensions import db
from app.models import Product
from app.services import products_service, settings_service


ACTOR_ID = 7


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.db'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_ATTEMPTS': 3,
        'DEFAULT_TAX_RATE': '0',
    })

    with app.app_context():
        db.create_all()
        settings_service.ensure_default_settings()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Application context with a clean session."""
    with app.app_context():
        yield db.session
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def report_cache(app):
    return app.extensions["report_cache"]


@pytest.fixture(scope='function')
def actor_id():
    return ACTOR_ID


def _create_product(
    sku: str,
    *,
    stock: int = 0,
    cost: int = 600,
    sell: int = 1000,
    reorder_threshold: int = 10,
    category: str = "Grocery",
    name: str | None = None,
) -> Product:
    """Create a product through the catalog service so opening stock is journaled."""
    return products_service.create_product(
        patch={
            "sku": sku,
            "name": name or f"Product {sku}",
            "category": category,
            "cost_price_cents": cost,
            "sell_price_cents": sell,
            "reorder_threshold": reorder_threshold,
        },
        opening_stock=stock,
        actor_id=ACTOR_ID,
    )


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory fixture: make_product("SKU", stock=..., cost=..., sell=...)."""
    return _create_product


@pytest.fixture(scope='function')
def rice(db_session):
    """10 units, cost 6.00, sell 10.00."""
    return _create_product("RICE-5KG", stock=10, name="Rice 5kg")


@pytest.fixture(scope='function')
def oil(db_session):
    """5 units, cost 3.00, sell 4.50."""
    return _create_product("OIL-1L", stock=5, cost=300, sell=450, name="Oil 1L")


@pytest.fixture(scope='function')
def headers():
    """Upstream actor header for API calls."""
    return {'X-Actor-Id': str(ACTOR_ID)}
