"""
Pytest fixtures for kardex backend tests.

Provides test database setup, seeded reference data, catalog factories and
the Flask test client.
"""

from decimal import Decimal

import pytest
from kardex import create_app
from kardex.extensions import db
from kardex.models import Location, Product, ProductComponent, ProductPrice, Uom
from kardex.services.reference_data_service import seed_reference_data
from kardex.services.session_service import upsert_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Core DELETE bypasses the ORM append-only listeners
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def locations(db_session):
    """Seed default uoms/locations and return locations keyed by type."""
    seed_reference_data()
    return {loc.type: loc for loc in db_session.query(Location).order_by(Location.id).all()}


@pytest.fixture(scope='function')
def warehouse(locations):
    return locations["warehouse"]


@pytest.fixture(scope='function')
def store(locations):
    return locations["store"]


@pytest.fixture(scope='function')
def make_product(db_session, locations):
    """Factory: product with a price row (unless with_price=False)."""
    def _make(name, public_price="150.00", uom="pz", product_type="finished", with_price=True, **prices):
        unit = db_session.query(Uom).filter_by(abbreviation=uom).one()
        product = Product(name=name, product_type=product_type, uom_id=unit.id)
        db_session.add(product)
        db_session.flush()
        if with_price:
            db_session.add(ProductPrice(
                product_id=product.id,
                public_price=Decimal(public_price),
                purchase_price=Decimal(prices.get("purchase_price", "0")),
                store_price=Decimal(prices.get("store_price", "0")),
                published_price=Decimal(prices.get("published_price", public_price)),
            ))
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def burger_recipe(db_session, make_product):
    """Burger = 0.150 kg of meat + 1 bun."""
    meat = make_product("Carne molida", public_price="180.00", uom="kg", product_type="raw_material")
    bun = make_product("Pan de hamburguesa", public_price="8.00", product_type="raw_material")
    burger = make_product("Hamburguesa clásica", public_price="95.00")

    db_session.add_all([
        ProductComponent(parent_product_id=burger.id, child_product_id=meat.id, quantity_required=Decimal("0.150")),
        ProductComponent(parent_product_id=burger.id, child_product_id=bun.id, quantity_required=Decimal("1")),
    ])
    db_session.commit()
    return {"burger": burger, "meat": meat, "bun": bun}


@pytest.fixture(scope='function')
def guest_session(db_session):
    return upsert_session(type="guest", custom_code="u1", origin="web")


def cached_stock(product_id: int) -> Decimal:
    """Helper to read the cached aggregate for a product."""
    price = db.session.query(ProductPrice).filter_by(product_id=product_id).one()
    db.session.refresh(price)
    return price.stock_quantity
