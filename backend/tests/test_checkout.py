"""
Checkout orchestration tests.

Verifies that:
- Totals come from public prices and are exact to the cent
- Order items freeze all four prices at checkout time
- Inventory is debited at the selling location and income is credited
- The cart is cleared; failures write nothing
"""

from decimal import Decimal

import pytest

from kardex import create_app
from kardex.extensions import db
from kardex.models import (
    CartItem,
    FinancialLedgerEntry,
    InventoryLedgerEntry,
    Location,
    Order,
    OrderItem,
    Product,
    ProductPrice,
    Uom,
)
from kardex.services import cart_service, checkout_service, finance_service, inventory_service
from kardex.services.checkout_service import (
    ConfigurationError,
    EmptyCartError,
    checkout,
    get_order,
)
from kardex.services.inventory_service import InsufficientStockError
from kardex.services.reference_data_service import seed_reference_data
from kardex.services.session_service import upsert_session
from kardex.validation import ValidationError, NotFoundError


def test_checkout_single_line(db_session, guest_session, make_product, store):
    product = make_product("Combo familiar", public_price="150.00", purchase_price="90.00", store_price="140.00")
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=2)

    result = checkout(session_id=guest_session.id)

    assert result.total == Decimal("300.00")
    assert result.status == "created"

    order = db_session.get(Order, result.order_id)
    assert order.total_amount == Decimal("300.00")
    assert order.received_amount == Decimal("300.00")
    assert order.payment_status == "pending"
    assert order.payment_method == "cash"
    assert order.location_id == store.id

    items = db_session.query(OrderItem).filter_by(order_id=order.id).all()
    assert len(items) == 1
    assert items[0].public_price == Decimal("150.00")
    assert items[0].purchase_price == Decimal("90.00")
    assert items[0].store_price == Decimal("140.00")
    assert items[0].quantity == Decimal("2")

    income = db_session.query(FinancialLedgerEntry).filter_by(order_id=order.id).one()
    assert (income.type, income.concept, income.amount) == ("income", "sale", Decimal("300.00"))

    assert inventory_service.get_location_stock(product.id, store.id) == Decimal("-2")
    sale = db_session.query(InventoryLedgerEntry).filter_by(reference_id=str(order.id)).one()
    assert sale.transaction_type == "sale"

    assert db_session.query(CartItem).filter_by(session_id=guest_session.id).count() == 0


def test_total_is_exact_for_fractional_quantities(db_session, guest_session, make_product):
    cheese = make_product("Queso Oaxaca", public_price="189.90", uom="kg")
    soda = make_product("Refresco", public_price="0.10")
    cart_service.add_item(session_id=guest_session.id, product_id=cheese.id, quantity="0.250")
    cart_service.add_item(session_id=guest_session.id, product_id=soda.id, quantity=3)

    result = checkout(session_id=guest_session.id)

    # 47.475 + 0.30 = 47.775 -> 47.78 (half-up)
    assert result.total == Decimal("47.78")


def test_prices_are_frozen_after_checkout(db_session, guest_session, make_product):
    product = make_product("Pizza", public_price="150.00")
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=1)
    result = checkout(session_id=guest_session.id)

    price = db_session.query(ProductPrice).filter_by(product_id=product.id).one()
    price.public_price = Decimal("999.00")
    db_session.commit()

    order = get_order(result.order_id)
    assert order["total_amount"] == "150.00"
    assert order["items"][0]["public_price"] == "150.00"


def test_checkout_uses_explicit_location(db_session, guest_session, make_product, warehouse, store):
    product = make_product("Galletas")
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=1)

    checkout(session_id=guest_session.id, location_id=warehouse.id)

    assert inventory_service.get_location_stock(product.id, warehouse.id) == Decimal("-1")
    assert inventory_service.get_location_stock(product.id, store.id) == Decimal("0")


def test_received_amount_and_payment_method(db_session, guest_session, make_product):
    product = make_product("Pastel", public_price="120.00")
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=1)

    result = checkout(session_id=guest_session.id, payment_method="card", received_amount="200")

    order = db_session.get(Order, result.order_id)
    assert order.payment_method == "card"
    assert order.received_amount == Decimal("200.00")


def test_empty_cart_writes_nothing(db_session, guest_session, locations):
    with pytest.raises(EmptyCartError):
        checkout(session_id=guest_session.id)

    assert db_session.query(Order).count() == 0
    assert db_session.query(FinancialLedgerEntry).count() == 0
    assert db_session.query(InventoryLedgerEntry).count() == 0


def test_unknown_session(db_session):
    with pytest.raises(NotFoundError):
        checkout(session_id=999999)


def test_no_store_location_is_configuration_error(db_session, guest_session, make_product):
    product = make_product("Nachos")
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=1)
    db_session.query(Location).filter_by(type="store").update({"type": "display"})
    db_session.commit()

    with pytest.raises(ConfigurationError):
        checkout(session_id=guest_session.id)

    assert db_session.query(Order).count() == 0
    assert db_session.query(CartItem).count() == 1


def test_product_without_price_rejected(db_session, guest_session, make_product):
    product = make_product("Muestra gratis", with_price=False)
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=1)

    with pytest.raises(ValidationError):
        checkout(session_id=guest_session.id)

    assert db_session.query(Order).count() == 0


def test_insufficient_stock_rolls_back_checkout(app, db_session, guest_session, make_product, store, monkeypatch):
    monkeypatch.setitem(app.config, "ALLOW_NEGATIVE_STOCK", False)
    product = make_product("Edición limitada")
    inventory_service.record_movement(product_id=product.id, type="purchase", quantity=1, location_id=store.id)
    cart_service.add_item(session_id=guest_session.id, product_id=product.id, quantity=2)

    with pytest.raises(InsufficientStockError):
        checkout(session_id=guest_session.id)

    assert db_session.query(Order).count() == 0
    assert db_session.query(OrderItem).count() == 0
    assert db_session.query(CartItem).count() == 1
    assert finance_service.get_balance(guest_session.id)["total_income"] == Decimal("0")


def test_get_unknown_order(db_session):
    with pytest.raises(NotFoundError):
        get_order(999999)


class TestConcurrentCheckout:
    """
    Two checkouts of one cart: the second to commit must see the cleared cart.

    Runs on a file database so each app context gets its own connection.
    """

    @pytest.fixture
    def file_app(self, tmp_path):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'kardex.db'}",
            'LOG_LEVEL': 'WARNING',
        })
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.engine.dispose()

    def test_interleaved_checkout_sells_once(self, file_app, monkeypatch):
        seed_reference_data()
        unit = db.session.query(Uom).filter_by(abbreviation="pz").one()
        product = Product(name="Combo", product_type="finished", uom_id=unit.id)
        db.session.add(product)
        db.session.flush()
        db.session.add(ProductPrice(
            product_id=product.id, public_price=Decimal("150.00"), published_price=Decimal("150.00"),
        ))
        db.session.commit()
        session = upsert_session(type="guest", custom_code="u1", origin="web")
        cart_service.add_item(session_id=session.id, product_id=product.id, quantity=2)

        resolve_location = checkout_service._resolve_location
        competitors = []

        def checkout_elsewhere_first(location_id):
            # this transaction already holds its cart snapshot
            if not competitors:
                with file_app.app_context():
                    competitors.append(checkout(session_id=session.id))
            return resolve_location(location_id)

        monkeypatch.setattr(checkout_service, "_resolve_location", checkout_elsewhere_first)

        with pytest.raises(EmptyCartError):
            checkout(session_id=session.id)

        assert len(competitors) == 1
        assert db.session.query(Order).count() == 1
        assert db.session.query(FinancialLedgerEntry).count() == 1
        assert db.session.query(InventoryLedgerEntry).filter_by(transaction_type="sale").count() == 1
        assert db.session.query(CartItem).count() == 0
        assert inventory_service.get_current_stock(product.id) == Decimal("-2")
