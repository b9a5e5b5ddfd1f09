"""
Movement API tests: purchases, sales, waste, usage, adjustments, transfers.
"""

from decimal import Decimal

import pytest

from conftest import cached_stock
from kardex.models import InventoryLedgerEntry
from kardex.services import inventory_service
from kardex.services.inventory_service import InsufficientStockError, record_movement
from kardex.validation import ValidationError, NotFoundError, ProductNotFoundError


def test_purchase_with_negative_input_is_stored_positive(db_session, make_product, warehouse):
    product = make_product("Tortillas")

    entries = record_movement(product_id=product.id, type="purchase", quantity=-20, location_id=warehouse.id)

    assert len(entries) == 1
    assert entries[0].quantity == Decimal("20")
    assert inventory_service.get_current_stock(product.id) == Decimal("20")


@pytest.mark.parametrize("movement", ["sale", "waste"])
def test_outbound_movement_is_stored_negative(db_session, make_product, warehouse, movement):
    product = make_product(f"Producto {movement}")

    record_movement(product_id=product.id, type="purchase", quantity=10, location_id=warehouse.id)
    entries = record_movement(product_id=product.id, type=movement, quantity=4, location_id=warehouse.id)

    assert entries[0].quantity == Decimal("-4")
    assert entries[0].transaction_type == movement
    assert cached_stock(product.id) == Decimal("6")


def test_usage_is_stored_as_production_usage(db_session, make_product, warehouse):
    product = make_product("Aceite", uom="lt")

    entries = record_movement(product_id=product.id, type="usage", quantity=Decimal("0.25"), location_id=warehouse.id)

    assert entries[0].transaction_type == "production_usage"
    assert entries[0].quantity == Decimal("-0.25")


def test_adjustment_is_non_negative(db_session, make_product, warehouse):
    product = make_product("Servilletas")

    entries = record_movement(product_id=product.id, type="adjustment", quantity=-3, location_id=warehouse.id)

    assert entries[0].quantity == Decimal("3")


class TestTransfers:
    def test_transfer_is_balanced(self, db_session, make_product, warehouse, store):
        product = make_product("Queso", uom="kg")
        record_movement(product_id=product.id, type="purchase", quantity=10, location_id=warehouse.id)

        entries = record_movement(
            product_id=product.id,
            type="transfer",
            quantity=4,
            location_id=warehouse.id,
            to_location_id=store.id,
        )

        out_entry, in_entry = entries
        assert (out_entry.transaction_type, out_entry.quantity) == ("transfer_out", Decimal("-4"))
        assert (in_entry.transaction_type, in_entry.quantity) == ("transfer_in", Decimal("4"))

        assert inventory_service.get_current_stock(product.id) == Decimal("10")
        assert inventory_service.get_location_stock(product.id, warehouse.id) == Decimal("6")
        assert inventory_service.get_location_stock(product.id, store.id) == Decimal("4")
        assert cached_stock(product.id) == Decimal("10")

    def test_transfer_uses_absolute_quantity(self, db_session, make_product, warehouse, store):
        product = make_product("Jamón")

        record_movement(product_id=product.id, type="transfer", quantity=-2, location_id=warehouse.id, to_location_id=store.id)

        assert inventory_service.get_location_stock(product.id, warehouse.id) == Decimal("-2")
        assert inventory_service.get_location_stock(product.id, store.id) == Decimal("2")

    def test_transfer_requires_destination(self, db_session, make_product, warehouse):
        product = make_product("Pepinillos")
        with pytest.raises(ValidationError):
            record_movement(product_id=product.id, type="transfer", quantity=1, location_id=warehouse.id)

    def test_transfer_to_same_location_rejected(self, db_session, make_product, warehouse):
        product = make_product("Mostaza")
        with pytest.raises(ValidationError):
            record_movement(
                product_id=product.id, type="transfer", quantity=1,
                location_id=warehouse.id, to_location_id=warehouse.id,
            )

    def test_transfer_to_unknown_location_writes_nothing(self, db_session, make_product, warehouse):
        product = make_product("Cebolla")

        with pytest.raises(NotFoundError):
            record_movement(
                product_id=product.id, type="transfer", quantity=1,
                location_id=warehouse.id, to_location_id=999999,
            )

        assert db_session.query(InventoryLedgerEntry).count() == 0


class TestRejections:
    def test_zero_quantity_rejected(self, db_session, make_product, warehouse):
        product = make_product("Sal")
        with pytest.raises(ValidationError):
            record_movement(product_id=product.id, type="purchase", quantity=0, location_id=warehouse.id)

    def test_unknown_type_rejected(self, db_session, make_product, warehouse):
        product = make_product("Pimienta")
        with pytest.raises(ValidationError):
            record_movement(product_id=product.id, type="theft", quantity=1, location_id=warehouse.id)

    def test_unknown_product_rejected(self, db_session, warehouse):
        with pytest.raises(ProductNotFoundError):
            record_movement(product_id=999999, type="purchase", quantity=1, location_id=warehouse.id)


class TestNegativeStockPolicy:
    def test_negative_stock_allowed_by_default(self, db_session, make_product, store):
        product = make_product("Refresco")

        record_movement(product_id=product.id, type="sale", quantity=3, location_id=store.id)

        assert inventory_service.get_location_stock(product.id, store.id) == Decimal("-3")

    def test_negative_stock_rejected_when_disabled(self, app, db_session, make_product, warehouse, store, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_NEGATIVE_STOCK", False)
        product = make_product("Helado")
        record_movement(product_id=product.id, type="purchase", quantity=2, location_id=store.id)

        with pytest.raises(InsufficientStockError):
            record_movement(product_id=product.id, type="sale", quantity=3, location_id=store.id)

        assert inventory_service.get_location_stock(product.id, store.id) == Decimal("2")

    def test_transfer_checks_source_balance_when_disabled(self, app, db_session, make_product, warehouse, store, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_NEGATIVE_STOCK", False)
        product = make_product("Hielo")
        record_movement(product_id=product.id, type="purchase", quantity=1, location_id=warehouse.id)

        with pytest.raises(InsufficientStockError):
            record_movement(
                product_id=product.id, type="transfer", quantity=5,
                location_id=warehouse.id, to_location_id=store.id,
            )

        assert inventory_service.get_location_stock(product.id, store.id) == Decimal("0")
        assert db_session.query(InventoryLedgerEntry).count() == 1
