"""
Kardex ledger and stock aggregation tests.

Verifies that:
- Stock is the exact Decimal SUM of ledger rows
- The cached aggregate always equals the ledger SUM after a write
- Per-location views omit locations whose history nets to zero
"""

from decimal import Decimal

import pytest

from conftest import cached_stock
from kardex.extensions import db
from kardex.models import InventoryLedgerEntry, ProductPrice
from kardex.services import inventory_service
from kardex.services.inventory_service import append_entry, normalize_quantity
from kardex.validation import ValidationError, NotFoundError, ProductNotFoundError


class TestNormalizeQuantity:
    @pytest.mark.parametrize("tx_type", ["sale", "waste", "usage", "transfer_out", "production_usage"])
    def test_outbound_types_are_negative(self, tx_type):
        assert normalize_quantity(tx_type, 5) == Decimal("-5")
        assert normalize_quantity(tx_type, -5) == Decimal("-5")

    @pytest.mark.parametrize("tx_type", ["purchase", "transfer_in", "production_output", "adjustment"])
    def test_inbound_types_are_positive(self, tx_type):
        assert normalize_quantity(tx_type, 5) == Decimal("5")
        assert normalize_quantity(tx_type, -5) == Decimal("5")

    def test_float_input_is_exact(self):
        assert normalize_quantity("sale", 0.15) == Decimal("-0.15")


class TestAppendEntry:
    def test_fractional_appends_sum_exactly(self, db_session, make_product, warehouse):
        meat = make_product("Carne", uom="kg")

        for _ in range(1000):
            append_entry(
                product_id=meat.id,
                location_id=warehouse.id,
                quantity=Decimal("0.150"),
                transaction_type="purchase",
            )
        db_session.commit()

        assert inventory_service.get_current_stock(meat.id) == Decimal("150.000")
        assert cached_stock(meat.id) == Decimal("150.000")

    def test_append_refreshes_cache(self, db_session, make_product, warehouse, store):
        product = make_product("Refresco")

        append_entry(product_id=product.id, location_id=warehouse.id, quantity=10, transaction_type="purchase")
        append_entry(product_id=product.id, location_id=store.id, quantity=-3, transaction_type="sale")
        db_session.commit()

        assert cached_stock(product.id) == Decimal("7")

    def test_append_does_not_commit(self, db_session, make_product, warehouse):
        product = make_product("Agua")

        append_entry(product_id=product.id, location_id=warehouse.id, quantity=4, transaction_type="purchase")
        db_session.rollback()

        assert db_session.query(InventoryLedgerEntry).count() == 0
        assert inventory_service.get_current_stock(product.id) == Decimal("0")

    def test_unknown_product_rejected(self, db_session, warehouse):
        with pytest.raises(ValidationError):
            append_entry(product_id=999999, location_id=warehouse.id, quantity=1, transaction_type="purchase")

    def test_unknown_location_rejected(self, db_session, make_product):
        product = make_product("Jugo")
        with pytest.raises(NotFoundError):
            append_entry(product_id=product.id, location_id=999999, quantity=1, transaction_type="purchase")

    def test_unknown_type_rejected(self, db_session, make_product, warehouse):
        product = make_product("Café")
        with pytest.raises(ValidationError):
            append_entry(product_id=product.id, location_id=warehouse.id, quantity=1, transaction_type="gift")

    def test_product_without_price_row_still_tracks_stock(self, db_session, make_product, warehouse):
        product = make_product("Bolsa", with_price=False)

        append_entry(product_id=product.id, location_id=warehouse.id, quantity=12, transaction_type="purchase")
        db_session.commit()

        assert inventory_service.get_current_stock(product.id) == Decimal("12")


class TestStockViews:
    def test_get_current_stock_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            inventory_service.get_current_stock(999999)

    def test_stock_by_location_omits_zero_balances(self, db_session, make_product, warehouse, store):
        product = make_product("Papas", uom="kg")

        append_entry(product_id=product.id, location_id=warehouse.id, quantity=Decimal("2.5"), transaction_type="purchase")
        append_entry(product_id=product.id, location_id=store.id, quantity=Decimal("1"), transaction_type="purchase")
        append_entry(product_id=product.id, location_id=store.id, quantity=Decimal("-1"), transaction_type="sale")
        db_session.commit()

        rows = inventory_service.get_stock_by_location(product.id)

        assert len(rows) == 1
        assert rows[0]["location_id"] == warehouse.id
        assert rows[0]["location_type"] == "warehouse"
        assert rows[0]["current_stock"] == Decimal("2.5")
        assert rows[0]["uom"] == "kg"

    def test_location_stock(self, db_session, make_product, warehouse, store):
        product = make_product("Leche", uom="lt")

        append_entry(product_id=product.id, location_id=warehouse.id, quantity=8, transaction_type="purchase")
        append_entry(product_id=product.id, location_id=store.id, quantity=2, transaction_type="purchase")
        db_session.commit()

        assert inventory_service.get_location_stock(product.id, warehouse.id) == Decimal("8")
        assert inventory_service.get_location_stock(product.id, store.id) == Decimal("2")


class TestRebuildStockCache:
    def test_rebuild_repairs_drifted_cache(self, db_session, make_product, warehouse):
        product = make_product("Sal")
        append_entry(product_id=product.id, location_id=warehouse.id, quantity=5, transaction_type="purchase")
        db_session.commit()

        # Simulate drift from an out-of-band write
        db.session.execute(
            ProductPrice.__table__.update()
            .where(ProductPrice.product_id == product.id)
            .values(stock_quantity=Decimal("99"))
        )
        db_session.commit()

        changed = inventory_service.rebuild_stock_cache()

        assert changed == 1
        assert cached_stock(product.id) == Decimal("5")

    def test_rebuild_is_noop_when_consistent(self, db_session, make_product, warehouse):
        product = make_product("Azúcar")
        append_entry(product_id=product.id, location_id=warehouse.id, quantity=5, transaction_type="purchase")
        db_session.commit()

        assert inventory_service.rebuild_stock_cache() == 0
