"""
Production (recipe conversion) tests.

Verifies that:
- Ingredients are consumed as quantity_required * quantity_to_produce
- The parent is credited exactly quantity_to_produce
- A failure at any step leaves every balance untouched
"""

from decimal import Decimal

import pytest

from conftest import cached_stock
from kardex.models import InventoryLedgerEntry
from kardex.services import inventory_service, production_service
from kardex.services.production_service import NoRecipeError, produce
from kardex.validation import ValidationError, ProductNotFoundError


@pytest.fixture
def stocked_recipe(db_session, burger_recipe, warehouse):
    inventory_service.record_movement(
        product_id=burger_recipe["meat"].id, type="purchase", quantity=10, location_id=warehouse.id,
    )
    inventory_service.record_movement(
        product_id=burger_recipe["bun"].id, type="purchase", quantity=50, location_id=warehouse.id,
    )
    return burger_recipe


def test_produce_consumes_ingredients_and_credits_parent(db_session, stocked_recipe, warehouse):
    meat, bun, burger = stocked_recipe["meat"], stocked_recipe["bun"], stocked_recipe["burger"]

    summary = produce(parent_product_id=burger.id, quantity_to_produce=20, location_id=warehouse.id)

    assert inventory_service.get_current_stock(meat.id) == Decimal("7.000")
    assert inventory_service.get_current_stock(bun.id) == Decimal("30")
    assert inventory_service.get_current_stock(burger.id) == Decimal("20")

    assert cached_stock(meat.id) == Decimal("7")
    assert cached_stock(burger.id) == Decimal("20")

    assert summary["quantity_produced"] == "20.0000"
    consumed = {c["product_id"]: c["quantity"] for c in summary["consumed"]}
    assert consumed == {meat.id: "3.0000", bun.id: "20.0000"}


def test_production_entries_share_batch_reference(db_session, stocked_recipe, warehouse):
    summary = produce(
        parent_product_id=stocked_recipe["burger"].id, quantity_to_produce=2, location_id=warehouse.id,
    )

    rows = db_session.query(InventoryLedgerEntry).filter_by(reference_id=summary["batch_id"]).all()

    assert sorted(r.transaction_type for r in rows) == [
        "production_output", "production_usage", "production_usage",
    ]


def test_fractional_production(db_session, stocked_recipe, warehouse):
    produce(
        parent_product_id=stocked_recipe["burger"].id, quantity_to_produce=Decimal("0.5"), location_id=warehouse.id,
    )

    assert inventory_service.get_current_stock(stocked_recipe["meat"].id) == Decimal("9.925")


def test_no_recipe_raises(db_session, make_product, warehouse):
    soda = make_product("Refresco")

    with pytest.raises(NoRecipeError):
        produce(parent_product_id=soda.id, quantity_to_produce=1, location_id=warehouse.id)

    assert db_session.query(InventoryLedgerEntry).count() == 0


def test_unknown_parent_raises(db_session, warehouse):
    with pytest.raises(ProductNotFoundError):
        produce(parent_product_id=999999, quantity_to_produce=1, location_id=warehouse.id)


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_rejected(db_session, burger_recipe, warehouse, quantity):
    with pytest.raises(ValidationError):
        produce(parent_product_id=burger_recipe["burger"].id, quantity_to_produce=quantity, location_id=warehouse.id)


def test_failure_rolls_back_every_entry(db_session, stocked_recipe, warehouse, monkeypatch):
    meat, bun, burger = stocked_recipe["meat"], stocked_recipe["bun"], stocked_recipe["burger"]
    entries_before = db_session.query(InventoryLedgerEntry).count()
    real_append = production_service.append_entry

    def failing_append(**kwargs):
        if kwargs["transaction_type"] == "production_output":
            raise RuntimeError("disk full")
        return real_append(**kwargs)

    monkeypatch.setattr(production_service, "append_entry", failing_append)

    with pytest.raises(RuntimeError):
        produce(parent_product_id=burger.id, quantity_to_produce=5, location_id=warehouse.id)

    assert db_session.query(InventoryLedgerEntry).count() == entries_before
    assert inventory_service.get_current_stock(meat.id) == Decimal("10")
    assert inventory_service.get_current_stock(bun.id) == Decimal("50")
    assert inventory_service.get_current_stock(burger.id) == Decimal("0")
    assert cached_stock(meat.id) == Decimal("10")
