# backend/kardex/routes/inventory.py
"""
Inventory (kardex) routes.

- POST /inventory/transaction: purchase, sale, waste, usage, adjustment, transfer
- POST /inventory/convert: produce a product from its recipe
- GET  /inventory/stock/<product_id>: per-location balances (non-zero only)

Quantities are Decimal end to end and serialized as strings ("0.1500").
"""
from flask import Blueprint, request, current_app
from sqlalchemy import Integer, Numeric, String

from ..models import InventoryLedgerEntry, ProductComponent
from ..decimal_utils import quantity_str
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    enforce_rules_movement,
)
from ..services import inventory_service, production_service
from .errors import DOMAIN_ERRORS, error_response


inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")

MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "location_id", "quantity", "type", "notes", "to_location_id"},
    required_on_create={"product_id", "location_id", "quantity", "type"},
    extra_fields={"type": String(32), "to_location_id": Integer()},
)

CONVERT_POLICY = ModelValidationPolicy(
    writable_fields={"parent_product_id", "quantity_to_produce", "location_id"},
    required_on_create={"parent_product_id", "quantity_to_produce", "location_id"},
    extra_fields={"quantity_to_produce": Numeric(14, 4), "location_id": Integer()},
)


@inventory_bp.post("/transaction")
def record_transaction_route():
    """
    Register a stock movement.

    The sign is derived from type; clients may send quantity with any sign.
    transfer requires to_location_id and writes two balanced entries.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=InventoryLedgerEntry,
            payload=payload,
            policy=MOVEMENT_POLICY,
            partial=False,
        )
        enforce_rules_movement(patch)
    except ValidationError as e:
        return error_response(e)

    try:
        entries = inventory_service.record_movement(
            product_id=patch["product_id"],
            type=patch["type"],
            quantity=patch["quantity"],
            location_id=patch["location_id"],
            to_location_id=patch.get("to_location_id"),
            notes=patch.get("notes"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record inventory movement")
        return {"error": "Internal server error"}, 500

    return {
        "message": "Movement recorded",
        "entries": [e.to_dict() for e in entries],
    }, 200


@inventory_bp.post("/convert")
def convert_route():
    """Consume recipe ingredients and credit the produced product."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=ProductComponent,
            payload=payload,
            policy=CONVERT_POLICY,
            partial=False,
        )
    except ValidationError as e:
        return error_response(e)

    try:
        summary = production_service.produce(
            parent_product_id=patch["parent_product_id"],
            quantity_to_produce=patch["quantity_to_produce"],
            location_id=patch["location_id"],
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to run production")
        return {"error": "Internal server error"}, 500

    return {"message": "Production completed", "production": summary}, 200


@inventory_bp.get("/stock/<int:product_id>")
def stock_by_location_route(product_id: int):
    try:
        rows = inventory_service.get_stock_by_location(product_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    return [
        {**row, "current_stock": quantity_str(row["current_stock"])}
        for row in rows
    ], 200


@inventory_bp.get("/catalogs")
def catalogs_route():
    return inventory_service.get_inventory_catalogs(), 200


@inventory_bp.get("/<int:product_id>/entries")
def list_entries_route(product_id: int):
    """Kardex history for a product, newest first. Optional ?location_id=&limit=."""
    location_id = request.args.get("location_id", type=int)
    limit = request.args.get("limit", default=200, type=int)
    if limit < 1 or limit > 1000:
        return {"error": "limit must be between 1 and 1000", "kind": "ValidationError"}, 400

    try:
        entries = inventory_service.list_ledger_entries(
            product_id=product_id,
            location_id=location_id,
            limit=limit,
        )
        total = inventory_service.get_current_stock(product_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    return {
        "product_id": product_id,
        "current_stock": quantity_str(total),
        "entries": [e.to_dict() for e in entries],
    }, 200
