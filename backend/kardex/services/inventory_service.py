# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/kardex/services/inventory_service.py

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventoryLedgerEntry, Location, Product, ProductPrice, Uom, TRANSACTION_TYPES
from ..decimal_utils import to_decimal, quantize_quantity, quantity_str
from ..validation import ValidationError, ConflictError, NotFoundError, ProductNotFoundError
from .concurrency import lock_for_update, run_with_retry
"""
Kardex Inventory Invariants (authoritative)

Inventory model:
- Stock is ledger-derived from InventoryLedgerEntry rows; the ledger is append-only.
- Stock for (product, location) is SUM(quantity) over its rows; global stock
  for a product is SUM(quantity) over all locations.
- All arithmetic is Decimal; quantities are Numeric(14, 4) (fractional kg/lt).

Sign convention (applied at the boundary, not by append_entry):
- sale, waste, usage, transfer_out, production_usage -> -abs(quantity)
- purchase, transfer_in, production_output, adjustment -> +abs(quantity)

Transfers:
- Always exactly two rows: transfer_out at source, transfer_in at destination,
  with opposite quantities, so the product's global stock is unchanged.

Cached aggregate:
- ProductPrice.stock_quantity is rewritten by full re-aggregation after every
  ledger write, inside the same DB transaction. Never patched incrementally.

Negative stock:
- Allowed by default (ALLOW_NEGATIVE_STOCK). When disabled, an outbound row
  that would take a (product, location) balance below zero is rejected.
"""


# Types accepted by record_movement (the public movement API)
MOVEMENT_TYPES = ("purchase", "sale", "waste", "usage", "adjustment", "transfer")

# Ledger type a movement type is stored as, when it differs
MOVEMENT_LEDGER_TYPE = {"usage": "production_usage"}

OUTBOUND_TYPES = frozenset({"sale", "waste", "usage", "transfer_out", "production_usage"})


class InsufficientStockError(ConflictError):
    """Raised when an outbound movement would make a location balance negative."""


def normalize_quantity(transaction_type: str, quantity) -> Decimal:
    """Force the sign from the type, so -5 and 5 for a sale both yield -5."""
    qty = abs(to_decimal(quantity))
    return -qty if transaction_type in OUTBOUND_TYPES else qty


def get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return product


def get_location(location_id: int) -> Location:
    location = db.session.get(Location, location_id)
    if location is None:
        raise NotFoundError(f"Location {location_id} not found")
    return location


def get_default_selling_location() -> Location | None:
    """First location of type 'store' (lowest id), or None if none is configured."""
    return (
        db.session.query(Location)
        .filter(Location.type == "store")
        .order_by(Location.id.asc())
        .first()
    )


def _sum_quantity(*criteria) -> Decimal:
    total = db.session.query(
        func.coalesce(func.sum(InventoryLedgerEntry.quantity), 0)
    ).filter(*criteria).scalar()
    return quantize_quantity(total)


def get_current_stock(product_id: int) -> Decimal:
    """Exact SUM of all ledger rows for the product across every location."""
    get_product(product_id)
    return _sum_quantity(InventoryLedgerEntry.product_id == product_id)


def get_location_stock(product_id: int, location_id: int) -> Decimal:
    return _sum_quantity(
        InventoryLedgerEntry.product_id == product_id,
        InventoryLedgerEntry.location_id == location_id,
    )


def get_stock_by_location(product_id: int) -> list[dict]:
    """
    Per-location balances for a product, non-zero only.

    Locations whose history nets to zero are omitted from this view. The zero
    filter runs after quantization so drift from backends that sum NUMERIC as
    floating point (SQLite) cannot leak a 1e-17 "balance".
    """
    product = get_product(product_id)
    uom = db.session.get(Uom, product.uom_id) if product.uom_id else None

    rows = (
        db.session.query(
            Location.id,
            Location.name,
            Location.type,
            func.sum(InventoryLedgerEntry.quantity).label("current_stock"),
        )
        .join(InventoryLedgerEntry, InventoryLedgerEntry.location_id == Location.id)
        .filter(InventoryLedgerEntry.product_id == product_id)
        .group_by(Location.id, Location.name, Location.type)
        .order_by(Location.id.asc())
        .all()
    )

    result = []
    for location_id, name, location_type, total in rows:
        balance = quantize_quantity(total)
        if balance == 0:
            continue
        result.append({
            "location_id": location_id,
            "location_name": name,
            "location_type": location_type,
            "current_stock": balance,
            "uom": uom.abbreviation if uom else None,
        })
    return result


def refresh_cached_stock(product_id: int) -> Decimal:
    """
    Recompute ProductPrice.stock_quantity from the ledger (full re-aggregation).

    Runs inside the caller's transaction; no commit. Products without a price
    row have no cache to refresh.
    """
    total = _sum_quantity(InventoryLedgerEntry.product_id == product_id)
    price = db.session.query(ProductPrice).filter_by(product_id=product_id).first()
    if price is not None and to_decimal(price.stock_quantity) != total:
        price.stock_quantity = total
        db.session.flush()
    return total


def rebuild_stock_cache() -> int:
    """Recompute every cached aggregate from the ledger. Returns rows rewritten."""
    def _op():
        changed = 0
        for price in db.session.query(ProductPrice).order_by(ProductPrice.id).all():
            total = _sum_quantity(InventoryLedgerEntry.product_id == price.product_id)
            if to_decimal(price.stock_quantity) != total:
                price.stock_quantity = total
                changed += 1
        db.session.commit()
        return changed

    return run_with_retry(_op)


def _enforce_stock_policy(product_id: int, location_id: int, quantity: Decimal) -> None:
    if current_app.config.get("ALLOW_NEGATIVE_STOCK", True):
        return
    on_hand = get_location_stock(product_id, location_id)
    if on_hand + quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock for product {product_id} at location {location_id}: "
            f"on hand {quantity_str(on_hand)}, requested {quantity_str(-quantity)}"
        )


def append_entry(
    *,
    product_id: int,
    location_id: int,
    quantity,
    transaction_type: str,
    reference_id: str | None = None,
    notes: str | None = None,
) -> InventoryLedgerEntry:
    """
    Append one signed movement to the kardex and refresh the product's cache.

    - No sign normalization here; callers pass the final signed quantity.
    - No commit; the row joins the caller's transaction.
    - Never updates or deletes existing rows.
    """
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction_type: {transaction_type}")

    if db.session.get(Product, product_id) is None:
        raise ValidationError(f"product_id {product_id} does not reference an existing product")

    get_location(location_id)

    qty = quantize_quantity(quantity)
    if qty < 0:
        _enforce_stock_policy(product_id, location_id, qty)

    entry = InventoryLedgerEntry(
        product_id=product_id,
        location_id=location_id,
        quantity=qty,
        transaction_type=transaction_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        notes=notes,
    )
    db.session.add(entry)
    db.session.flush()

    refresh_cached_stock(product_id)
    return entry


def record_movement(
    *,
    product_id: int,
    type: str,
    quantity,
    location_id: int,
    to_location_id: int | None = None,
    notes: str | None = None,
) -> list[InventoryLedgerEntry]:
    """
    Register a purchase, sale, waste, usage, adjustment or transfer.

    transfer writes the balanced transfer_out/transfer_in pair with
    abs(quantity) on both legs; every other type writes a single row whose
    sign follows the type. Commits on success, rolls back on any failure.
    """
    if type not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")

    try:
        qty = to_decimal(quantity)
    except ValueError:
        raise ValidationError("quantity must be a number")
    if qty == 0:
        raise ValidationError("quantity must be non-zero")

    if type == "transfer":
        if to_location_id is None:
            raise ValidationError("to_location_id is required for transfer")
        if to_location_id == location_id:
            raise ValidationError("Cannot transfer to the same location")

    def _op():
        get_product(product_id, lock=True)

        if type == "transfer":
            source = get_location(location_id)
            destination = get_location(to_location_id)
            moved = abs(qty)
            entries = [
                append_entry(
                    product_id=product_id,
                    location_id=source.id,
                    quantity=-moved,
                    transaction_type="transfer_out",
                    notes=notes or f"Transfer to {destination.name}",
                ),
                append_entry(
                    product_id=product_id,
                    location_id=destination.id,
                    quantity=moved,
                    transaction_type="transfer_in",
                    notes=notes or f"Transfer from {source.name}",
                ),
            ]
        else:
            ledger_type = MOVEMENT_LEDGER_TYPE.get(type, type)
            entries = [
                append_entry(
                    product_id=product_id,
                    location_id=location_id,
                    quantity=normalize_quantity(ledger_type, qty),
                    transaction_type=ledger_type,
                    notes=notes,
                )
            ]

        db.session.commit()
        return entries

    entries = run_with_retry(_op)
    current_app.logger.info(
        "inventory movement recorded: product_id=%s type=%s quantity=%s entries=%s",
        product_id, type, quantity_str(qty), [e.id for e in entries],
    )
    return entries


def list_ledger_entries(*, product_id: int, location_id: int | None = None, limit: int = 200):
    get_product(product_id)

    q = db.session.query(InventoryLedgerEntry).filter(InventoryLedgerEntry.product_id == product_id)
    if location_id is not None:
        q = q.filter(InventoryLedgerEntry.location_id == location_id)

    return q.order_by(
        InventoryLedgerEntry.created_at.desc(),
        InventoryLedgerEntry.id.desc(),
    ).limit(limit).all()


def get_inventory_catalogs() -> dict:
    """Reference data the movement UI needs: units of measure and locations."""
    uoms = db.session.query(Uom).order_by(Uom.id).all()
    locations = db.session.query(Location).order_by(Location.id).all()
    return {
        "uoms": [u.to_dict() for u in uoms],
        "locations": [loc.to_dict() for loc in locations],
    }
