# Overview: Service-layer operations for production; encapsulates business logic and database work.

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import ProductComponent
from ..decimal_utils import to_decimal, quantize_quantity, quantity_str
from ..validation import ValidationError
from .concurrency import run_with_retry
from .inventory_service import append_entry, get_location, get_product


class NoRecipeError(Exception):
    """Raised when a product has no bill-of-materials edges to consume."""


def _new_batch_id() -> str:
    return f"PROD-{uuid.uuid4().hex[:12].upper()}"


def produce(*, parent_product_id: int, quantity_to_produce, location_id: int) -> dict:
    """
    Convert ingredients into a parent product at one location.

    For every recipe edge, consumes quantity_required * quantity_to_produce of
    the child (production_usage) and then credits quantity_to_produce of the
    parent (production_output). All rows share one batch reference and commit
    together; any failure leaves every balance untouched.
    """
    try:
        qty = to_decimal(quantity_to_produce)
    except ValueError:
        raise ValidationError("quantity_to_produce must be a number")
    if qty <= 0:
        raise ValidationError("quantity_to_produce must be > 0")
    qty = quantize_quantity(qty)

    def _op():
        parent = get_product(parent_product_id, lock=True)
        location = get_location(location_id)

        components = (
            db.session.query(ProductComponent)
            .filter(ProductComponent.parent_product_id == parent.id)
            .order_by(ProductComponent.id.asc())
            .all()
        )
        if not components:
            raise NoRecipeError(f"Product {parent.id} has no components defined")

        batch_id = _new_batch_id()
        consumed = []

        for component in components:
            needed = quantize_quantity(to_decimal(component.quantity_required) * qty)
            append_entry(
                product_id=component.child_product_id,
                location_id=location.id,
                quantity=-needed,
                transaction_type="production_usage",
                reference_id=batch_id,
                notes=f"Used to produce {quantity_str(qty)} x {parent.name}",
            )
            consumed.append({
                "product_id": component.child_product_id,
                "quantity": quantity_str(needed),
            })

        append_entry(
            product_id=parent.id,
            location_id=location.id,
            quantity=qty,
            transaction_type="production_output",
            reference_id=batch_id,
            notes=f"Production batch {batch_id}",
        )

        db.session.commit()

        return {
            "batch_id": batch_id,
            "product_id": parent.id,
            "location_id": location.id,
            "quantity_produced": quantity_str(qty),
            "consumed": consumed,
        }

    summary = run_with_retry(_op)
    current_app.logger.info(
        "production completed: batch=%s product_id=%s quantity=%s ingredients=%s",
        summary["batch_id"], summary["product_id"], summary["quantity_produced"], len(summary["consumed"]),
    )
    return summary
