# backend/kardex/routes/orders.py
"""Checkout and order lookup routes."""

from flask import Blueprint, request, current_app

from ..models import Order
from ..decimal_utils import money_str
from ..validation import ModelValidationPolicy, validate_payload, ValidationError
from ..services import checkout_service
from .errors import DOMAIN_ERRORS, error_response


orders_bp = Blueprint("orders", __name__, url_prefix="/orders")

CHECKOUT_POLICY = ModelValidationPolicy(
    writable_fields={"session_id", "payment_method", "received_amount", "location_id"},
    required_on_create={"session_id"},
)


@orders_bp.post("")
def checkout_route():
    """
    Turn the session's cart into an order.

    Writes the order, its frozen-price items, the sale entries and the income
    entry, and clears the cart, all in one transaction.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Order,
            payload=payload,
            policy=CHECKOUT_POLICY,
            partial=False,
        )
    except ValidationError as e:
        return error_response(e)

    try:
        result = checkout_service.checkout(
            session_id=patch["session_id"],
            payment_method=patch.get("payment_method"),
            received_amount=patch.get("received_amount"),
            location_id=patch.get("location_id"),
        )
    except DOMAIN_ERRORS as e:
        if isinstance(e, checkout_service.ConfigurationError):
            current_app.logger.error("Checkout blocked by configuration: %s", e)
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process checkout")
        return {"error": "Internal server error"}, 500

    return {
        "message": "Order created",
        "order_id": result.order_id,
        "total": money_str(result.total),
        "status": result.status,
    }, 201


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = checkout_service.get_order(order_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return order, 200
