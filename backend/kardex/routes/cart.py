# backend/kardex/routes/cart.py
"""Shopping cart routes. Cart lines are mutable until checkout clears them."""

from flask import Blueprint, request, current_app

from ..models import CartItem
from ..validation import ModelValidationPolicy, validate_payload, ValidationError
from ..services import cart_service
from .errors import DOMAIN_ERRORS, error_response


cart_bp = Blueprint("cart", __name__, url_prefix="/cart")

CART_ADD_POLICY = ModelValidationPolicy(
    writable_fields={"session_id", "product_id", "quantity", "options"},
    required_on_create={"session_id", "product_id"},
)

CART_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"quantity"},
    required_on_create={"quantity"},
)


@cart_bp.get("/<int:session_id>")
def list_cart_route(session_id: int):
    try:
        items = cart_service.list_items(session_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"session_id": session_id, "items": items}, 200


@cart_bp.post("")
def add_to_cart_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=CartItem,
            payload=payload,
            policy=CART_ADD_POLICY,
            partial=False,
        )
    except ValidationError as e:
        return error_response(e)

    quantity = patch.get("quantity")
    try:
        item = cart_service.add_item(
            session_id=patch["session_id"],
            product_id=patch["product_id"],
            quantity=1 if quantity is None else quantity,
            options=patch.get("options"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return {"error": "Internal server error"}, 500

    return {"message": "Item added", "item": item.to_dict()}, 201


@cart_bp.put("/<int:cart_item_id>")
def update_cart_item_route(cart_item_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=CartItem,
            payload=payload,
            policy=CART_UPDATE_POLICY,
            partial=False,
        )
    except ValidationError as e:
        return error_response(e)

    try:
        item = cart_service.update_quantity(cart_item_id=cart_item_id, quantity=patch["quantity"])
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return {"error": "Internal server error"}, 500

    return {"message": "Quantity updated", "item": item.to_dict()}, 200


@cart_bp.delete("/<int:cart_item_id>")
def remove_cart_item_route(cart_item_id: int):
    try:
        cart_service.remove_item(cart_item_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return {"error": "Internal server error"}, 500

    return {"message": "Item removed"}, 200
